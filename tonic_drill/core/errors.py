"""Error kinds raised by Tonic Drill components."""


class TonicDrillError(Exception):
    """Base class for all Tonic Drill errors."""


class MicrophoneUnavailable(TonicDrillError):
    """Microphone permission was denied, no input device exists, or the stream failed to open."""


class NoAudioBackend(TonicDrillError):
    """No usable audio output backend; synthesis degrades to a no-op."""
