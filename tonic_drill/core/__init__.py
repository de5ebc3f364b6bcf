"""Core components for the Tonic Drill application."""

# Import interfaces for easier access
from .interfaces import (
    IAudioInput,
    IChordPlayer,
    INoteDetectionService,
    IPitchEstimator,
)
from .errors import MicrophoneUnavailable, NoAudioBackend, TonicDrillError

__all__ = [
    "IAudioInput",
    "IChordPlayer",
    "INoteDetectionService",
    "IPitchEstimator",
    "MicrophoneUnavailable",
    "NoAudioBackend",
    "TonicDrillError",
]
