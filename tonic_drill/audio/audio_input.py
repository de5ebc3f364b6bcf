"""Microphone capture feeding a rolling analysis window."""

from __future__ import annotations
import threading
import numpy as np
from typing import Optional, ClassVar, List

from ..logger import get_logger
from ..core.errors import MicrophoneUnavailable, NoAudioBackend
from ..core.interfaces import IAudioInput
from .backend import load_sounddevice

logger = get_logger(__name__)


class SoundDeviceInput(IAudioInput):
    """Audio input handler using the sounddevice library.

    The stream callback runs on PortAudio's thread and only copies incoming
    frames into a ring buffer; ``read_window`` hands out the newest
    ``window_size`` samples to the estimation loop.
    """

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 512
    CHANNELS: ClassVar[int] = 1  # Mono audio
    WINDOW_SIZE: ClassVar[int] = 2048
    FALLBACK_RATES: ClassVar[List[int]] = [44100, 48000, 22050, 16000]

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
        window_size: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None for the system default
            sample_rate: Preferred sample rate in Hz, or None for default (44100)
            frames_per_buffer: Buffer size in frames, or None for default (512)
            channels: Number of audio channels, or None for default (1)
            window_size: Samples handed to the estimator per frame
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS
        self._window_size = window_size or self.WINDOW_SIZE

        self._stream = None
        self._running = False
        self._lock = threading.Lock()
        self._buffer = np.zeros(self._window_size, dtype=np.float32)

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def is_running(self) -> bool:
        """Check if audio input is running."""
        return self._running

    def _candidate_rates(self) -> List[int]:
        rates = [r for r in self.FALLBACK_RATES if r != self._sample_rate]
        return [self._sample_rate] + rates

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status,
    ) -> None:
        """Copy the newest frames into the ring buffer.

        Called from a separate audio thread, so it must not block.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        # Extract mono audio data (take first channel if multi-channel)
        audio_data = indata[:, 0] if indata.ndim > 1 else indata
        count = min(len(audio_data), self._window_size)

        with self._lock:
            self._buffer = np.roll(self._buffer, -count)
            self._buffer[-count:] = audio_data[-count:]

    def read_window(self) -> np.ndarray:
        """Return a copy of the most recent window of samples."""
        with self._lock:
            return self._buffer.copy()

    def start(self) -> None:
        """Open the input stream.

        Raises:
            MicrophoneUnavailable: If no backend, device or permission is available
        """
        if self._running:
            logger.warning("Audio input already running")
            return

        try:
            sd = load_sounddevice()
        except NoAudioBackend as e:
            raise MicrophoneUnavailable(f"No audio backend: {e}") from e

        last_error: Optional[Exception] = None
        for rate in self._candidate_rates():
            try:
                logger.info(f"Trying to start audio input with sample rate: {rate} Hz")
                sd.check_input_settings(
                    device=self._device_id, samplerate=rate, channels=self._channels
                )
                stream = sd.InputStream(
                    device=self._device_id,
                    samplerate=rate,
                    blocksize=self._frames_per_buffer,
                    channels=self._channels,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                stream.start()
            except Exception as e:
                # PortAudioError and ValueError both mean "this rate/device won't open"
                logger.warning(f"Failed to start audio input at {rate} Hz: {e}")
                last_error = e
                continue

            self._stream = stream
            self._sample_rate = rate
            with self._lock:
                self._buffer = np.zeros(self._window_size, dtype=np.float32)
            self._running = True
            logger.info(f"Audio input started with sample rate {rate} Hz")
            return

        logger.error(f"Could not open microphone: {last_error}")
        raise MicrophoneUnavailable(f"Could not open microphone: {last_error}")

    def stop(self) -> None:
        """Stop capturing audio and release the device."""
        if not self._running:
            return

        stream, self._stream = self._stream, None
        self._running = False
        if stream is not None:
            try:
                stream.stop()
            finally:
                stream.close()
        logger.info("Audio input stopped")
