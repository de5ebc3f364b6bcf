"""Per-frame pitch loop integrating audio input and pitch estimation."""

from __future__ import annotations
import threading
import time
from typing import Optional, Callable

from ..logger import get_logger
from ..note_types import PitchEstimate
from .audio_input import SoundDeviceInput
from .pitch_estimator import PitchEstimator
from ..core.interfaces import INoteDetectionService, IPitchEstimator, IAudioInput

logger = get_logger(__name__)


class NoteDetectionService(INoteDetectionService):
    """Service that integrates audio input and pitch estimation.

    A worker thread wakes ``frame_rate`` times per second, estimates the pitch
    of the newest audio window and hands a PitchEstimate to the callback.
    Estimates are delivered strictly in the order they were produced.
    """

    DEFAULT_FRAME_RATE = 60.0  # Hz, one estimate per rendered frame

    def __init__(
        self,
        audio_input: Optional[IAudioInput] = None,
        pitch_estimator: Optional[IPitchEstimator] = None,
        frame_rate: float = DEFAULT_FRAME_RATE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the note detection service.

        Args:
            audio_input: Audio input handler, or None to create a default one
            pitch_estimator: Pitch estimator, or None to create a default one
            frame_rate: Estimates per second
            clock: Monotonic time source used to stamp estimates
        """
        self._pitch_estimator = pitch_estimator or PitchEstimator()
        self._audio_input = audio_input or SoundDeviceInput(
            window_size=getattr(self._pitch_estimator, "window_size", None)
        )
        self._frame_period = 1.0 / frame_rate
        self._clock = clock

        self._callback: Optional[Callable[[PitchEstimate], None]] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(self, callback: Callable[[PitchEstimate], None]) -> None:
        """Start capture and the estimation loop.

        Raises:
            MicrophoneUnavailable: If the microphone cannot be opened
        """
        if self.is_running():
            logger.warning("Note detection already running")
            return

        # Blocking acquisition; failures propagate before the loop exists
        self._audio_input.start()

        self._callback = callback
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="tonic-drill-pitch-loop", daemon=True
        )
        self._thread.start()
        logger.info("Note detection started")

    def stop(self) -> None:
        """Stop the loop and release the microphone."""
        thread, self._thread = self._thread, None
        if thread is not None:
            self._stop_event.set()
            if thread is not threading.current_thread():
                thread.join()
        self._audio_input.stop()
        self._callback = None
        logger.info("Note detection stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def process_window(self) -> PitchEstimate:
        """Estimate the pitch of the current window once."""
        samples = self._audio_input.read_window()
        frequency = self._pitch_estimator.estimate(samples, self._audio_input.sample_rate)
        return PitchEstimate(frequency=frequency, timestamp=self._clock())

    def _run(self) -> None:
        while not self._stop_event.is_set():
            started = self._clock()
            estimate = self.process_window()
            callback = self._callback
            if callback is not None:
                callback(estimate)

            remaining = self._frame_period - (self._clock() - started)
            if remaining > 0:
                self._stop_event.wait(remaining)
