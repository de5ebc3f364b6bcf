import time
import queue
from typing import Callable, List, Optional, Union

from .audio.chord_synth import ChordSynthesizer
from .audio.note_detection_service import NoteDetectionService
from .core.errors import MicrophoneUnavailable
from .core.events import EventEmitter, SessionEventType
from .core.interfaces import IChordPlayer, INoteDetectionService
from .degree_generator import ScaleDegreeGenerator
from .detection.confirmation_gate import ConfirmationGate
from .logger import get_logger
from .note_types import ConfirmedNote, Mode, NoteStatus, PitchEstimate, ScaleDegree
from .note_utils import (
    KeyLike,
    expected_pitch_class,
    frequency_to_pitch_class,
    key_index,
    key_name,
    to_mode,
)
from .session import Session

# Get logger for this module
logger = get_logger(__name__)

MIN_INTERVAL = 1.0
MAX_INTERVAL = 5.0


class SessionController:
    """Runs the scale-degree drill.

    Installs a new target every ``interval`` seconds, plays its tonic chord,
    feeds pitch estimates through the confirmation gate and records one
    outcome per finished degree.

    The pitch loop only queues estimates through ``submit_estimate``; all
    session state changes happen inside ``poll``, which the owner calls from
    its main loop.
    """

    def __init__(
        self,
        detection_service: Optional[INoteDetectionService] = None,
        synthesizer: Optional[IChordPlayer] = None,
        generator: Optional[ScaleDegreeGenerator] = None,
        key: KeyLike = "C",
        mode: Union[Mode, str] = Mode.MAJOR,
        interval: float = 2.0,
        volume: float = 0.3,
        muted: bool = False,
        chord_duration: float = 0.8,
        hold_seconds: float = ConfirmationGate.DEFAULT_HOLD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the controller.

        Args:
            detection_service: Pitch loop, or None for the default microphone service
            synthesizer: Chord player, or None for the default synthesizer
            generator: Target generator, or None for an unseeded one
            key: Tonal center (index, display name or spelling)
            mode: 'major' or 'minor'
            interval: Seconds between targets, 1.0-5.0
            volume: Chord volume, 0.0-1.0
            muted: Suppress chord playback
            chord_duration: Chord length in seconds
            hold_seconds: Hold time before a pitch counts as a confirmed note
            clock: Monotonic time source shared with the pitch loop
        """
        self.detector = detection_service if detection_service is not None else NoteDetectionService()
        self.synthesizer = synthesizer if synthesizer is not None else ChordSynthesizer()
        self.generator = generator if generator is not None else ScaleDegreeGenerator()
        self.events = EventEmitter()
        self._clock = clock

        self._key = key_index(key)
        self._mode = to_mode(mode)
        self._interval = self._check_interval(interval)
        self._volume = self._check_volume(volume)
        self._muted = bool(muted)
        self._chord_duration = chord_duration

        self.session = Session()
        self.gate = ConfirmationGate(self._key, self._mode, hold_seconds)
        self.estimate_queue: "queue.Queue[PitchEstimate]" = queue.Queue()

        self.running = False
        self._next_tick: Optional[float] = None

        logger.debug(
            "SessionController initialized: %s %s, interval=%.1fs",
            key_name(self._key),
            self._mode.value,
            self._interval,
        )

    # ----- validation -------------------------------------------------------

    @staticmethod
    def _check_interval(seconds: float) -> float:
        seconds = float(seconds)
        if not MIN_INTERVAL <= seconds <= MAX_INTERVAL:
            raise ValueError(
                f"Interval must be {MIN_INTERVAL}-{MAX_INTERVAL} seconds, got {seconds}"
            )
        return seconds

    @staticmethod
    def _check_volume(volume: float) -> float:
        volume = float(volume)
        if not 0.0 <= volume <= 1.0:
            raise ValueError(f"Volume must be 0.0-1.0, got {volume}")
        return volume

    # ----- outputs ----------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.running

    @property
    def current_degree(self) -> Optional[ScaleDegree]:
        return self.session.current

    @property
    def expected_pitch_class(self) -> Optional[str]:
        return self.gate.expected

    @property
    def detected_label(self) -> str:
        return self.gate.detected_label

    @property
    def note_status(self) -> NoteStatus:
        return self.gate.status

    @property
    def outcomes(self) -> List[bool]:
        return list(self.session.outcomes)

    @property
    def accuracy_percent(self) -> int:
        return self.session.accuracy_percent

    @property
    def key(self) -> int:
        return self._key

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def muted(self) -> bool:
        return self._muted

    # ----- inputs -----------------------------------------------------------

    def set_key(self, key: KeyLike) -> None:
        """Change the tonal center; a running session moves to a fresh target."""
        key = key_index(key)
        if key == self._key:
            return
        self._key = key
        logger.info("Key set to %s", key_name(self._key))
        self._restart_target()

    def set_mode(self, mode: Union[Mode, str]) -> None:
        """Change the mode; a running session moves to a fresh target."""
        mode = to_mode(mode)
        if mode is self._mode:
            return
        self._mode = mode
        logger.info("Mode set to %s", self._mode.value)
        self._restart_target()

    def set_interval(self, seconds: float) -> None:
        """Change the target interval; a running session moves to a fresh target."""
        seconds = self._check_interval(seconds)
        if seconds == self._interval:
            return
        self._interval = seconds
        logger.info("Interval set to %.1fs", self._interval)
        self._restart_target()

    def set_volume(self, volume: float) -> None:
        volume = self._check_volume(volume)
        if volume == self._volume:
            return
        self._volume = volume
        self._restart_target()

    def set_muted(self, muted: bool) -> None:
        muted = bool(muted)
        if muted == self._muted:
            return
        self._muted = muted
        self._restart_target()

    def reset_results(self) -> None:
        """Discard the outcome sequence."""
        self.session.outcomes = []
        logger.info("Results reset")

    # ----- lifecycle --------------------------------------------------------

    def start(self) -> None:
        """Start a session.

        Raises:
            MicrophoneUnavailable: If capture cannot start; the session stays stopped
        """
        if self.running:
            logger.warning("Session already running")
            return

        try:
            self.detector.start(self.submit_estimate)
        except MicrophoneUnavailable as e:
            logger.error("Cannot start session: %s", e)
            self.events.emit(SessionEventType.ERROR, e)
            raise

        self.session.clear()
        self._drain_estimates()
        self.running = True

        now = self._clock()
        self._advance()
        self._next_tick = now + self._interval

        logger.info(
            "Session started in %s %s with %.1fs interval",
            key_name(self._key),
            self._mode.value,
            self._interval,
        )
        self.events.emit(SessionEventType.STARTED)

    def stop(self) -> None:
        """Stop the session, recording the final degree if notes were confirmed."""
        if not self.running:
            return

        self._process_estimates()
        self.running = False
        self._next_tick = None
        self._record_outcome()

        self.detector.stop()
        self.synthesizer.stop()
        self._drain_estimates()

        logger.info(
            "Session stopped. Accuracy: %d%% over %d degrees",
            self.accuracy_percent,
            len(self.session.outcomes),
        )
        self.events.emit(SessionEventType.STOPPED, self.outcomes)

    def submit_estimate(self, estimate: PitchEstimate) -> None:
        """Queue an estimate from the pitch loop. Safe to call from any thread."""
        if self.running:
            self.estimate_queue.put(estimate)

    def poll(self, now: Optional[float] = None) -> None:
        """Process queued estimates in arrival order, then fire the timer if due.

        Should be called from the main loop.
        """
        if not self.running:
            return

        self._process_estimates()

        now = self._clock() if now is None else now
        if self._next_tick is not None and now >= self._next_tick:
            self.tick()
            self._next_tick += self._interval
            if self._next_tick <= now:
                # Fell behind by more than one interval; resynchronise
                self._next_tick = now + self._interval

    def tick(self) -> None:
        """Finish the current degree and install the next one."""
        if not self.running:
            return
        self._record_outcome()
        self._advance()

    # ----- internals --------------------------------------------------------

    def _restart_target(self) -> None:
        """Supersede the current target and re-arm the timer from now."""
        if not self.running:
            return
        self._process_estimates()
        self.tick()
        self._next_tick = self._clock() + self._interval

    def _process_estimates(self) -> None:
        while True:
            try:
                estimate = self.estimate_queue.get_nowait()
            except queue.Empty:
                return
            self._handle_estimate(estimate)

    def _drain_estimates(self) -> None:
        while True:
            try:
                self.estimate_queue.get_nowait()
            except queue.Empty:
                return

    def _record_outcome(self) -> None:
        outcome = self.session.record_current()
        if outcome is None:
            return
        logger.info(
            "Degree %s finished: %s", self.session.current, "correct" if outcome else "missed"
        )
        self.events.emit(SessionEventType.OUTCOME_RECORDED, self.session.current, outcome)

    def _advance(self) -> None:
        degree = self.generator.next(self.session.current)
        self.session.install(degree)
        expected = expected_pitch_class(self._key, degree.degree, self._mode)
        self.gate.reset(expected, self._key, self._mode)

        logger.info(
            "New target: %s (%s in %s %s)",
            degree,
            expected,
            key_name(self._key),
            self._mode.value,
        )
        self.events.emit(SessionEventType.TARGET_CHANGED, degree, expected)

        self.synthesizer.render(
            self._key, self._mode, self._volume, self._chord_duration, muted=self._muted
        )

    def _handle_estimate(self, estimate: PitchEstimate) -> None:
        pitch_class = (
            frequency_to_pitch_class(estimate.frequency)
            if estimate.frequency is not None
            else None
        )
        previous_status = self.gate.status
        confirmed = self.gate.on_estimate(pitch_class or None, estimate.timestamp)

        if confirmed is not None:
            self._handle_confirmed(confirmed)

        if self.gate.status is not previous_status:
            self.events.emit(
                SessionEventType.STATUS_CHANGED, self.gate.status, self.gate.detected_label
            )

    def _handle_confirmed(self, note: ConfirmedNote) -> None:
        if not self.session.has_confirmed_note:
            logger.info("First confirmed note of the session")
        self.session.has_confirmed_note = True

        if self.gate.locked_correct and not self.session.found_correct:
            self.session.mark_correct()
            logger.info(
                "NOTE MATCHED! %s (%s) for degree %s",
                note.pitch_class,
                note.label,
                self.session.current,
            )

        self.events.emit(SessionEventType.NOTE_CONFIRMED, note)
