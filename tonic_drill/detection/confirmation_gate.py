import logging
from typing import Optional, Union

from ..note_types import ConfirmedNote, Mode, NoteStatus
from ..note_utils import KeyLike, pitch_class_to_scale_degree_label

logger = logging.getLogger(__name__)


class ConfirmationGate:
    """
    Debounces per-frame pitch classes into confirmed notes for one degree.

    A pitch class must be held continuously for ``hold_seconds`` before it
    counts. Each continuous hold confirms once. The first correct
    confirmation locks the degree as correct until ``reset``.
    """

    DEFAULT_HOLD_SECONDS = 0.15

    def __init__(
        self,
        key: KeyLike = 0,
        mode: Union[Mode, str] = Mode.MAJOR,
        hold_seconds: float = DEFAULT_HOLD_SECONDS,
    ):
        self._hold_seconds = hold_seconds
        self._key = key
        self._mode = mode
        self._expected: Optional[str] = None

        self._candidate: Optional[str] = None
        self._started_at = 0.0
        self._hold_fired = False
        self._locked_correct = False
        self.status = NoteStatus.PENDING
        self.detected_label = ""

    @property
    def candidate(self) -> Optional[str]:
        return self._candidate

    @property
    def expected(self) -> Optional[str]:
        return self._expected

    @property
    def locked_correct(self) -> bool:
        return self._locked_correct

    def reset(
        self,
        expected: Optional[str],
        key: Optional[KeyLike] = None,
        mode: Optional[Union[Mode, str]] = None,
    ) -> None:
        """Start a new degree with a fresh tracking state."""
        if key is not None:
            self._key = key
        if mode is not None:
            self._mode = mode
        self._expected = expected
        self._candidate = None
        self._started_at = 0.0
        self._hold_fired = False
        self._locked_correct = False
        self.status = NoteStatus.PENDING
        self.detected_label = ""

    def on_estimate(self, pitch_class: Optional[str], now: float) -> Optional[ConfirmedNote]:
        """
        Advance the gate by one estimation cycle.

        Returns:
            A ConfirmedNote the instant a hold crosses the threshold, None otherwise.
        """
        if not pitch_class:
            if self._candidate is not None:
                logger.debug(f"Dropped candidate {self._candidate}")
            self._candidate = None
            self._hold_fired = False
            if not self._locked_correct:
                self.status = NoteStatus.PENDING
                self.detected_label = ""
            return None

        if pitch_class != self._candidate:
            self._candidate = pitch_class
            self._started_at = now
            self._hold_fired = False
            return None

        if self._hold_fired or now - self._started_at < self._hold_seconds:
            return None

        self._hold_fired = True
        is_correct = pitch_class == self._expected
        label = pitch_class_to_scale_degree_label(pitch_class, self._key, self._mode)

        if not self._locked_correct:
            self.detected_label = label
            if is_correct:
                self._locked_correct = True
                self.status = NoteStatus.CORRECT
            else:
                self.status = NoteStatus.INCORRECT

        logger.debug(
            f"Confirmed {pitch_class} ({label}) vs expected {self._expected}: "
            f"{'MATCH' if is_correct else 'NO MATCH'}, status={self.status.value}"
        )
        return ConfirmedNote(
            pitch_class=pitch_class, label=label, is_correct=is_correct, timestamp=now
        )
