"""In-memory state of one drill session."""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from .note_types import ScaleDegree


def accuracy_percent(outcomes: List[bool]) -> int:
    """Share of correct outcomes as a percentage rounded half up, 0 when empty."""
    if not outcomes:
        return 0
    correct = sum(1 for o in outcomes if o)
    return int(math.floor(100 * correct / len(outcomes) + 0.5))


@dataclass
class Session:
    """Current target, previous target and the ordered results of a run."""

    current: Optional[ScaleDegree] = None
    previous: Optional[ScaleDegree] = None
    outcomes: List[bool] = field(default_factory=list)
    found_correct: bool = False
    has_confirmed_note: bool = False

    def install(self, degree: ScaleDegree) -> None:
        """Make ``degree`` the current target and clear per-degree flags."""
        self.previous = self.current
        self.current = degree
        self.found_correct = False

    def mark_correct(self) -> None:
        self.found_correct = True

    def record_current(self) -> Optional[bool]:
        """Append the finished degree's result once notes have been confirmed.

        Returns:
            The recorded outcome, or None when nothing was recorded
        """
        if self.current is None or not self.has_confirmed_note:
            return None
        self.outcomes.append(self.found_correct)
        return self.found_correct

    def clear(self) -> None:
        self.current = None
        self.previous = None
        self.outcomes = []
        self.found_correct = False
        self.has_confirmed_note = False

    @property
    def accuracy_percent(self) -> int:
        return accuracy_percent(self.outcomes)
