"""Type definitions for the Tonic Drill project."""

from enum import Enum
from typing import Optional
from dataclasses import dataclass


class Mode(str, Enum):
    """Scale mode of the tonal center."""

    MAJOR = "major"
    MINOR = "minor"


class Direction(str, Enum):
    """Where the performer should sing or play the degree relative to the tonic.

    Display metadata only: pitch-class matching is octave-invariant.
    """

    ABOVE = "ABOVE"
    BELOW = "BELOW"


class NoteStatus(str, Enum):
    """Correctness state of the in-progress degree."""

    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class ScaleDegree:
    """A target scale degree, e.g. ``5 ABOVE`` or a plain tonic ``1``."""

    degree: int  # 1..7
    direction: Optional[Direction] = None

    def __post_init__(self):
        if not 1 <= self.degree <= 7:
            raise ValueError(f"Scale degree must be 1..7, got {self.degree}")
        if self.degree != 1 and self.direction is None:
            raise ValueError(f"Degree {self.degree} requires a direction")

    def __str__(self):
        if self.degree == 1 and self.direction is None:
            return "1"
        return f"{self.degree} {self.direction.value}"


@dataclass(frozen=True)
class PitchEstimate:
    """One per-frame output of the pitch loop."""

    frequency: Optional[float]  # Hz, None when no pitch was found
    timestamp: float  # Monotonic seconds when the window was analysed


@dataclass(frozen=True)
class ConfirmedNote:
    """A pitch class held long enough to count as a deliberate note."""

    pitch_class: str  # e.g. 'G', 'C#'
    label: str  # Scale-degree label relative to the key, e.g. '5', '#4'
    is_correct: bool  # Whether it matched the expected pitch class
    timestamp: float  # When the hold threshold was crossed
