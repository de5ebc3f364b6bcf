"""Utility functions for working with pitch classes, keys and scale degrees."""

import numpy as np
from typing import Dict, List, Union

from .logger import get_logger
from .note_types import Mode

# Get logger for this module
logger = get_logger(__name__)

A4_FREQUENCY = 440.0
A4_PITCH_CLASS = 9  # A in NOTE_NAMES

NOTE_NAMES: List[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]

# Display names for the 12 selectable keys, enharmonic-spelled
KEYS: List[str] = [
    "C",
    "C#/Db",
    "D",
    "D#/Eb",
    "E",
    "F",
    "F#/Gb",
    "G",
    "G#/Ab",
    "A",
    "A#/Bb",
    "B",
]

FLAT_TO_SHARP: Dict[str, str] = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
}

MODE_INTERVALS: Dict[Mode, List[int]] = {
    Mode.MAJOR: [0, 2, 4, 5, 7, 9, 11],
    Mode.MINOR: [0, 2, 3, 5, 7, 8, 10],
}

DEGREE_NAMES: Dict[Mode, List[str]] = {
    Mode.MAJOR: ["1", "2", "3", "4", "5", "6", "7"],
    Mode.MINOR: ["1", "2", "♭3", "4", "5", "♭6", "♭7"],
}

FLAT = "♭"
SHARP = "#"
UNKNOWN_LABEL = "?"

KeyLike = Union[int, str]


def pitch_class_index(name: str) -> int:
    """Return the 0-11 index of a pitch class name, accepting flats (e.g. 'Bb')."""
    note = FLAT_TO_SHARP.get(name, name)
    try:
        return NOTE_NAMES.index(note)
    except ValueError:
        raise ValueError(f"Unknown pitch class: {name!r}") from None


def key_index(key: KeyLike) -> int:
    """Resolve a key given as an index, display name ('C#/Db') or single spelling."""
    if isinstance(key, (int, np.integer)) and not isinstance(key, bool):
        if not 0 <= key < 12:
            raise ValueError(f"Key index must be 0..11, got {key}")
        return int(key)
    if isinstance(key, str):
        if key in KEYS:
            return KEYS.index(key)
        return pitch_class_index(key)
    raise ValueError(f"Unknown key: {key!r}")


def key_name(key: KeyLike) -> str:
    """Display name of a key."""
    return KEYS[key_index(key)]


def to_mode(mode: Union[Mode, str]) -> Mode:
    """Coerce 'major'/'minor' strings to a Mode."""
    try:
        return Mode(mode)
    except ValueError:
        raise ValueError(f"Unknown mode: {mode!r}") from None


def frequency_to_pitch_class(freq: float) -> str:
    """Convert a frequency to its pitch class name, ignoring octave.

    Args:
        freq: Frequency in Hz

    Returns:
        Pitch class name (e.g. 'G', 'C#'), or an empty string for
        non-positive or non-finite input.
    """
    if freq is None or not np.isfinite(freq) or freq <= 0:
        return ""

    # Half steps from A4, folded onto the 12-name table
    half_steps = int(round(12 * np.log2(freq / A4_FREQUENCY)))
    return NOTE_NAMES[(A4_PITCH_CLASS + half_steps) % 12]


def pitch_class_frequency(pitch_class: str, octave: int = 4) -> float:
    """Equal-tempered frequency of a pitch class in scientific pitch notation."""
    midi_number = (octave + 1) * 12 + pitch_class_index(pitch_class)
    return float(A4_FREQUENCY * 2.0 ** ((midi_number - 69) / 12.0))


def expected_pitch_class(key: KeyLike, degree: int, mode: Union[Mode, str]) -> str:
    """Pitch class the performer must produce for a degree of the key."""
    intervals = MODE_INTERVALS[to_mode(mode)]
    return NOTE_NAMES[(key_index(key) + intervals[degree - 1]) % 12]


def pitch_class_to_scale_degree_label(
    pitch_class: str, key: KeyLike, mode: Union[Mode, str]
) -> str:
    """Label a pitch class by its scale degree relative to the key.

    In-scale notes get the mode's degree name. Notes a semitone off the scale
    get a chromatic label: a raised flatted minor degree is naturalized
    ('♭3' -> '3'), the tritone is '#4', and everything else is spelled as the
    flat of the degree above ('♭2', '♭6'). A minor scale's interval 11 is
    always '7'.
    """
    mode = to_mode(mode)
    intervals = MODE_INTERVALS[mode]
    names = DEGREE_NAMES[mode]
    interval = (pitch_class_index(pitch_class) - key_index(key) + 12) % 12

    if interval in intervals:
        return names[intervals.index(interval)]

    if mode is Mode.MINOR and interval == 11:
        return "7"

    below = (interval - 1) % 12
    above = (interval + 1) % 12

    if below in intervals and names[intervals.index(below)].startswith(FLAT):
        return names[intervals.index(below)][len(FLAT):]

    if above in intervals:
        degree = intervals.index(above) + 1
        if degree == 5 and below in intervals:
            return f"{SHARP}{intervals.index(below) + 1}"
        return f"{FLAT}{degree}"

    if below in intervals:
        return f"{SHARP}{intervals.index(below) + 1}"

    logger.warning(
        f"No scale-degree label for {pitch_class} in {key_name(key)} {mode.value} "
        f"(interval {interval})"
    )
    return UNKNOWN_LABEL
