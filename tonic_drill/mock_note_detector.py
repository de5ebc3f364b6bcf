from typing import List, Optional, Tuple

from .core.interfaces import IChordPlayer, INoteDetectionService
from .note_types import PitchEstimate


class MockNoteDetectionService(INoteDetectionService):
    """A mock pitch loop for unit tests. Allows manual triggering of estimates."""

    def __init__(self, start_error: Optional[Exception] = None):
        self.callback = None
        self.running = False
        self.start_error = start_error
        self.start_count = 0
        self.stop_count = 0

    def start(self, callback):
        if self.start_error is not None:
            raise self.start_error
        self.callback = callback
        self.running = True
        self.start_count += 1

    def stop(self):
        self.running = False
        self.stop_count += 1

    def is_running(self):
        return self.running

    def emit(self, frequency: Optional[float], timestamp: float) -> None:
        if self.callback is not None:
            self.callback(PitchEstimate(frequency=frequency, timestamp=timestamp))


class MockChordPlayer(IChordPlayer):
    """Records chords instead of playing them."""

    def __init__(self):
        self.rendered: List[Tuple] = []
        self.stop_count = 0

    def render(self, key, mode, volume, duration_seconds, muted=False):
        if muted:
            return None
        self.rendered.append((key, mode, volume, duration_seconds))
        return None

    def stop(self):
        self.stop_count += 1
