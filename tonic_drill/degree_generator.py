"""Random target selection for the scale-degree drill."""

import random
from typing import Optional

from .logger import get_logger
from .note_types import Direction, ScaleDegree

# Get logger for this module
logger = get_logger(__name__)


class ScaleDegreeGenerator:
    """Draws target scale degrees without repeating the previous one.

    Every degree 1-7 is equally likely. The tonic is split three ways
    (plain, above, below) while the other degrees are split two ways, so
    each tonic variant is drawn less often than any other combination.
    """

    MAX_ATTEMPTS = 100

    def __init__(
        self, rng: Optional[random.Random] = None, max_attempts: int = MAX_ATTEMPTS
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._max_attempts = max(1, max_attempts)

    def _draw(self) -> ScaleDegree:
        degree = self._rng.randint(1, 7)
        if degree == 1:
            variant = self._rng.randrange(3)
            if variant == 0:
                return ScaleDegree(1)
            return ScaleDegree(1, Direction.ABOVE if variant == 1 else Direction.BELOW)
        direction = Direction.ABOVE if self._rng.random() < 0.5 else Direction.BELOW
        return ScaleDegree(degree, direction)

    def next(self, previous: Optional[ScaleDegree] = None) -> ScaleDegree:
        """Draw a new target that is not structurally equal to ``previous``."""
        candidate = self._draw()
        attempts = 1
        while previous is not None and candidate == previous:
            if attempts >= self._max_attempts:
                logger.warning(
                    "Accepting repeated degree %s after %d attempts", candidate, attempts
                )
                break
            candidate = self._draw()
            attempts += 1

        logger.debug("New target degree: %s (was: %s)", candidate, previous)
        return candidate
