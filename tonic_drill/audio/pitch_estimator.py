"""Fundamental-frequency estimation for live audio windows."""

from __future__ import annotations
import numpy as np
from typing import Optional, ClassVar, Tuple

from ..logger import get_logger
from ..core.interfaces import IPitchEstimator

logger = get_logger(__name__)


class PitchEstimator(IPitchEstimator):
    """Time-domain autocorrelation pitch estimator.

    For every lag between the periods of ``max_frequency`` and
    ``min_frequency`` the window is correlated with its own shifted copy;
    the lag with the strongest correlation is the period. Windows whose
    best correlation stays under ``min_correlation`` are treated as
    silence.
    """

    DEFAULT_MIN_FREQUENCY: ClassVar[float] = 80.0  # Hz
    DEFAULT_MAX_FREQUENCY: ClassVar[float] = 800.0  # Hz
    DEFAULT_MIN_CORRELATION: ClassVar[float] = 0.01  # Minimal-signal threshold
    DEFAULT_WINDOW_SIZE: ClassVar[int] = 2048

    def __init__(
        self,
        min_frequency: float = DEFAULT_MIN_FREQUENCY,
        max_frequency: float = DEFAULT_MAX_FREQUENCY,
        min_correlation: float = DEFAULT_MIN_CORRELATION,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        """Initialize the PitchEstimator.

        Args:
            min_frequency: Lowest fundamental to search for, in Hz
            max_frequency: Highest fundamental to search for, in Hz
            min_correlation: Correlation a window must exceed to count as pitched
            window_size: Number of samples the caller is expected to supply
        """
        if not 0 < min_frequency < max_frequency:
            raise ValueError(
                f"Invalid frequency range: {min_frequency}-{max_frequency} Hz"
            )
        self._min_frequency = min_frequency
        self._max_frequency = max_frequency
        self._min_correlation = min_correlation
        self.window_size = window_size

        logger.info(
            f"Pitch estimator initialized: range={min_frequency:.0f}-{max_frequency:.0f}Hz, "
            f"window={window_size}, threshold={min_correlation}"
        )

    def period_range(self, sample_rate: int) -> Tuple[int, int]:
        """Lag bounds in samples, upper bound exclusive."""
        return (
            int(sample_rate // self._max_frequency),
            int(sample_rate // self._min_frequency),
        )

    def estimate(self, samples: np.ndarray, sample_rate: int) -> Optional[float]:
        """Estimate the fundamental frequency of a window.

        Args:
            samples: 1D array of float amplitudes
            sample_rate: Sample rate of the window in Hz

        Returns:
            Frequency in Hz, or None when no pitch is present
        """
        audio_data = np.asarray(samples, dtype=np.float64).ravel()
        min_period, max_period = self.period_range(sample_rate)
        max_period = min(max_period, len(audio_data))

        if min_period < 1 or min_period >= max_period:
            logger.debug(
                f"Window of {len(audio_data)} samples too short for lag range "
                f"{min_period}-{max_period}"
            )
            return None

        # Lag-k sums of x[i] * x[i + k]; equivalent to the per-lag dot products
        corr = np.correlate(audio_data, audio_data, mode="full")[len(audio_data) - 1 :]
        segment = corr[min_period:max_period]

        best_index = int(np.argmax(segment))
        max_correlation = float(segment[best_index])
        best_period = best_index + min_period

        if max_correlation <= self._min_correlation:
            return None

        frequency = sample_rate / best_period
        logger.debug(
            f"Estimated {frequency:.1f}Hz (period={best_period}, corr={max_correlation:.4f})"
        )
        return frequency
