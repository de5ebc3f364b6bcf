"""Defines the core interfaces for the Tonic Drill application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Callable, Union

import numpy as np

from ..note_types import Mode, PitchEstimate


class IAudioInput(ABC):
    """Interface for microphone capture handlers."""

    @abstractmethod
    def start(self) -> None:
        """Start capturing audio. Raises MicrophoneUnavailable on failure."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio and release the device."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @abstractmethod
    def read_window(self) -> np.ndarray:
        """Return the most recent analysis window of samples."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the captured stream."""
        pass


class IPitchEstimator(ABC):
    """Interface for fundamental-frequency estimators."""

    @abstractmethod
    def estimate(self, samples: np.ndarray, sample_rate: int) -> Optional[float]:
        """Return the fundamental frequency in Hz, or None when no pitch is found."""
        pass


class INoteDetectionService(ABC):
    """Interface for the per-frame pitch loop."""

    @abstractmethod
    def start(self, callback: Callable[[PitchEstimate], None]) -> None:
        """Start capture and the estimation loop. Raises MicrophoneUnavailable."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the loop and release the microphone."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if the service is running."""
        pass


class IChordPlayer(ABC):
    """Interface for the tonal-center chord synthesizer."""

    @abstractmethod
    def render(
        self,
        key: Union[int, str],
        mode: Union[Mode, str],
        volume: float,
        duration_seconds: float,
        muted: bool = False,
    ) -> Optional[np.ndarray]:
        """Play the tonic triad, silencing any chord still sounding."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Silence playback."""
        pass
