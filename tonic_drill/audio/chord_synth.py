"""Tonal-center triad synthesis and playback."""

from __future__ import annotations
import numpy as np
import soundfile as sf
from typing import ClassVar, List, Optional, Sequence, Tuple, Union

from ..logger import get_logger
from ..note_types import Mode
from ..note_utils import key_index, to_mode
from ..core.errors import NoAudioBackend
from ..core.interfaces import IChordPlayer
from .backend import load_sounddevice

logger = get_logger(__name__)

SR = 44100

BASE_FREQUENCY = 261.63  # C4
LOW_REGISTER_KEY = 8  # G#/Ab and above drop an octave
THIRDS = {Mode.MAJOR: 4, Mode.MINOR: 3}
FIFTH = 7

# (frequency multiple, sustain level) per partial
PARTIALS: List[Tuple[float, float]] = [(1.0, 0.3), (2.0, 0.08), (4.0, 0.02)]
MASTER_GAIN = 0.45
ATTACK_SECONDS = 0.02
RELEASE_SECONDS = 0.1
RELEASE_FLOOR = 0.001


def triad_frequencies(key: Union[int, str], mode: Union[Mode, str]) -> List[float]:
    """Root, third and fifth of the tonic triad in Hz."""
    offset = key_index(key)
    if offset >= LOW_REGISTER_KEY:
        offset -= 12
    root = BASE_FREQUENCY * 2.0 ** (offset / 12.0)
    third = root * 2.0 ** (THIRDS[to_mode(mode)] / 12.0)
    fifth = root * 2.0 ** (FIFTH / 12.0)
    return [root, third, fifth]


def envelope(n_samples: int, sample_rate: int = SR) -> np.ndarray:
    """Unit-level gain curve: linear attack, sustain, exponential release."""
    env = np.ones(n_samples, dtype=np.float64)
    attack = min(int(ATTACK_SECONDS * sample_rate), n_samples)
    release = min(int(RELEASE_SECONDS * sample_rate), n_samples - attack)

    if attack > 0:
        env[:attack] = np.linspace(0.0, 1.0, attack, endpoint=False)
    if release > 0:
        env[n_samples - release :] = np.geomspace(1.0, RELEASE_FLOOR, release)
    return env


def synthesize_triad(
    frequencies: Sequence[float],
    volume: float,
    duration_seconds: float,
    sample_rate: int = SR,
) -> np.ndarray:
    """Render chord tones with three enveloped partials each.

    Args:
        frequencies: Fundamental of each chord tone in Hz
        volume: Output volume 0.0-1.0
        duration_seconds: Length of the chord including the release tail
        sample_rate: Output sample rate in Hz

    Returns:
        Mono float32 signal
    """
    n_samples = int(sample_rate * duration_seconds)
    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    env = envelope(n_samples, sample_rate)
    master = volume * MASTER_GAIN

    signal = np.zeros(n_samples, dtype=np.float64)
    for freq in frequencies:
        for multiple, level in PARTIALS:
            signal += level * np.sin(2.0 * np.pi * freq * multiple * t)

    return (signal * env * master).astype(np.float32)


class ChordSynthesizer(IChordPlayer):
    """Plays the tonic triad through the default output device.

    A missing audio backend turns playback into a no-op; detection and
    scoring carry on unaffected.
    """

    SAMPLE_RATE: ClassVar[int] = SR

    def __init__(self, sample_rate: int = SAMPLE_RATE, backend=None) -> None:
        """Initialize the synthesizer.

        Args:
            sample_rate: Output sample rate in Hz
            backend: Object with sounddevice's ``play``/``stop`` API, or None to load sounddevice
        """
        self._sample_rate = sample_rate
        self._backend = backend
        self._backend_failed = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def available(self) -> bool:
        return self._get_backend() is not None

    def _get_backend(self):
        if self._backend is None and not self._backend_failed:
            try:
                self._backend = load_sounddevice()
            except NoAudioBackend:
                self._backend_failed = True
        return self._backend

    def _disable(self, error: Exception) -> None:
        logger.warning(f"Audio output unavailable, chord playback disabled: {error}")
        self._backend = None
        self._backend_failed = True

    def render(
        self,
        key: Union[int, str],
        mode: Union[Mode, str],
        volume: float,
        duration_seconds: float,
        muted: bool = False,
    ) -> Optional[np.ndarray]:
        """Play the tonic triad, stopping whatever is still sounding first.

        Returns:
            The rendered signal, or None when muted or no backend is available
        """
        if muted:
            logger.debug("Muted; chord not rendered")
            return None

        backend = self._get_backend()
        if backend is None:
            return None

        signal = synthesize_triad(
            triad_frequencies(key, mode), volume, duration_seconds, self._sample_rate
        )
        try:
            backend.stop()
            backend.play(signal, samplerate=self._sample_rate, blocking=False)
        except Exception as e:
            # sounddevice.PortAudioError or a device that vanished mid-session
            self._disable(e)
            return None

        logger.debug(f"Playing {key} {to_mode(mode).value} triad for {duration_seconds:.2f}s")
        return signal

    def stop(self) -> None:
        """Silence playback."""
        if self._backend is None:
            return
        try:
            self._backend.stop()
        except Exception as e:
            self._disable(e)


def write_wav(path: str, signal: np.ndarray, sample_rate: int = SR) -> None:
    """Write a rendered signal to a WAV file."""
    sf.write(path, signal, sample_rate, format="WAV")
    logger.info(f"Wrote {len(signal) / sample_rate:.2f}s chord to {path}")
