"""Audio backend probing.

sounddevice raises OSError at import time when the PortAudio library is
missing, so it is loaded on demand and a missing backend is reported as
NoAudioBackend rather than an import failure.
"""

from types import ModuleType
from typing import Optional

from ..logger import get_logger
from ..core.errors import NoAudioBackend

logger = get_logger(__name__)

_sounddevice: Optional[ModuleType] = None


def load_sounddevice() -> ModuleType:
    """Import sounddevice, raising NoAudioBackend when PortAudio is unavailable."""
    global _sounddevice

    if _sounddevice is None:
        try:
            import sounddevice
        except OSError as e:
            logger.warning(f"PortAudio backend unavailable: {e}")
            raise NoAudioBackend(str(e)) from e
        _sounddevice = sounddevice
    return _sounddevice
