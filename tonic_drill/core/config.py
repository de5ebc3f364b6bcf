"""JSON-backed settings for the drill, one file per section."""

from typing import Any, Callable, Dict, List, Optional, Tuple
import copy
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_DIR = os.path.join("~", ".config", "tonic_drill")

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "session": {
        "key": "C",
        "mode": "major",
        "interval": 2.0,
        "volume": 0.3,
        "muted": False,
        "chord_duration": 0.8,
        "hold_seconds": 0.15,
    },
    "pitch_estimator": {
        "min_frequency": 80.0,
        "max_frequency": 800.0,
        "min_correlation": 0.01,
        "window_size": 2048,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frames_per_buffer": 512,
        "channels": 1,
    },
    "synth": {
        "sample_rate": 44100,
    },
}

# Range checks applied to stored values; a failing value reverts to its default
VALUE_CHECKS: Dict[str, Dict[str, Callable[[Any], bool]]] = {
    "session": {
        "interval": lambda v: 1.0 <= v <= 5.0,
        "volume": lambda v: 0.0 <= v <= 1.0,
        "chord_duration": lambda v: v > 0,
        "hold_seconds": lambda v: v >= 0,
    },
    "pitch_estimator": {
        "min_frequency": lambda v: v > 0,
        "max_frequency": lambda v: v > 0,
        "window_size": lambda v: v > 0,
    },
}

# Checks across keys of one section; failing keys all revert to their defaults
RANGE_CHECKS: Dict[str, List[Tuple[Tuple[str, ...], Callable[..., bool]]]] = {
    "pitch_estimator": [
        (("min_frequency", "max_frequency"), lambda lo, hi: lo < hi),
    ],
}


class ConfigManager:
    """Loads, validates and persists the drill's settings sections."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory holding the section files, or None for ~/.config/tonic_drill
        """
        self.config_dir = Path(os.path.expanduser(config_dir or DEFAULT_CONFIG_DIR))
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)
        self.configs: Dict[str, Dict[str, Any]] = {
            name: self.load_config(name, defaults)
            for name, defaults in self.default_configs.items()
        }

    def _path(self, name: str) -> Path:
        return self.config_dir / f"{name}.json"

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Read one section, writing the defaults when the file does not exist yet.

        Unreadable files are logged and replaced by the defaults in memory;
        missing keys and out-of-range values are filled from the defaults.
        """
        config_file = self._path(name)
        if not config_file.exists():
            config = dict(default_config)
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                stored = json.load(f)
            if not isinstance(stored, dict):
                raise ValueError("configuration root must be an object")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return dict(default_config)

        logger.info(f"Loaded configuration from {config_file}")
        config = dict(default_config)
        config.update(stored)
        return self._checked(name, config, default_config)

    @staticmethod
    def _checked(
        name: str, config: Dict[str, Any], default_config: Dict[str, Any]
    ) -> Dict[str, Any]:
        for key, check in VALUE_CHECKS.get(name, {}).items():
            value = config.get(key)
            try:
                ok = check(value)
            except TypeError:
                ok = False
            if not ok:
                logger.warning(
                    f"Ignoring {name}.{key}={value!r}, using {default_config[key]!r}"
                )
                config[key] = default_config[key]

        for keys, check in RANGE_CHECKS.get(name, []):
            if not check(*(config[k] for k in keys)):
                logger.warning(
                    f"Ignoring inconsistent {name} values for {', '.join(keys)}, using defaults"
                )
                for k in keys:
                    config[k] = default_config[k]
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Write one section; returns False when the file cannot be written."""
        config_file = self._path(name)
        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False
        logger.info(f"Saved configuration to {config_file}")
        return True

    def get_config(self, name: str) -> Dict[str, Any]:
        """Copy of a section, or an empty dict for unknown names."""
        return dict(self.configs.get(name, {}))

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Merge ``updates`` into a section and persist it.

        Returns:
            True if the section exists and was saved
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Restore a section to its defaults and persist it."""
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = dict(self.default_configs[name])
        return self.save_config(name, self.configs[name])
