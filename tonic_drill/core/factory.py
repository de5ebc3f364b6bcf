"""Factory for creating Tonic Drill components."""

from typing import Optional, Dict, Type

from ..logger import get_logger
from ..audio.audio_input import SoundDeviceInput
from ..audio.chord_synth import ChordSynthesizer
from ..audio.note_detection_service import NoteDetectionService
from ..audio.pitch_estimator import PitchEstimator
from ..session_controller import SessionController
from .config import ConfigManager
from .interfaces import IAudioInput, IChordPlayer, INoteDetectionService, IPitchEstimator

logger = get_logger(__name__)


class ComponentFactory:
    """Factory for creating Tonic Drill components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        # Register default component implementations
        self.pitch_estimator_classes: Dict[str, Type[IPitchEstimator]] = {
            "default": PitchEstimator,
        }

        self.audio_input_classes: Dict[str, Type[IAudioInput]] = {
            "default": SoundDeviceInput,
        }

        self.synthesizer_classes: Dict[str, Type[IChordPlayer]] = {
            "default": ChordSynthesizer,
        }

    def create_pitch_estimator(
        self, implementation: str = "default", **kwargs
    ) -> IPitchEstimator:
        """Create a pitch estimator.

        Args:
            implementation: Name of the implementation to use
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Pitch estimator instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.pitch_estimator_classes:
            raise ValueError(f"Unknown pitch estimator implementation: {implementation}")

        config = self.config_manager.get_config("pitch_estimator")
        config.update(kwargs)

        instance = self.pitch_estimator_classes[implementation](**config)
        logger.info(f"Created pitch estimator: {implementation}")
        return instance

    def create_audio_input(
        self, implementation: str = "default", **kwargs
    ) -> IAudioInput:
        """Create an audio input.

        Args:
            implementation: Name of the implementation to use
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Audio input instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.audio_input_classes:
            raise ValueError(f"Unknown audio input implementation: {implementation}")

        config = self.config_manager.get_config("audio_input")
        config.setdefault(
            "window_size", self.config_manager.get_config("pitch_estimator").get("window_size")
        )
        config.update(kwargs)

        instance = self.audio_input_classes[implementation](**config)
        logger.info(f"Created audio input: {implementation}")
        return instance

    def create_synthesizer(
        self, implementation: str = "default", **kwargs
    ) -> IChordPlayer:
        """Create a chord synthesizer.

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.synthesizer_classes:
            raise ValueError(f"Unknown synthesizer implementation: {implementation}")

        config = self.config_manager.get_config("synth")
        config.update(kwargs)

        instance = self.synthesizer_classes[implementation](**config)
        logger.info(f"Created synthesizer: {implementation}")
        return instance

    def create_note_detection_service(self, **kwargs) -> INoteDetectionService:
        """Create the per-frame pitch loop, building missing components from config."""
        if "audio_input" not in kwargs:
            kwargs["audio_input"] = self.create_audio_input()

        if "pitch_estimator" not in kwargs:
            kwargs["pitch_estimator"] = self.create_pitch_estimator()

        instance = NoteDetectionService(**kwargs)
        logger.info("Created note detection service")
        return instance

    def create_session_controller(self, **overrides) -> SessionController:
        """Create a session controller from the 'session' configuration.

        Args:
            **overrides: Session settings or components that replace configured values
        """
        settings = self.config_manager.get_config("session")
        settings.update({k: v for k, v in overrides.items() if v is not None})

        if "detection_service" not in settings:
            settings["detection_service"] = self.create_note_detection_service()
        if "synthesizer" not in settings:
            settings["synthesizer"] = self.create_synthesizer()

        controller = SessionController(**settings)
        logger.info("Created session controller")
        return controller
