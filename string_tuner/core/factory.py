"""Factory for creating String Tuner components."""

from typing import Optional, Dict, Type

from ..logger import get_logger
from ..audio.pitch_estimator import AutocorrelationPitchEstimator
from ..audio.sample_source import WavFileSource
from ..engine.state_machine import TuningStateMachine
from ..engine.tuner_engine import TunerEngine
from .config import ConfigManager
from .interfaces import IPitchEstimator, ISampleSource

logger = get_logger(__name__)


class ComponentFactory:
    """Factory for creating String Tuner components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        self.pitch_estimator_classes: Dict[str, Type[IPitchEstimator]] = {
            "default": AutocorrelationPitchEstimator,
        }

    def create_pitch_estimator(
        self, implementation: str = "default", **kwargs
    ) -> IPitchEstimator:
        """Create a pitch estimator.

        Args:
            implementation: Name of the implementation to use
            **kwargs: Overrides for the pitch_estimator configuration

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.pitch_estimator_classes:
            raise ValueError(f"Unknown pitch estimator implementation: {implementation}")

        config = self.config_manager.get_config("pitch_estimator")
        config.update(kwargs)

        cls = self.pitch_estimator_classes[implementation]
        instance = cls(**config)

        logger.info(f"Created pitch estimator: {implementation}")
        return instance

    def create_microphone_source(self, **kwargs) -> ISampleSource:
        """Create a live microphone source from the sample_source configuration."""
        config = self.config_manager.get_config("sample_source")
        config.update({k: v for k, v in kwargs.items() if v is not None})

        # Loads PortAudio
        from ..audio.microphone import SoundDeviceSource

        instance = SoundDeviceSource(**config)
        logger.info(f"Created microphone source: device={config.get('device_id')}")
        return instance

    def create_file_source(self, file_path: str, **kwargs) -> WavFileSource:
        """Create a source that replays a recorded file."""
        config = self.config_manager.get_config("sample_source")
        kwargs.setdefault("window_size", config["window_size"])

        instance = WavFileSource(file_path, **kwargs)
        logger.info(f"Created file source: {file_path}")
        return instance

    def create_engine(
        self,
        source: Optional[ISampleSource] = None,
        estimator: Optional[IPitchEstimator] = None,
        **kwargs,
    ) -> TunerEngine:
        """Create a tuner engine.

        Args:
            source: Sample source, or None to create a microphone source
            estimator: Pitch estimator, or None to create the default one
            **kwargs: Overrides for the engine configuration
        """
        config = self.config_manager.get_config("engine")
        config.update(kwargs)

        if source is None:
            source = self.create_microphone_source()
        if estimator is None:
            estimator = self.create_pitch_estimator()

        instance = TunerEngine(
            source=source,
            estimator=estimator,
            state_machine=TuningStateMachine(in_tune_cents=config["in_tune_cents"]),
            tick_interval=config["tick_interval"],
            reference_frequency=config["reference_frequency"],
        )

        logger.info("Created tuner engine")
        return instance
