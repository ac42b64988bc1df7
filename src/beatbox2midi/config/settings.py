"""
Configuration management for Beatbox2MIDI.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict, fields

from .constants import *
from ..utils.exceptions import ConfigurationError
from ..utils.logging import DEFAULT_FORMAT


@dataclass
class AudioSettings:
    """Audio ingestion settings."""
    sample_rate: Optional[int] = None  # None keeps the file's native rate


@dataclass
class FeatureSettings:
    """Spectral feature extraction settings."""
    max_fft_size: int = MAX_FFT_SIZE
    event_window_ms: float = EVENT_WINDOW_MS


@dataclass
class OnsetSettings:
    """Spectral flux onset detection settings."""
    window_size: int = ONSET_WINDOW_SIZE
    hop_size: int = ONSET_HOP_SIZE
    threshold_factor: float = ONSET_THRESHOLD_FACTOR
    min_onset_gap_ms: float = MIN_ONSET_GAP_MS


@dataclass
class ClassificationSettings:
    """Event classification settings."""
    backend: str = 'heuristic'
    k: int = DEFAULT_KNN_K
    centroid_weight: float = CENTROID_WEIGHT
    zcr_weight: float = ZCR_WEIGHT
    energy_weight: float = ENERGY_WEIGHT


@dataclass
class TempoSettings:
    """Tempo estimation settings."""
    min_bpm: float = MIN_BPM
    max_bpm: float = MAX_BPM
    histogram_bins: int = HISTOGRAM_BINS
    min_onsets: int = MIN_ONSETS


@dataclass
class GridSettings:
    """Musical grid settings."""
    bpm: Optional[float] = None  # None uses the estimated tempo
    time_signature: str = 'four_four'
    division: str = 'sixteenth'
    feel: str = 'straight'
    swing_amount: float = 0.0
    bar_count: Optional[int] = None  # None covers the whole clip


@dataclass
class QuantizeSettings:
    """Quantization settings."""
    strength: float = DEFAULT_QUANTIZE_STRENGTH
    swing_amount: float = 0.0
    lookahead_ms: float = DEFAULT_LOOKAHEAD_MS
    humanize_amount: float = 0.0
    humanize_seed: int = 0


@dataclass
class LoggingSettings:
    """Logging settings."""
    level: str = 'INFO'
    format: str = DEFAULT_FORMAT


_SECTIONS = {
    'audio': AudioSettings,
    'features': FeatureSettings,
    'onset': OnsetSettings,
    'classification': ClassificationSettings,
    'tempo': TempoSettings,
    'grid': GridSettings,
    'quantize': QuantizeSettings,
    'logging': LoggingSettings,
}


@dataclass
class Settings:
    """Main settings container."""
    audio: AudioSettings = field(default_factory=AudioSettings)
    features: FeatureSettings = field(default_factory=FeatureSettings)
    onset: OnsetSettings = field(default_factory=OnsetSettings)
    classification: ClassificationSettings = field(default_factory=ClassificationSettings)
    tempo: TempoSettings = field(default_factory=TempoSettings)
    grid: GridSettings = field(default_factory=GridSettings)
    quantize: QuantizeSettings = field(default_factory=QuantizeSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def load_from_file(cls, config_path: str) -> 'Settings':
        """
        Load settings from a YAML configuration file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        if config_data is not None and not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        return cls.from_dict(config_data or {})

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Settings':
        """
        Create settings from a dictionary.

        Args:
            config_data: Configuration data dictionary, one mapping per section

        Returns:
            Settings instance

        Raises:
            ConfigurationError: On unknown sections or keys
        """
        settings = cls()

        for section_name, section_data in config_data.items():
            section_cls = _SECTIONS.get(section_name)
            if section_cls is None:
                raise ConfigurationError(f"Unknown configuration section: {section_name}")
            if section_data is None:
                continue
            if not isinstance(section_data, dict):
                raise ConfigurationError(f"Section '{section_name}' must be a mapping")

            known = {f.name for f in fields(section_cls)}
            unknown = set(section_data) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown keys in section '{section_name}': {', '.join(sorted(unknown))}"
                )
            setattr(settings, section_name, section_cls(**section_data))

        return settings

    @classmethod
    def from_environment(cls) -> 'Settings':
        """
        Create settings from environment variables.

        Returns:
            Settings instance with environment overrides
        """
        settings = cls()

        if 'BEATBOX2MIDI_LOG_LEVEL' in os.environ:
            settings.logging.level = os.environ['BEATBOX2MIDI_LOG_LEVEL']

        if 'BEATBOX2MIDI_CLASSIFIER' in os.environ:
            settings.classification.backend = os.environ['BEATBOX2MIDI_CLASSIFIER']

        if 'BEATBOX2MIDI_QUANTIZE_STRENGTH' in os.environ:
            try:
                settings.quantize.strength = float(os.environ['BEATBOX2MIDI_QUANTIZE_STRENGTH'])
            except ValueError:
                pass

        if 'BEATBOX2MIDI_BPM' in os.environ:
            try:
                settings.grid.bpm = float(os.environ['BEATBOX2MIDI_BPM'])
            except ValueError:
                pass

        return settings

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert settings to dictionary.

        Returns:
            Settings as dictionary
        """
        return asdict(self)

    def save_to_file(self, config_path: str):
        """
        Save settings to a YAML configuration file.

        Args:
            config_path: Path to save the configuration file

        Raises:
            ConfigurationError: If file cannot be saved
        """
        try:
            config_dir = Path(config_path).parent
            config_dir.mkdir(parents=True, exist_ok=True)

            with open(config_path, 'w') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=True)

        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error saving configuration: {e}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_environment()
    return _settings


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from file or environment.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Settings instance
    """
    global _settings

    if config_path and os.path.exists(config_path):
        _settings = Settings.load_from_file(config_path)
    else:
        _settings = Settings.from_environment()

    return _settings
