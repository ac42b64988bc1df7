"""
Utility functions and helper classes.
"""

from .logging import setup_logging, get_logger
from .validators import validate_audio_file
from .exceptions import (
    Beatbox2MidiError,
    ProcessingError,
    ValidationError,
    ConfigurationError,
    ClassificationError,
    EmptyProfileError,
    AudioLoadError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "validate_audio_file",
    "Beatbox2MidiError",
    "ProcessingError",
    "ValidationError",
    "ConfigurationError",
    "ClassificationError",
    "EmptyProfileError",
    "AudioLoadError",
]
