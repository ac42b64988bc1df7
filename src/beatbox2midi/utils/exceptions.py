"""
Custom exceptions for Beatbox2MIDI.
"""


class Beatbox2MidiError(Exception):
    """Base exception for all Beatbox2MIDI errors."""
    pass


class ProcessingError(Beatbox2MidiError):
    """Error during analysis or quantization."""
    pass


class ValidationError(Beatbox2MidiError):
    """Error during input or parameter validation."""
    pass


class ConfigurationError(Beatbox2MidiError):
    """Error in configuration or settings."""
    pass


class ClassificationError(ProcessingError):
    """Error during event classification."""
    pass


class EmptyProfileError(ClassificationError):
    """Calibration classification requested against a profile with no samples."""
    pass


class AudioLoadError(ProcessingError):
    """Error loading audio files."""
    pass
