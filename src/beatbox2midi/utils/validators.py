"""
Validation utilities for Beatbox2MIDI.
"""

import math
import os
from pathlib import Path

from .exceptions import ValidationError

VALID_AUDIO_FORMATS = ['.wav', '.flac', '.ogg', '.mp3', '.aiff', '.aif']


def validate_audio_file(file_path: str) -> str:
    """
    Validate that an audio file exists and has a supported format.

    Args:
        file_path: Path to the audio file

    Returns:
        Absolute path to the validated file

    Raises:
        ValidationError: If file doesn't exist or has unsupported format
    """
    if not os.path.exists(file_path):
        raise ValidationError(f"Audio file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    if file_ext not in VALID_AUDIO_FORMATS:
        raise ValidationError(
            f"Unsupported audio format: {file_ext}. "
            f"Supported formats: {', '.join(VALID_AUDIO_FORMATS)}"
        )

    return os.path.abspath(file_path)


def _require_finite(name: str, value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value}")
    return value


def _require_unit_interval(name: str, value) -> float:
    value = _require_finite(name, value)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be between 0 and 1, got {value}")
    return value


def validate_onset_settings(settings):
    """
    Validate onset detection settings.

    Args:
        settings: OnsetSettings instance

    Returns:
        The same settings

    Raises:
        ValidationError: If any field is out of range
    """
    if int(settings.window_size) <= 0:
        raise ValidationError(f"window_size must be positive, got {settings.window_size}")
    if int(settings.hop_size) <= 0:
        raise ValidationError(f"hop_size must be positive, got {settings.hop_size}")
    if _require_finite('threshold_factor', settings.threshold_factor) < 0:
        raise ValidationError(f"threshold_factor must be >= 0, got {settings.threshold_factor}")
    if _require_finite('min_onset_gap_ms', settings.min_onset_gap_ms) < 0:
        raise ValidationError(f"min_onset_gap_ms must be >= 0, got {settings.min_onset_gap_ms}")
    return settings


def validate_tempo_settings(settings):
    """
    Validate tempo estimation settings.

    Raises:
        ValidationError: If the bpm range or histogram size is invalid
    """
    min_bpm = _require_finite('min_bpm', settings.min_bpm)
    max_bpm = _require_finite('max_bpm', settings.max_bpm)
    if min_bpm <= 0:
        raise ValidationError(f"min_bpm must be positive, got {min_bpm}")
    if max_bpm <= min_bpm:
        raise ValidationError(f"max_bpm ({max_bpm}) must be greater than min_bpm ({min_bpm})")
    if int(settings.histogram_bins) < 3:
        raise ValidationError(f"histogram_bins must be at least 3, got {settings.histogram_bins}")
    if int(settings.min_onsets) < 2:
        raise ValidationError(f"min_onsets must be at least 2, got {settings.min_onsets}")
    return settings


def validate_quantize_settings(settings):
    """
    Validate quantization settings.

    Raises:
        ValidationError: If strength, swing or humanize amounts are out of range
    """
    _require_unit_interval('strength', settings.strength)
    _require_unit_interval('swing_amount', settings.swing_amount)
    _require_unit_interval('humanize_amount', settings.humanize_amount)
    if _require_finite('lookahead_ms', settings.lookahead_ms) < 0:
        raise ValidationError(f"lookahead_ms must be >= 0, got {settings.lookahead_ms}")
    return settings


def validate_grid_settings(settings):
    """
    Validate grid settings.

    Raises:
        ValidationError: If the bpm, swing or bar count is invalid
    """
    if settings.bpm is not None and _require_finite('bpm', settings.bpm) <= 0:
        raise ValidationError(f"bpm must be positive, got {settings.bpm}")
    _require_unit_interval('swing_amount', settings.swing_amount)
    if settings.bar_count is not None and int(settings.bar_count) < 0:
        raise ValidationError(f"bar_count must be >= 0, got {settings.bar_count}")
    return settings


def validate_classification_settings(settings, valid_backends=('heuristic', 'calibration')):
    """
    Validate classification settings.

    Raises:
        ValidationError: If the backend is unknown or k / weights are invalid
    """
    if settings.backend not in valid_backends:
        raise ValidationError(
            f"Unknown classifier backend: {settings.backend}. "
            f"Valid options: {', '.join(valid_backends)}"
        )
    if int(settings.k) < 1:
        raise ValidationError(f"k must be at least 1, got {settings.k}")
    for name in ('centroid_weight', 'zcr_weight', 'energy_weight'):
        if _require_finite(name, getattr(settings, name)) < 0:
            raise ValidationError(f"{name} must be >= 0, got {getattr(settings, name)}")
    return settings
