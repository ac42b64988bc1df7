"""
Spectral flux onset detection.
"""

from typing import List, Optional, Dict, Any
import numpy as np
import librosa
from dataclasses import dataclass

from ..config.settings import OnsetSettings
from ..config.constants import FLUX_EPSILON
from ..classification.feature_extractor import magnitude_spectrum
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Onset:
    """A detected note onset. ``strength`` is clamped to [0, 1]."""
    timestamp_ms: float
    strength: float

    def __post_init__(self):
        strength = float(self.strength)
        if np.isnan(strength):
            strength = 0.0
        object.__setattr__(self, 'strength', min(1.0, max(0.0, strength)))

    def to_dict(self) -> Dict[str, Any]:
        return {'timestamp_ms': self.timestamp_ms, 'strength': self.strength}


def compute_spectral_flux(samples: np.ndarray, window_size: int, hop_size: int) -> np.ndarray:
    """
    Positive spectral flux per analysis frame.

    Frames that would run past the end of the signal are dropped. The first
    frame has no predecessor and gets a flux of zero.

    Args:
        samples: Mono samples
        window_size: Frame length in samples
        hop_size: Frame step in samples

    Returns:
        One flux value per frame, empty when the signal is shorter than a frame
    """
    samples = np.ascontiguousarray(samples, dtype=np.float64)
    if window_size <= 0 or hop_size <= 0 or samples.size < window_size:
        return np.zeros(0)

    frames = librosa.util.frame(samples, frame_length=window_size, hop_length=hop_size, axis=0)
    spectra = magnitude_spectrum(frames)

    flux = np.zeros(spectra.shape[0])
    if spectra.shape[0] > 1:
        flux[1:] = np.clip(np.diff(spectra, axis=0), 0.0, None).sum(axis=1)
    return flux


def pick_onset_peaks(flux: np.ndarray, sample_rate: int, hop_size: int,
                     threshold_factor: float, min_onset_gap_ms: float) -> List[Onset]:
    """
    Select flux peaks above an adaptive threshold.

    A frame is an onset when it is a strict local maximum, exceeds
    ``mean + threshold_factor * std`` and is at least the minimum gap after
    the previous onset. The gap is counted from frame 0 for the first onset.
    """
    if flux.size < 2:
        return []

    mean = float(np.mean(flux))
    std = float(np.std(flux))
    threshold = mean + threshold_factor * std
    min_gap_frames = int(int(min_onset_gap_ms * sample_rate / 1000.0) / hop_size)

    onsets = []
    last_onset_frame = 0
    for i in range(1, flux.size - 1):
        value = flux[i]
        if value <= flux[i - 1] or value <= flux[i + 1] or value <= threshold:
            continue
        if i - last_onset_frame < min_gap_frames:
            continue
        onsets.append(Onset(
            timestamp_ms=i * hop_size / sample_rate * 1000.0,
            strength=(value - threshold) / (std + FLUX_EPSILON),
        ))
        last_onset_frame = i

    return onsets


class OnsetDetector:
    """
    Onset detector based on half-wave rectified spectral flux.
    """

    def __init__(self, settings: Optional[OnsetSettings] = None):
        """
        Initialize onset detector.

        Args:
            settings: Onset detection settings
        """
        self.settings = settings or OnsetSettings()
        self.window_size = int(self.settings.window_size)
        self.hop_size = int(self.settings.hop_size)
        self.threshold_factor = self.settings.threshold_factor
        self.min_onset_gap_ms = self.settings.min_onset_gap_ms

    def compute_spectral_flux(self, samples: np.ndarray) -> np.ndarray:
        return compute_spectral_flux(_as_mono(samples), self.window_size, self.hop_size)

    def detect_onsets(self, samples: np.ndarray, sample_rate: int) -> List[Onset]:
        """
        Detect onsets in a sample buffer.

        Degenerate input (empty, shorter than one window, bad rate or frame
        sizes) yields an empty list.

        Args:
            samples: Mono samples, or ``(channels, frames)`` to be mixed down
            sample_rate: Sample rate in Hz

        Returns:
            Onsets in time order
        """
        if sample_rate <= 0 or self.window_size <= 0 or self.hop_size <= 0:
            logger.debug("Onset detection skipped: invalid sample rate or frame sizes")
            return []

        flux = self.compute_spectral_flux(samples)
        if flux.size < 2:
            logger.debug(f"Onset detection skipped: {flux.size} flux frame(s)")
            return []

        onsets = pick_onset_peaks(
            flux, sample_rate, self.hop_size, self.threshold_factor, self.min_onset_gap_ms
        )
        logger.info(f"Detected {len(onsets)} onsets over {flux.size} frames")
        return onsets


def _as_mono(samples: np.ndarray) -> np.ndarray:
    samples = np.asarray(samples)
    if samples.ndim > 1:
        return librosa.to_mono(samples.astype(np.float32))
    return samples


def detect_onsets(samples: np.ndarray, sample_rate: int,
                  settings: Optional[OnsetSettings] = None) -> List[Onset]:
    """Detect onsets with the given settings, defaults when omitted."""
    return OnsetDetector(settings).detect_onsets(samples, sample_rate)
