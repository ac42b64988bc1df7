"""
Spectral feature extraction for event classification.
"""

import numpy as np
from functools import lru_cache
from typing import Optional
from scipy.fft import rfft
from scipy.signal import get_window

from ..config.settings import FeatureSettings
from ..config.constants import LOW_BAND_MAX_HZ, MID_BAND_MAX_HZ
from ..utils.logging import get_logger
from .types import EventFeatures

logger = get_logger(__name__)


@lru_cache(maxsize=16)
def hann_window(size: int) -> np.ndarray:
    """Periodic Hann window, ``0.5 * (1 - cos(2*pi*i/size))``."""
    window = get_window('hann', size, fftbins=True)
    window.flags.writeable = False
    return window


def magnitude_spectrum(frame: np.ndarray) -> np.ndarray:
    """
    Hann-windowed real FFT magnitudes.

    Args:
        frame: Sample frame, or a stack of frames along the last axis

    Returns:
        ``frame_length // 2 + 1`` magnitudes per frame
    """
    frame = np.asarray(frame, dtype=np.float64)
    if frame.shape[-1] == 0:
        return np.zeros(frame.shape[:-1] + (0,))
    return np.abs(rfft(frame * hann_window(frame.shape[-1]), axis=-1))


def zero_crossing_rate(samples: np.ndarray) -> float:
    """Sign changes per sample, treating zero as positive."""
    if samples.size < 2:
        return 0.0
    positive = samples >= 0
    crossings = np.count_nonzero(positive[1:] != positive[:-1])
    return float(crossings / (samples.size - 1))


def spectral_centroid(spectrum: np.ndarray, bin_width: float) -> float:
    total = spectrum.sum()
    if total <= 0:
        return 0.0
    freqs = np.arange(spectrum.size) * bin_width
    return float((freqs * spectrum).sum() / total)


def band_energies(spectrum: np.ndarray, bin_width: float):
    """
    Share of spectral power in the low, mid and high bands.

    Returns:
        Tuple of (low, mid, high) ratios, all zero for a silent spectrum
    """
    power = spectrum ** 2
    total = power.sum()
    if total <= 0 or bin_width <= 0:
        return 0.0, 0.0, 0.0

    low_end = int(LOW_BAND_MAX_HZ / bin_width)
    mid_end = max(low_end, int(MID_BAND_MAX_HZ / bin_width))

    low = power[:low_end].sum()
    mid = power[low_end:mid_end].sum()
    high = power[mid_end:].sum()
    return float(low / total), float(mid / total), float(high / total)


def extract_features(samples: np.ndarray, sample_rate: int,
                     n_fft: Optional[int] = None,
                     max_fft_size: int = 2048) -> EventFeatures:
    """
    Extract spectral centroid, zero-crossing rate and band energy ratios.

    The spectrum is taken over the head of the input: ``n_fft`` samples when
    given, otherwise ``min(len(samples), max_fft_size)``. Shorter input is
    zero padded. The zero-crossing rate always covers the whole input.

    Args:
        samples: Mono samples
        sample_rate: Sample rate in Hz
        n_fft: Explicit frame length
        max_fft_size: Upper bound on the frame length when n_fft is None

    Returns:
        EventFeatures, all zero for empty input
    """
    samples = np.asarray(samples, dtype=np.float64).ravel()
    if samples.size == 0 or sample_rate <= 0:
        return EventFeatures.zero()

    frame_size = int(n_fft) if n_fft else min(samples.size, int(max_fft_size))
    if frame_size <= 0:
        return EventFeatures.zero()

    frame = np.zeros(frame_size)
    head = samples[:frame_size]
    frame[:head.size] = head

    spectrum = magnitude_spectrum(frame)
    bin_width = sample_rate / frame_size
    low, mid, high = band_energies(spectrum, bin_width)

    return EventFeatures(
        spectral_centroid=spectral_centroid(spectrum, bin_width),
        zcr=zero_crossing_rate(samples),
        low_band_energy=low,
        mid_band_energy=mid,
        high_band_energy=high,
    )


def extract_features_for_window(samples: np.ndarray, sample_rate: int,
                                start_ms: float, duration_ms: float,
                                max_fft_size: int = 2048) -> EventFeatures:
    """
    Extract features from a slice of a mono buffer.

    Args:
        samples: Mono samples for the whole clip
        sample_rate: Sample rate in Hz
        start_ms: Slice start
        duration_ms: Slice length, clipped to the buffer end

    Returns:
        EventFeatures, zero when the slice is empty or out of range
    """
    if sample_rate <= 0 or start_ms < 0 or duration_ms <= 0:
        return EventFeatures.zero()

    start = int(start_ms / 1000.0 * sample_rate)
    length = int(duration_ms / 1000.0 * sample_rate)
    end = min(start + length, len(samples))

    if start >= len(samples) or start >= end:
        return EventFeatures.zero()

    return extract_features(samples[start:end], sample_rate, max_fft_size=max_fft_size)


class FeatureExtractor:
    """
    Feature extractor bound to a set of feature settings.
    """

    def __init__(self, settings: Optional[FeatureSettings] = None):
        """
        Initialize feature extractor.

        Args:
            settings: Feature settings
        """
        self.settings = settings or FeatureSettings()
        self.max_fft_size = self.settings.max_fft_size
        self.event_window_ms = self.settings.event_window_ms

    def extract(self, samples: np.ndarray, sample_rate: int) -> EventFeatures:
        return extract_features(samples, sample_rate, max_fft_size=self.max_fft_size)

    def extract_at(self, samples: np.ndarray, sample_rate: int, start_ms: float,
                   duration_ms: Optional[float] = None) -> EventFeatures:
        """
        Extract features for the window starting at an event onset.

        Args:
            samples: Mono samples for the whole clip
            sample_rate: Sample rate in Hz
            start_ms: Onset time
            duration_ms: Window length, defaults to ``event_window_ms``

        Returns:
            EventFeatures for the window
        """
        if duration_ms is None:
            duration_ms = self.event_window_ms
        return extract_features_for_window(
            samples, sample_rate, start_ms, duration_ms, max_fft_size=self.max_fft_size
        )
