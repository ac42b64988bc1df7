"""
Tempo estimation from inter-onset intervals.
"""

import math
from typing import List, Optional, Sequence, Tuple, Dict, Any
import numpy as np
from dataclasses import dataclass
from scipy.signal import find_peaks

from ..config.settings import TempoSettings
from ..config.constants import (
    FALLBACK_BPM, FALLBACK_INTERVAL_MS, HALF_DOUBLE_WEIGHT, SMOOTHING_WINDOW,
    MAX_TEMPO_PEAKS, PHASE_TESTS, BEAT_TOLERANCE_RATIO
)
from ..utils.logging import get_logger
from .onset_detector import Onset

logger = get_logger(__name__)


@dataclass(frozen=True)
class TempoEstimate:
    """Result of tempo estimation."""
    bpm: float
    confidence: float
    beat_positions_ms: Tuple[float, ...] = ()

    def __post_init__(self):
        confidence = float(self.confidence)
        if not math.isfinite(confidence):
            confidence = 0.0
        object.__setattr__(self, 'confidence', min(1.0, max(0.0, confidence)))
        object.__setattr__(self, 'beat_positions_ms', tuple(float(t) for t in self.beat_positions_ms))

    @classmethod
    def fallback(cls) -> 'TempoEstimate':
        return cls(bpm=FALLBACK_BPM, confidence=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bpm': self.bpm,
            'confidence': self.confidence,
            'beat_positions_ms': list(self.beat_positions_ms),
        }


def compute_iois(onset_times: Sequence[float]) -> np.ndarray:
    """Positive gaps between consecutive onset times."""
    times = np.asarray(onset_times, dtype=np.float64)
    if times.size < 2:
        return np.zeros(0)
    iois = np.diff(times)
    return iois[iois > 0]


def smooth_histogram(histogram: np.ndarray, window_size: int = SMOOTHING_WINDOW) -> np.ndarray:
    """Centered moving average; edge bins average only the neighbours they have."""
    size = histogram.size
    if size == 0:
        return histogram.copy()
    half = window_size // 2
    index = np.arange(size)
    start = np.maximum(index - half, 0)
    end = np.minimum(index + half + 1, size)
    cumulative = np.concatenate(([0.0], np.cumsum(histogram)))
    return (cumulative[end] - cumulative[start]) / (end - start)


class TempoEstimator:
    """
    Estimates tempo from a histogram of inter-onset intervals and fits a
    beat grid to the onsets.
    """

    def __init__(self, settings: Optional[TempoSettings] = None):
        """
        Initialize tempo estimator.

        Args:
            settings: Tempo estimation settings
        """
        self.settings = settings or TempoSettings()
        self.min_bpm = float(self.settings.min_bpm)
        self.max_bpm = float(self.settings.max_bpm)
        self.histogram_bins = int(self.settings.histogram_bins)
        self.min_onsets = int(self.settings.min_onsets)

    def _interval_range(self) -> Optional[Tuple[float, float, float]]:
        """(min_interval, max_interval, bin_width) in ms, or None when unusable."""
        if self.min_bpm <= 0 or self.max_bpm <= 0 or self.histogram_bins <= 0:
            return None
        min_interval = 60000.0 / self.max_bpm
        max_interval = 60000.0 / self.min_bpm
        if max_interval - min_interval < np.finfo(float).eps:
            return None
        return min_interval, max_interval, (max_interval - min_interval) / self.histogram_bins

    def build_ioi_histogram(self, iois: np.ndarray) -> np.ndarray:
        """
        Weighted, smoothed histogram of candidate beat intervals.

        Each IOI votes 1.0 for itself and 0.5 for its half and its double,
        counting only candidates inside the configured tempo range.
        """
        histogram = np.zeros(max(self.histogram_bins, 0))
        interval_range = self._interval_range()
        if interval_range is None:
            return histogram
        min_interval, max_interval, bin_width = interval_range

        for ioi in iois:
            for candidate, weight in ((ioi, 1.0),
                                      (ioi / 2.0, HALF_DOUBLE_WEIGHT),
                                      (ioi * 2.0, HALF_DOUBLE_WEIGHT)):
                if min_interval <= candidate <= max_interval:
                    index = min(int((candidate - min_interval) / bin_width), self.histogram_bins - 1)
                    histogram[index] += weight

        return smooth_histogram(histogram)

    def find_histogram_peaks(self, histogram: np.ndarray) -> List[Tuple[int, float]]:
        """
        Interior local maxima, tallest first, at most five.

        Flat-topped maxima count once at their middle bin.
        """
        if histogram.size < 3:
            return []
        peak_bins, _ = find_peaks(histogram)
        heights = histogram[peak_bins]
        order = np.argsort(-heights, kind='stable')[:MAX_TEMPO_PEAKS]
        return [(int(peak_bins[i]), float(heights[i])) for i in order]

    def select_best_tempo(self, peaks: List[Tuple[int, float]],
                          histogram: np.ndarray) -> Tuple[float, float]:
        """
        Turn the tallest peak into a beat interval and a confidence.

        Returns:
            Tuple of (interval_ms, confidence)
        """
        interval_range = self._interval_range()
        if not peaks or interval_range is None:
            return FALLBACK_INTERVAL_MS, 0.0
        min_interval, _, bin_width = interval_range

        best_bin, peak_height = peaks[0]
        interval_ms = min_interval + best_bin * bin_width

        mean = float(histogram.mean()) if histogram.size else 0.0
        if mean > 0 and math.isfinite(peak_height):
            raw = peak_height / (mean * 3.0)
            confidence = min(raw, 1.0) if math.isfinite(raw) else 0.0
        else:
            confidence = 0.0

        return interval_ms, confidence

    def generate_beat_grid(self, onset_times: np.ndarray, interval_ms: float) -> List[float]:
        """
        Fit a beat grid of the given interval to the onsets.

        Eight phase offsets spanning one interval from the first onset are
        scored, the best phase wins (the earliest on ties), and beats are
        emitted from it until one interval past the last onset.
        """
        if onset_times.size == 0 or interval_ms <= 0:
            return []

        first_onset = float(onset_times[0])
        last_onset = float(onset_times[-1])
        if last_onset - first_onset <= 0:
            return []

        phase_step = interval_ms / PHASE_TESTS
        best_phase = first_onset
        best_score = 0.0
        for i in range(PHASE_TESTS):
            phase = first_onset + i * phase_step
            score = self.score_beat_alignment(onset_times, phase, interval_ms, last_onset)
            if score > best_score:
                best_phase, best_score = phase, score

        beats = []
        beat_time = best_phase
        while beat_time <= last_onset + interval_ms:
            beats.append(beat_time)
            beat_time += interval_ms
        return beats

    @staticmethod
    def score_beat_alignment(onset_times: np.ndarray, phase: float,
                             interval_ms: float, end_time: float) -> float:
        """Sum of per-beat closeness to the nearest onset inside a 15% tolerance."""
        tolerance = interval_ms * BEAT_TOLERANCE_RATIO
        if interval_ms <= 0 or tolerance <= 0:
            return 0.0

        score = 0.0
        beat_time = phase
        while beat_time <= end_time:
            distance = float(np.min(np.abs(onset_times - beat_time)))
            if distance < tolerance:
                score += (tolerance - distance) / tolerance
            beat_time += interval_ms
        return score

    def estimate(self, onsets: Sequence[Onset]) -> TempoEstimate:
        """
        Estimate tempo and beat positions from detected onsets.

        Too few onsets, or no usable intervals, yield the 120 BPM fallback
        with zero confidence and no beats.

        Args:
            onsets: Onsets in time order

        Returns:
            TempoEstimate
        """
        if len(onsets) < self.min_onsets:
            logger.debug(f"Tempo fallback: {len(onsets)} onsets (need {self.min_onsets})")
            return TempoEstimate.fallback()

        if self._interval_range() is None:
            logger.warning(
                f"Tempo fallback: unusable range {self.min_bpm}-{self.max_bpm} BPM "
                f"with {self.histogram_bins} bins"
            )
            return TempoEstimate.fallback()

        onset_times = np.array([onset.timestamp_ms for onset in onsets], dtype=np.float64)
        iois = compute_iois(onset_times)
        if iois.size == 0:
            logger.debug("Tempo fallback: no positive inter-onset intervals")
            return TempoEstimate.fallback()

        histogram = self.build_ioi_histogram(iois)
        peaks = self.find_histogram_peaks(histogram)
        interval_ms, confidence = self.select_best_tempo(peaks, histogram)

        bpm = 60000.0 / interval_ms if interval_ms > 0 else FALLBACK_BPM
        beats = self.generate_beat_grid(onset_times, interval_ms)

        if self.min_bpm > 0 and self.max_bpm > 0:
            bpm = min(max(bpm, self.min_bpm), self.max_bpm)

        logger.info(f"Estimated tempo: {bpm:.1f} BPM (confidence {confidence:.2f}, {len(beats)} beats)")
        return TempoEstimate(bpm=bpm, confidence=confidence, beat_positions_ms=beats)


def estimate_tempo(onsets: Sequence[Onset], sample_rate: Optional[int] = None,
                   settings: Optional[TempoSettings] = None) -> TempoEstimate:
    """
    Estimate tempo with the given settings.

    ``sample_rate`` is accepted for call-site symmetry with onset detection;
    onset timestamps are already in milliseconds.
    """
    return TempoEstimator(settings).estimate(onsets)
