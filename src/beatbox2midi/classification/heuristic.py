"""
Rule-based event classifier.

Each class gets a score from step functions over the spectral centroid, the
zero-crossing rate and the band energy ratios. The highest score wins.
"""

from dataclasses import dataclass
from typing import Optional

from ..config.constants import CENTROID_WEIGHT, ZCR_WEIGHT, ENERGY_WEIGHT
from ..config.settings import ClassificationSettings
from ..utils.logging import get_logger
from .types import EventClass, EventFeatures, ClassificationResult

logger = get_logger(__name__)

BILABIAL_BONUS = 0.3
HUM_LOW_CENTROID_PENALTY = 0.6
HUM_NO_HIGH_BAND_PENALTY = 0.7


@dataclass(frozen=True)
class ClassifierConfig:
    """Relative weight of each feature group in the class scores."""
    centroid_weight: float = CENTROID_WEIGHT
    zcr_weight: float = ZCR_WEIGHT
    energy_weight: float = ENERGY_WEIGHT

    @classmethod
    def from_settings(cls, settings: ClassificationSettings) -> 'ClassifierConfig':
        return cls(
            centroid_weight=settings.centroid_weight,
            zcr_weight=settings.zcr_weight,
            energy_weight=settings.energy_weight,
        )

    @property
    def total_weight(self) -> float:
        return self.centroid_weight + self.zcr_weight + self.energy_weight


def _clamp(score: float) -> float:
    return min(1.0, max(0.0, score))


class HeuristicClassifier:
    """
    Hand-tuned classifier for the four beatbox sound categories.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def classify(self, features: EventFeatures) -> ClassificationResult:
        """
        Score every class and pick the best one.

        Ties go to the class declared first in EventClass.

        Args:
            features: Features of the event window

        Returns:
            ClassificationResult with all four scores
        """
        scores = (
            (EventClass.BILABIAL_PLOSIVE, self.score_bilabial_plosive(features)),
            (EventClass.HIHAT_NOISE, self.score_hihat_noise(features)),
            (EventClass.CLICK, self.score_click(features)),
            (EventClass.HUM_VOICED, self.score_hum_voiced(features)),
        )

        best_class, best_score = scores[0]
        for event_class, score in scores[1:]:
            if score > best_score:
                best_class, best_score = event_class, score

        return ClassificationResult(event_class=best_class, confidence=best_score, scores=scores)

    def _normalise(self, score: float) -> float:
        total = self.config.total_weight
        if total <= 0:
            return 0.0
        return _clamp(score / total)

    def score_bilabial_plosive(self, f: EventFeatures) -> float:
        """B/P: low centroid, low band dominant, few zero crossings."""
        c = f.spectral_centroid
        if c < 500:
            centroid_score = 1.0
        elif c < 800:
            centroid_score = 0.9
        elif c < 1200:
            centroid_score = 0.7
        elif c < 1800:
            centroid_score = 0.4
        else:
            centroid_score = 0.1

        low = f.low_band_energy
        if low > 0.45:
            energy_score = 1.0
        elif low > 0.35:
            energy_score = 0.9
        elif low > 0.25:
            energy_score = 0.6
        else:
            energy_score = 0.2

        if f.zcr < 0.1:
            zcr_score = 1.0
        elif f.zcr < 0.15:
            zcr_score = 0.85
        elif f.zcr < 0.25:
            zcr_score = 0.5
        else:
            zcr_score = 0.2

        score = (centroid_score * self.config.centroid_weight
                 + energy_score * self.config.energy_weight
                 + zcr_score * self.config.zcr_weight)

        if f.low_band_energy + f.mid_band_energy > 0.7 and f.high_band_energy < 0.3:
            score += BILABIAL_BONUS

        return self._normalise(score)

    def score_hihat_noise(self, f: EventFeatures) -> float:
        """S/TS: bright, noisy, high band dominant."""
        c = f.spectral_centroid
        if c > 4000:
            centroid_score = 1.0
        elif c > 3000:
            centroid_score = 0.8
        elif c > 2000:
            centroid_score = 0.5
        else:
            centroid_score = 0.1

        high = f.high_band_energy
        if high > 0.5:
            energy_score = 1.0
        elif high > 0.3:
            energy_score = 0.7
        else:
            energy_score = 0.2

        if f.zcr > 0.4:
            zcr_score = 1.0
        elif f.zcr > 0.3:
            zcr_score = 0.8
        elif f.zcr > 0.2:
            zcr_score = 0.5
        else:
            zcr_score = 0.2

        return self._normalise(centroid_score * self.config.centroid_weight
                               + energy_score * self.config.energy_weight
                               + zcr_score * self.config.zcr_weight)

    def score_click(self, f: EventFeatures) -> float:
        """T/K: mid centroid, mid band dominant, moderate zero crossings."""
        c = f.spectral_centroid
        if 1000 < c < 2500:
            centroid_score = 1.0
        elif 800 < c < 3000:
            centroid_score = 0.7
        elif 500 < c < 4000:
            centroid_score = 0.4
        else:
            centroid_score = 0.1

        mid = f.mid_band_energy
        if mid > 0.4:
            energy_score = 1.0
        elif mid > 0.3:
            energy_score = 0.7
        else:
            energy_score = 0.3

        if 0.2 < f.zcr < 0.5:
            zcr_score = 1.0
        elif f.zcr > 0.15:
            zcr_score = 0.7
        else:
            zcr_score = 0.3

        return self._normalise(centroid_score * self.config.centroid_weight
                               + energy_score * self.config.energy_weight
                               + zcr_score * self.config.zcr_weight)

    def score_hum_voiced(self, f: EventFeatures) -> float:
        """Hum: tonal, balanced bands, mid-range centroid."""
        if f.zcr < 0.1:
            zcr_score = 1.0
        elif f.zcr < 0.15:
            zcr_score = 0.8
        elif f.zcr < 0.25:
            zcr_score = 0.5
        else:
            zcr_score = 0.2

        balance = (1.0
                   - abs(f.low_band_energy - 0.33)
                   - abs(f.mid_band_energy - 0.33)
                   - abs(f.high_band_energy - 0.33))
        balance_score = max(0.0, balance)

        c = f.spectral_centroid
        if 200 < c < 1000:
            centroid_score = 1.0
        elif c < 1500:
            centroid_score = 0.7
        else:
            centroid_score = 0.4

        score = self._normalise(zcr_score * self.config.zcr_weight
                                + balance_score * self.config.energy_weight
                                + centroid_score * self.config.centroid_weight)

        # Plosives also have low ZCR; keep them from scoring as hums
        if f.low_band_energy > 0.4 and c < 800:
            score *= HUM_LOW_CENTROID_PENALTY
        if f.low_band_energy + f.mid_band_energy > 0.75 and f.high_band_energy < 0.25:
            score *= HUM_NO_HIGH_BAND_PENALTY

        return score
