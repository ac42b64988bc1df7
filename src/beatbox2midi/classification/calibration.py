"""
User calibration profiles and the nearest-neighbour classifier built on them.
"""

import json
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any, Tuple

import numpy as np

from ..config.constants import DEFAULT_KNN_K, MIN_SAMPLES_PER_CLASS, PROFILE_VERSION
from ..utils.exceptions import EmptyProfileError, ValidationError
from ..utils.logging import get_logger
from .types import EventClass, EventFeatures, ClassificationResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class CalibrationSample:
    """One labelled recording made during calibration."""
    event_class: EventClass
    features: EventFeatures
    raw_window: Tuple[float, ...] = ()
    sample_rate: int = 44100
    notes: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'raw_window', tuple(float(x) for x in self.raw_window))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'class': self.event_class.value,
            'features': self.features.to_dict(),
            'raw_window': list(self.raw_window),
            'sample_rate': self.sample_rate,
        }
        if self.notes is not None:
            data['notes'] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalibrationSample':
        return cls(
            event_class=EventClass.from_string(data['class']),
            features=EventFeatures.from_dict(data.get('features', {})),
            raw_window=data.get('raw_window', ()),
            sample_rate=int(data.get('sample_rate', 44100)),
            notes=data.get('notes'),
        )


def _seeded_samples() -> 'OrderedDict[EventClass, List[CalibrationSample]]':
    return OrderedDict((event_class, []) for event_class in EventClass)


@dataclass
class CalibrationProfile:
    """
    Labelled samples for one performer, grouped by class.

    The sample mapping always holds every class, in EventClass order, so
    iteration order is stable across runs and serialisation round trips.
    """
    name: str
    samples: 'OrderedDict[EventClass, List[CalibrationSample]]' = field(default_factory=_seeded_samples)
    version: int = PROFILE_VERSION
    created_at: Optional[str] = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    notes: Optional[str] = None

    def __post_init__(self):
        seeded = _seeded_samples()
        for event_class, samples in self.samples.items():
            seeded[event_class].extend(samples)
        self.samples = seeded

    def add_sample(self, sample: CalibrationSample):
        self.samples[sample.event_class].append(sample)

    def get_samples(self, event_class: EventClass) -> List[CalibrationSample]:
        return list(self.samples[event_class])

    def total_samples(self) -> int:
        return sum(len(samples) for samples in self.samples.values())

    def is_sufficient(self, min_per_class: int = MIN_SAMPLES_PER_CLASS) -> bool:
        """True when every class has at least ``min_per_class`` samples."""
        return all(len(samples) >= min_per_class for samples in self.samples.values())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'samples': {
                event_class.value: [sample.to_dict() for sample in samples]
                for event_class, samples in self.samples.items()
            },
            'version': self.version,
        }
        if self.created_at is not None:
            data['created_at'] = self.created_at
        if self.notes is not None:
            data['notes'] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalibrationProfile':
        profile = cls(
            name=data['name'],
            version=int(data.get('version', PROFILE_VERSION)),
            created_at=data.get('created_at'),
            notes=data.get('notes'),
        )
        for class_name, samples in (data.get('samples') or {}).items():
            event_class = EventClass.from_string(class_name)
            for sample_data in samples:
                sample_data = dict(sample_data)
                sample_data.setdefault('class', class_name)
                profile.samples[event_class].append(CalibrationSample.from_dict(sample_data))
        return profile

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text) -> 'CalibrationProfile':
        """
        Parse a profile from JSON text or bytes.

        Raises:
            ValidationError: If the document is not a valid profile
        """
        try:
            return cls.from_dict(json.loads(text))
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError(f"Invalid calibration profile: {e}")


class KnnClassifier:
    """
    k-nearest-neighbour classifier over a calibration profile.

    Neighbours are ranked by distance with ties kept in class order, then
    insertion order. Vote ties go to the class whose nearest sample ranks first.
    """

    def __init__(self, profile: CalibrationProfile, k: int = DEFAULT_KNN_K):
        if int(k) < 1:
            raise ValidationError(f"k must be at least 1, got {k}")
        self.profile = profile
        self.k = int(k)

    def classify(self, features: EventFeatures) -> ClassificationResult:
        """
        Classify by majority vote of the k nearest calibration samples.

        Args:
            features: Features of the event window

        Returns:
            ClassificationResult; ``scores`` holds each class's vote share

        Raises:
            EmptyProfileError: If the profile has no samples
        """
        labels = []
        vectors = []
        for event_class, samples in self.profile.samples.items():
            for sample in samples:
                labels.append(event_class)
                vectors.append(sample.features.as_vector())

        if not labels:
            raise EmptyProfileError(f"Calibration profile '{self.profile.name}' has no samples")

        distances = np.linalg.norm(np.vstack(vectors) - features.as_vector(), axis=1)
        ranked = np.argsort(distances, kind='stable')
        neighbours = min(self.k, len(labels))

        votes: Dict[EventClass, int] = {}
        for index in ranked[:neighbours]:
            event_class = labels[index]
            votes[event_class] = votes.get(event_class, 0) + 1

        # dicts keep first-seen order, which is rank order of each class's nearest sample
        best_class = None
        best_votes = 0
        for event_class, count in votes.items():
            if count > best_votes:
                best_class, best_votes = event_class, count

        scores = tuple((event_class, votes.get(event_class, 0) / neighbours) for event_class in EventClass)
        return ClassificationResult(
            event_class=best_class,
            confidence=best_votes / neighbours,
            scores=scores,
        )
