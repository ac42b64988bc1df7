"""
Event classes, feature vectors and detected events.
"""

import math
import uuid
import numpy as np
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple

from ..config.constants import CENTROID_DISTANCE_SCALE_HZ


def _clamp_unit(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


class EventClass(Enum):
    """
    Beatbox sound categories. Declaration order is the tie-break order.
    """
    BILABIAL_PLOSIVE = 'BilabialPlosive'  # B/P: kick, synth bass
    HIHAT_NOISE = 'HihatNoise'            # S/SH/TS: hi-hats, cymbals
    CLICK = 'Click'                       # T/K: snare, clap, rimshot
    HUM_VOICED = 'HumVoiced'              # hums and vowels: pads

    @classmethod
    def from_string(cls, name: str) -> 'EventClass':
        """
        Parse a class name in PascalCase or snake_case.

        Unknown names fall back to CLICK.
        """
        for member in cls:
            if name == member.value or name == member.name.lower():
                return member
        return cls.CLICK

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    def __str__(self) -> str:
        return self.value


_DISPLAY_NAMES = {
    EventClass.BILABIAL_PLOSIVE: 'B/P (Kick)',
    EventClass.HIHAT_NOISE: 'S/TS (Hi-hat)',
    EventClass.CLICK: 'T/K (Snare)',
    EventClass.HUM_VOICED: 'Hum (Pad)',
}


@dataclass(frozen=True)
class EventFeatures:
    """
    Spectral and temporal summary of a short audio window.

    Attributes:
        spectral_centroid: Magnitude-weighted mean frequency in Hz
        zcr: Zero crossings per sample
        low_band_energy: Share of spectral energy below 200 Hz
        mid_band_energy: Share of spectral energy between 200 and 2000 Hz
        high_band_energy: Share of spectral energy above 2000 Hz
    """
    spectral_centroid: float = 0.0
    zcr: float = 0.0
    low_band_energy: float = 0.0
    mid_band_energy: float = 0.0
    high_band_energy: float = 0.0

    @classmethod
    def zero(cls) -> 'EventFeatures':
        return cls()

    def as_vector(self) -> np.ndarray:
        """Feature axes with the centroid scaled down to roughly [0, 1]."""
        return np.array([
            self.spectral_centroid / CENTROID_DISTANCE_SCALE_HZ,
            self.zcr,
            self.low_band_energy,
            self.mid_band_energy,
            self.high_band_energy,
        ], dtype=np.float64)

    def distance_to(self, other: 'EventFeatures') -> float:
        """Euclidean distance over the scaled feature axes."""
        return float(np.linalg.norm(self.as_vector() - other.as_vector()))

    def to_dict(self) -> Dict[str, float]:
        return {
            'spectral_centroid': self.spectral_centroid,
            'zcr': self.zcr,
            'low_band_energy': self.low_band_energy,
            'mid_band_energy': self.mid_band_energy,
            'high_band_energy': self.high_band_energy,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventFeatures':
        return cls(
            spectral_centroid=float(data.get('spectral_centroid', 0.0)),
            zcr=float(data.get('zcr', 0.0)),
            low_band_energy=float(data.get('low_band_energy', 0.0)),
            mid_band_energy=float(data.get('mid_band_energy', 0.0)),
            high_band_energy=float(data.get('high_band_energy', 0.0)),
        )


@dataclass(frozen=True)
class ClassificationResult:
    """
    Result of classifying one feature vector.

    Attributes:
        event_class: Winning class
        confidence: Winning score in [0, 1]
        scores: ``(class, score)`` pairs for every class in declaration order
    """
    event_class: EventClass
    confidence: float
    scores: Tuple[Tuple[EventClass, float], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'confidence', _clamp_unit(self.confidence))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_class': self.event_class.value,
            'confidence': self.confidence,
            'scores': {cls.value: score for cls, score in self.scores},
        }


@dataclass(frozen=True)
class Event:
    """A detected, classified beatbox event."""
    timestamp_ms: float
    duration_ms: float
    event_class: EventClass
    confidence: float
    features: EventFeatures = field(default_factory=EventFeatures)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        object.__setattr__(self, 'confidence', _clamp_unit(self.confidence))

    @classmethod
    def create(cls, timestamp_ms: float, duration_ms: float, event_class: EventClass,
               confidence: float, features: EventFeatures) -> 'Event':
        """Create an event with a freshly generated id."""
        return cls(
            timestamp_ms=float(timestamp_ms),
            duration_ms=float(duration_ms),
            event_class=event_class,
            confidence=confidence,
            features=features,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp_ms': self.timestamp_ms,
            'duration_ms': self.duration_ms,
            'class': self.event_class.value,
            'confidence': self.confidence,
            'features': self.features.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        kwargs = {}
        if 'id' in data:
            kwargs['id'] = str(data['id'])
        return cls(
            timestamp_ms=float(data['timestamp_ms']),
            duration_ms=float(data.get('duration_ms', 0.0)),
            event_class=EventClass.from_string(data.get('class', '')),
            confidence=float(data.get('confidence', 0.0)),
            features=EventFeatures.from_dict(data.get('features', {})),
            **kwargs
        )
