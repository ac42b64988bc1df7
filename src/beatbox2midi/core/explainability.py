"""
Human-readable account of how each event was classified and quantized.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Dict, Any

from ..classification.types import Event, EventClass, EventFeatures
from .quantizer import QuantizedEvent

PERFECT_TIMING_MS = 1.0


def describe_timing(snap_delta_ms: float) -> str:
    if abs(snap_delta_ms) < PERFECT_TIMING_MS:
        return "perfect timing"
    if snap_delta_ms > 0:
        return f"late by {snap_delta_ms:.1f}ms"
    return f"early by {abs(snap_delta_ms):.1f}ms"


@dataclass(frozen=True)
class EventDecision:
    """Per-event record of the classification and quantization outcome."""
    event_id: str
    timestamp_ms: float
    duration_ms: float
    event_class: EventClass
    confidence: float
    features: EventFeatures
    quantized_timestamp_ms: Optional[float]
    snap_delta_ms: Optional[float]
    grid_position: Optional[str]
    reasoning: str

    @classmethod
    def from_pipeline_data(cls, event: Event,
                           quantized: Optional[QuantizedEvent] = None) -> 'EventDecision':
        """
        Build the decision record for one event.

        Args:
            event: Classified event
            quantized: The event's quantized form, if it was quantized

        Returns:
            EventDecision
        """
        reasons = [
            f"Classified as {event.event_class.display_name} "
            f"({int(event.confidence * 100)}% confidence) based on features."
        ]

        quantized_timestamp = snap_delta = position = None
        if quantized is not None:
            position = quantized.grid_position.label()
            snap_delta = quantized.snap_delta_ms
            quantized_timestamp = quantized.quantized_timestamp_ms
            reasons.append(
                f"Quantized to grid position {position} "
                f"({describe_timing(snap_delta)}, adjusted {snap_delta:.1f}ms)."
            )

        return cls(
            event_id=event.id,
            timestamp_ms=event.timestamp_ms,
            duration_ms=event.duration_ms,
            event_class=event.event_class,
            confidence=event.confidence,
            features=event.features,
            quantized_timestamp_ms=quantized_timestamp,
            snap_delta_ms=snap_delta,
            grid_position=position,
            reasoning=" ".join(reasons),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_id': self.event_id,
            'timestamp_ms': self.timestamp_ms,
            'duration_ms': self.duration_ms,
            'class': self.event_class.value,
            'confidence': self.confidence,
            'features': self.features.to_dict(),
            'quantized_timestamp_ms': self.quantized_timestamp_ms,
            'snap_delta_ms': self.snap_delta_ms,
            'grid_position': self.grid_position,
            'reasoning': self.reasoning,
        }


def explain_events(events: Sequence[Event],
                   quantized: Sequence[QuantizedEvent] = ()) -> List[EventDecision]:
    """Decision records for events, matched to quantized events by event id."""
    by_id = {q.event.id: q for q in quantized}
    return [EventDecision.from_pipeline_data(event, by_id.get(event.id)) for event in events]
