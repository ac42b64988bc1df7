"""
Unit tests for per-event decision records.
"""

import pytest

from beatbox2midi.classification.types import EventClass
from beatbox2midi.core.explainability import EventDecision, describe_timing, explain_events
from beatbox2midi.core.grid import Grid, GridDivision, TimeSignature
from beatbox2midi.core.quantizer import quantize_events
from beatbox2midi.config.settings import QuantizeSettings

from conftest import make_events


class TestDescribeTiming:
    """Test cases for timing descriptions."""

    @pytest.mark.parametrize("delta,expected", [
        (0.0, "perfect timing"),
        (0.9, "perfect timing"),
        (-0.5, "perfect timing"),
        (12.34, "late by 12.3ms"),
        (-20.0, "early by 20.0ms"),
    ])
    def test_describe_timing(self, delta, expected):
        """Test the sub-millisecond window and the early/late wording."""
        assert describe_timing(delta) == expected


class TestEventDecision:
    """Test cases for EventDecision."""

    def test_unquantized_event(self):
        """Test a record without quantization."""
        event = make_events([100.0], EventClass.BILABIAL_PLOSIVE)[0]
        decision = EventDecision.from_pipeline_data(event)

        assert decision.reasoning == "Classified as B/P (Kick) (90% confidence) based on features."
        assert decision.quantized_timestamp_ms is None
        assert decision.grid_position is None

    def test_quantized_event(self):
        """Test that quantization adds the grid position and the timing offset."""
        grid = Grid(120.0, TimeSignature.FOUR_FOUR, GridDivision.QUARTER, bar_count=1)
        event = make_events([520.0], EventClass.CLICK)[0]
        quantized = quantize_events([event], grid, QuantizeSettings(strength=1.0))[0]

        decision = EventDecision.from_pipeline_data(event, quantized)

        assert decision.grid_position == "1.2.1"
        assert decision.snap_delta_ms == pytest.approx(-20.0)
        assert decision.reasoning == (
            "Classified as T/K (Snare) (90% confidence) based on features. "
            "Quantized to grid position 1.2.1 (early by 20.0ms, adjusted -20.0ms)."
        )

    def test_to_dict(self):
        """Test the exported field names."""
        event = make_events([0.0], EventClass.HUM_VOICED)[0]
        data = EventDecision.from_pipeline_data(event).to_dict()
        assert data['event_id'] == event.id
        assert data['class'] == 'HumVoiced'
        assert 'reasoning' in data


class TestExplainEvents:
    """Test cases for explain_events."""

    def test_matches_quantized_by_id(self):
        """Test that every event is paired with its own quantized form."""
        grid = Grid(120.0, TimeSignature.FOUR_FOUR, GridDivision.QUARTER, bar_count=2)
        events = make_events([510.0, 990.0, 1400.0])
        quantized = quantize_events(events, grid, QuantizeSettings(strength=1.0))

        decisions = explain_events(events, quantized)

        assert [d.event_id for d in decisions] == [e.id for e in events]
        assert [d.quantized_timestamp_ms for d in decisions] == pytest.approx([500.0, 1000.0, 1500.0])

    def test_without_quantization(self):
        """Test records for events that were never quantized."""
        decisions = explain_events(make_events([0.0, 250.0]))
        assert all(d.snap_delta_ms is None for d in decisions)
