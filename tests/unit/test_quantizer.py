"""
Unit tests for quantization, swing and humanization.
"""

import pytest

from beatbox2midi.config.settings import QuantizeSettings
from beatbox2midi.core.grid import Grid, GridDivision, TimeSignature
from beatbox2midi.core.quantizer import (
    Quantizer, apply_swing, group_events, humanize_timing, jitter_for, quantize_events
)

from conftest import make_events


@pytest.fixture
def quarter_grid():
    return Grid(120.0, TimeSignature.FOUR_FOUR, GridDivision.QUARTER, bar_count=1)


@pytest.fixture
def eighth_grid():
    return Grid(120.0, TimeSignature.FOUR_FOUR, GridDivision.EIGHTH, bar_count=1)


def _quantizer(strength: float) -> Quantizer:
    return Quantizer(QuantizeSettings(strength=strength))


class TestQuantizeSingle:
    """Test cases for quantizing one event."""

    def test_full_strength_snaps(self, quarter_grid):
        """Test that strength 1 lands on the grid."""
        event = make_events([520.0])[0]
        quantized = _quantizer(1.0).quantize_single(event, quarter_grid)

        assert quantized.quantized_timestamp_ms == pytest.approx(500.0)
        assert quantized.snap_delta_ms < 0.0
        assert quantized.original_timestamp_ms == 520.0
        assert quantized.grid_position.beat == 1

    def test_partial_strength(self, quarter_grid):
        """Test that strength 0.5 moves halfway."""
        event = make_events([520.0])[0]
        quantized = _quantizer(0.5).quantize_single(event, quarter_grid)
        assert quantized.quantized_timestamp_ms == pytest.approx(510.0)

    def test_zero_strength_preserves_timing(self, quarter_grid):
        """Test that strength 0 keeps the original time exactly."""
        event = make_events([520.0])[0]
        quantized = _quantizer(0.0).quantize_single(event, quarter_grid)

        assert quantized.quantized_timestamp_ms == 520.0
        assert quantized.snap_delta_ms == 0.0

    def test_strength_is_clamped(self):
        """Test that out-of-range strengths are clamped."""
        assert _quantizer(1.7).strength == 1.0
        assert _quantizer(-0.2).strength == 0.0


class TestGrouping:
    """Test cases for grace-note grouping."""

    def test_group_events(self):
        """Test that close events share a group."""
        groups = group_events(make_events([0.0, 10.0, 500.0, 505.0]), 30.0)
        assert [[e.timestamp_ms for e in g] for g in groups] == [[0.0, 10.0], [500.0, 505.0]]

    def test_gap_at_threshold_joins(self):
        """Test that a gap equal to the threshold still groups."""
        assert len(group_events(make_events([0.0, 30.0]), 30.0)) == 1
        assert len(group_events(make_events([0.0, 31.0]), 30.0)) == 2

    def test_no_events(self):
        """Test grouping nothing."""
        assert group_events([]) == []


class TestQuantizer:
    """Test cases for quantizing event lists."""

    def test_empty(self, quarter_grid):
        """Test that no events give no output."""
        assert _quantizer(1.0).quantize([], quarter_grid) == []

    def test_grace_notes_keep_spacing(self, quarter_grid):
        """Test that a flam keeps its 5 ms spacing."""
        quantized = quantize_events(make_events([490.0, 495.0]), quarter_grid,
                                    QuantizeSettings(strength=1.0))

        spacing = quantized[1].quantized_timestamp_ms - quantized[0].quantized_timestamp_ms
        assert spacing == pytest.approx(5.0)
        assert quantized[0].quantized_timestamp_ms == pytest.approx(500.0)
        assert quantized[1].snap_delta_ms == pytest.approx(quantized[0].snap_delta_ms)

    def test_output_is_sorted(self, quarter_grid):
        """Test that unsorted input comes back in time order."""
        quantized = _quantizer(0.8).quantize(make_events([1000.0, 20.0, 510.0]), quarter_grid)
        times = [q.quantized_timestamp_ms for q in quantized]
        assert times == sorted(times)
        assert [q.original_timestamp_ms for q in quantized] == [20.0, 510.0, 1000.0]

    def test_full_strength_is_idempotent(self, eighth_grid):
        """Test that quantizing on-grid events at strength 1 changes nothing."""
        events = make_events([0.0, 250.0, 750.0, 1500.0])
        quantized = _quantizer(1.0).quantize(events, eighth_grid)
        assert [q.quantized_timestamp_ms for q in quantized] == pytest.approx([0.0, 250.0, 750.0, 1500.0])
        assert all(q.snap_delta_ms == pytest.approx(0.0) for q in quantized)

    def test_strength_scales_linearly(self, quarter_grid):
        """Test that the move is proportional to strength."""
        events = make_events([540.0])
        moves = [_quantizer(s).quantize(events, quarter_grid)[0].snap_delta_ms for s in (0.25, 0.5, 1.0)]
        assert moves == pytest.approx([-10.0, -20.0, -40.0])


class TestSwingAndHumanize:
    """Test cases for post-quantization timing adjustments."""

    def test_apply_swing(self, eighth_grid):
        """Test that off-beats are delayed and on-beats stay put."""
        quantized = quantize_events(make_events([0.0, 250.0, 500.0]), eighth_grid)
        off_beat_before = quantized[1].quantized_timestamp_ms

        swung = apply_swing(quantized, eighth_grid, 0.5)

        assert swung[1].quantized_timestamp_ms == pytest.approx(off_beat_before + 250.0 * 0.33 * 0.5)
        assert swung[0].quantized_timestamp_ms == pytest.approx(0.0)
        assert swung[2].quantized_timestamp_ms == pytest.approx(500.0)
        assert swung[1].grid_position.subdivision == 1

    def test_zero_swing_is_identity(self, eighth_grid):
        """Test that no swing leaves events untouched."""
        quantized = quantize_events(make_events([0.0, 250.0]), eighth_grid)
        assert apply_swing(quantized, eighth_grid, 0.0) == quantized

    def test_humanize_is_deterministic(self, quarter_grid):
        """Test that the same seed always gives the same result."""
        quantized = quantize_events(make_events([0.0, 500.0, 1000.0, 1500.0]), quarter_grid)
        first = humanize_timing(quantized, 0.5, seed=7)
        second = humanize_timing(quantized, 0.5, seed=7)
        assert [q.quantized_timestamp_ms for q in first] == [q.quantized_timestamp_ms for q in second]

    def test_humanize_bounds(self, quarter_grid):
        """Test that offsets stay within 5 ms times the amount."""
        quantized = quantize_events(make_events([0.0, 500.0, 1000.0, 1500.0]), quarter_grid)
        before = {q.event.id: q.quantized_timestamp_ms for q in quantized}

        humanized = humanize_timing(quantized, 0.4, seed=3)

        assert len(humanized) == len(quantized)
        for q in humanized:
            assert abs(q.quantized_timestamp_ms - before[q.event.id]) <= 2.0

    def test_humanize_zero_amount(self, quarter_grid):
        """Test that zero humanization is the identity."""
        quantized = quantize_events(make_events([0.0, 500.0]), quarter_grid)
        assert humanize_timing(quantized, 0.0) == quantized

    def test_jitter_range(self):
        """Test that jitter values lie in [-1, 1) and depend on the seed."""
        values = [jitter_for(11, i) for i in range(500)]
        assert all(-1.0 <= v < 1.0 for v in values)
        assert values != [jitter_for(12, i) for i in range(500)]
        assert jitter_for(11, 3) == jitter_for(11, 3)
