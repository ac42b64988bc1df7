"""
Musical grid: the table of subdivision times that events are quantized to.
"""

import math
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

from ..config.settings import GridSettings
from ..config.constants import (
    GRID_MIN_BPM, GRID_MAX_BPM, SWING_FACTOR, MAX_SWING_RATIO, DEFAULT_BAR_COUNT, FALLBACK_BPM
)
from ..utils.exceptions import ValidationError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class TimeSignature(Enum):
    FOUR_FOUR = 'four_four'
    THREE_FOUR = 'three_four'

    @property
    def beats_per_bar(self) -> int:
        return 4 if self is TimeSignature.FOUR_FOUR else 3

    @property
    def beat_unit(self) -> int:
        return 4

    @classmethod
    def from_string(cls, name: Optional[str]) -> 'TimeSignature':
        return _parse_enum(cls, name, cls.FOUR_FOUR)


class GridDivision(Enum):
    QUARTER = 'quarter'
    EIGHTH = 'eighth'
    SIXTEENTH = 'sixteenth'
    TRIPLET = 'triplet'

    @property
    def subdivisions_per_beat(self) -> int:
        return _SUBDIVISIONS[self]

    @classmethod
    def from_string(cls, name: Optional[str]) -> 'GridDivision':
        return _parse_enum(cls, name, cls.SIXTEENTH)


_SUBDIVISIONS = {
    GridDivision.QUARTER: 1,
    GridDivision.EIGHTH: 2,
    GridDivision.SIXTEENTH: 4,
    GridDivision.TRIPLET: 3,
}


class GrooveFeel(Enum):
    STRAIGHT = 'straight'
    SWING = 'swing'
    HALFTIME = 'halftime'  # no timing change; consumers use it for arrangement density

    @classmethod
    def from_string(cls, name: Optional[str]) -> 'GrooveFeel':
        return _parse_enum(cls, name, cls.STRAIGHT)


def _parse_enum(enum_cls, name, default):
    if isinstance(name, enum_cls):
        return name
    if name is None:
        return default
    try:
        return enum_cls(str(name).strip().lower())
    except ValueError:
        logger.debug(f"Unknown {enum_cls.__name__} '{name}', using {default.value}")
        return default


@dataclass(frozen=True)
class GridPosition:
    """Zero-based bar, beat-in-bar and subdivision-in-beat."""
    bar: int
    beat: int
    subdivision: int

    def label(self) -> str:
        """One-based ``bar.beat.sub`` label."""
        return f"{self.bar + 1}.{self.beat + 1}.{self.subdivision + 1}"

    def to_dict(self) -> Dict[str, int]:
        return {'bar': self.bar, 'beat': self.beat, 'subdivision': self.subdivision}


class Grid:
    """
    Tempo-locked grid of subdivision times, starting at 0 ms.

    The table always holds ``bar_count * beats_per_bar * subdivisions_per_beat``
    entries and is rebuilt whenever tempo, swing or feel changes.
    """

    def __init__(self, bpm: float,
                 time_signature: TimeSignature = TimeSignature.FOUR_FOUR,
                 division: GridDivision = GridDivision.SIXTEENTH,
                 feel: GrooveFeel = GrooveFeel.STRAIGHT,
                 swing_amount: float = 0.0,
                 bar_count: int = DEFAULT_BAR_COUNT):
        """
        Initialize grid.

        Args:
            bpm: Tempo in beats per minute, positive and finite
            time_signature: Beats per bar
            division: Subdivisions per beat
            feel: Groove feel; SWING delays odd subdivisions
            swing_amount: Swing in [0, 1], clamped
            bar_count: Number of bars, >= 0

        Raises:
            ValidationError: If bpm or bar_count is invalid
        """
        bpm = float(bpm)
        if not math.isfinite(bpm) or bpm <= 0:
            raise ValidationError(f"Grid bpm must be positive and finite, got {bpm}")
        if int(bar_count) < 0:
            raise ValidationError(f"bar_count must be >= 0, got {bar_count}")

        self.bpm = bpm
        self.time_signature = TimeSignature.from_string(time_signature)
        self.division = GridDivision.from_string(division)
        self.feel = GrooveFeel.from_string(feel)
        self.swing_amount = _clamp_unit(swing_amount)
        self.bar_count = int(bar_count)
        self.beat_positions_ms: Tuple[float, ...] = ()
        self._calculate_beat_positions()

    @classmethod
    def from_settings(cls, settings: Optional[GridSettings] = None, bpm: Optional[float] = None,
                      duration_ms: Optional[float] = None) -> 'Grid':
        """
        Build a grid from settings.

        Args:
            settings: Grid settings
            bpm: Tempo; falls back to ``settings.bpm``, then 120 BPM
            duration_ms: Clip length, used to size the grid when
                ``settings.bar_count`` is None

        Returns:
            Grid
        """
        settings = settings or GridSettings()
        if bpm is None:
            bpm = settings.bpm if settings.bpm is not None else FALLBACK_BPM

        time_signature = TimeSignature.from_string(settings.time_signature)
        bar_count = settings.bar_count
        if bar_count is None:
            if duration_ms is not None and duration_ms > 0 and bpm > 0:
                ms_per_bar = 60000.0 / bpm * time_signature.beats_per_bar
                bar_count = max(1, int(math.ceil(duration_ms / ms_per_bar)))
            else:
                bar_count = DEFAULT_BAR_COUNT

        return cls(
            bpm=bpm,
            time_signature=time_signature,
            division=GridDivision.from_string(settings.division),
            feel=GrooveFeel.from_string(settings.feel),
            swing_amount=settings.swing_amount,
            bar_count=bar_count,
        )

    @property
    def ms_per_beat(self) -> float:
        return 60000.0 / self.bpm

    @property
    def subdivisions_per_beat(self) -> int:
        return self.division.subdivisions_per_beat

    @property
    def beats_per_bar(self) -> int:
        return self.time_signature.beats_per_bar

    @property
    def subdivision_duration_ms(self) -> float:
        return self.ms_per_beat / self.subdivisions_per_beat

    @property
    def ms_per_bar(self) -> float:
        return self.ms_per_beat * self.beats_per_bar

    def _calculate_beat_positions(self):
        spb = self.subdivisions_per_beat
        sub_ms = self.subdivision_duration_ms
        total = self.bar_count * self.beats_per_bar * spb

        swing_delay = 0.0
        if self.feel is GrooveFeel.SWING:
            swing_delay = min(sub_ms * self.swing_amount * SWING_FACTOR, sub_ms * MAX_SWING_RATIO)

        positions = []
        for i in range(total):
            beat, sub = divmod(i, spb)
            position = beat * self.ms_per_beat + sub * sub_ms
            if sub % 2 == 1:
                position += swing_delay
            positions.append(position)

        self.beat_positions_ms = tuple(positions)

    def set_bpm(self, bpm: float):
        """Change tempo, clamped to 20-300 BPM."""
        self.bpm = min(max(float(bpm), GRID_MIN_BPM), GRID_MAX_BPM)
        self._calculate_beat_positions()

    def set_swing_amount(self, swing_amount: float):
        self.swing_amount = _clamp_unit(swing_amount)
        self._calculate_beat_positions()

    def set_feel(self, feel: GrooveFeel):
        self.feel = GrooveFeel.from_string(feel)
        self._calculate_beat_positions()

    def get_nearest_beat(self, timestamp_ms: float) -> Tuple[float, int]:
        """
        Nearest grid time to a timestamp.

        Returns:
            Tuple of (position_ms, index); the earlier entry wins ties and an
            empty grid gives (0.0, 0)
        """
        if not self.beat_positions_ms:
            return 0.0, 0

        nearest_index = 0
        nearest_distance = math.inf
        for i, position in enumerate(self.beat_positions_ms):
            distance = abs(position - timestamp_ms)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest_index = i

        return self.beat_positions_ms[nearest_index], nearest_index

    def get_bar_number(self, timestamp_ms: float) -> int:
        """Zero-based bar containing the timestamp."""
        ms_per_bar = self.ms_per_bar
        if ms_per_bar <= 0:
            return 0
        return max(0, int(math.floor(timestamp_ms / ms_per_bar)))

    def get_beat_in_bar(self, timestamp_ms: float) -> int:
        """One-based beat within its bar."""
        ms_per_bar = self.ms_per_bar
        if ms_per_bar <= 0:
            return 1
        position_in_bar = timestamp_ms % ms_per_bar
        beat = int(math.floor(position_in_bar / self.ms_per_beat))
        return min(beat + 1, self.beats_per_bar)

    def position_for_index(self, index: int) -> GridPosition:
        spb = self.subdivisions_per_beat
        bpb = self.beats_per_bar
        return GridPosition(
            bar=index // (bpb * spb),
            beat=(index // spb) % bpb,
            subdivision=index % spb,
        )

    def get_grid_position(self, timestamp_ms: float) -> GridPosition:
        """Grid position of the nearest grid time."""
        _, index = self.get_nearest_beat(timestamp_ms)
        return self.position_for_index(index)

    def get_timestamp_for_position(self, position: GridPosition) -> Optional[float]:
        """Grid time for a position, None when outside the grid."""
        spb = self.subdivisions_per_beat
        index = position.bar * self.beats_per_bar * spb + position.beat * spb + position.subdivision
        if 0 <= index < len(self.beat_positions_ms):
            return self.beat_positions_ms[index]
        return None

    def total_duration_ms(self) -> float:
        return self.ms_per_bar * self.bar_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bpm': self.bpm,
            'time_signature': self.time_signature.value,
            'division': self.division.value,
            'feel': self.feel.value,
            'swing_amount': self.swing_amount,
            'bar_count': self.bar_count,
            'beat_positions_ms': list(self.beat_positions_ms),
        }

    def __repr__(self) -> str:
        return (f"Grid(bpm={self.bpm:.2f}, time_signature={self.time_signature.value}, "
                f"division={self.division.value}, feel={self.feel.value}, bars={self.bar_count})")


def _clamp_unit(value: float) -> float:
    value = float(value)
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))
