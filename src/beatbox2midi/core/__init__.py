"""
Core analysis pipeline: onsets, tempo, grid and quantization.
"""

from .audio_processor import BeatboxProcessor, AnalysisResult
from .onset_detector import Onset, OnsetDetector, detect_onsets
from .beat_tracker import TempoEstimate, TempoEstimator, estimate_tempo
from .grid import Grid, GridPosition, TimeSignature, GridDivision, GrooveFeel
from .quantizer import QuantizedEvent, Quantizer, quantize_events, apply_swing, humanize_timing
from .explainability import EventDecision, explain_events

__all__ = [
    "BeatboxProcessor",
    "AnalysisResult",
    "Onset",
    "OnsetDetector",
    "detect_onsets",
    "TempoEstimate",
    "TempoEstimator",
    "estimate_tempo",
    "Grid",
    "GridPosition",
    "TimeSignature",
    "GridDivision",
    "GrooveFeel",
    "QuantizedEvent",
    "Quantizer",
    "quantize_events",
    "apply_swing",
    "humanize_timing",
    "EventDecision",
    "explain_events",
]
