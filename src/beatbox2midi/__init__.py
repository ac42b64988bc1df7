"""
Beatbox2MIDI - Beatbox recording to quantized drum events

Detects vocal percussion hits, classifies them as kick, hi-hat, snare or pad
sounds, estimates the tempo and snaps the hits to a musical grid ready for
MIDI arrangement.
"""

__version__ = "0.1.0"
__author__ = "Beatbox2MIDI Team"

from .core.audio_processor import BeatboxProcessor, AnalysisResult
from .config.settings import Settings

__all__ = [
    "BeatboxProcessor",
    "AnalysisResult",
    "Settings",
]
