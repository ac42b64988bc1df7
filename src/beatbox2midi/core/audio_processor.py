"""
Main processor that runs the beatbox analysis pipeline.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence

from ..config.settings import Settings, get_settings
from ..audio.loader import AudioData, AudioLoader
from ..classification.base_classifier import EventClassifier, create_classifier
from ..classification.calibration import CalibrationProfile
from ..classification.feature_extractor import FeatureExtractor
from ..classification.types import Event
from ..utils.exceptions import Beatbox2MidiError, ProcessingError
from ..utils.validators import (
    validate_onset_settings, validate_tempo_settings, validate_grid_settings,
    validate_quantize_settings, validate_classification_settings
)
from ..utils.logging import get_logger, ProgressLogger
from .onset_detector import Onset, OnsetDetector
from .beat_tracker import TempoEstimate, TempoEstimator
from .grid import Grid, GrooveFeel
from .quantizer import QuantizedEvent, Quantizer, apply_swing, humanize_timing
from .explainability import EventDecision, explain_events

logger = get_logger(__name__)


@dataclass
class AnalysisResult:
    """Everything produced by one pipeline run."""
    events: List[Event]
    onsets: List[Onset]
    tempo: TempoEstimate
    grid: Grid
    quantized_events: List[QuantizedEvent] = field(default_factory=list)

    def explain(self) -> List[EventDecision]:
        return explain_events(self.events, self.quantized_events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'events': [event.to_dict() for event in self.events],
            'onsets': [onset.to_dict() for onset in self.onsets],
            'tempo': self.tempo.to_dict(),
            'grid': self.grid.to_dict(),
            'quantized_events': [q.to_dict() for q in self.quantized_events],
        }


class BeatboxProcessor:
    """
    Turns a beatbox recording into classified, quantized events.

    Stages: onset detection, per-onset feature extraction and classification,
    tempo estimation, grid construction and quantization.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 profile: Optional[CalibrationProfile] = None):
        """
        Initialize the processor.

        Args:
            settings: Application settings (uses global settings if None)
            profile: Calibration profile for the calibration backend

        Raises:
            ValidationError: If any settings section is out of range
            ConfigurationError: If the classifier cannot be built
        """
        self.settings = settings or get_settings()

        validate_onset_settings(self.settings.onset)
        validate_tempo_settings(self.settings.tempo)
        validate_grid_settings(self.settings.grid)
        validate_quantize_settings(self.settings.quantize)
        validate_classification_settings(self.settings.classification)

        self.profile = profile
        self.audio_loader = AudioLoader(self.settings)
        self.onset_detector = OnsetDetector(self.settings.onset)
        self.feature_extractor = FeatureExtractor(self.settings.features)
        self.classifier: EventClassifier = create_classifier(self.settings.classification, profile)
        self.tempo_estimator = TempoEstimator(self.settings.tempo)
        self.quantizer = Quantizer(self.settings.quantize)

    def detect_onsets(self, audio: AudioData) -> List[Onset]:
        return self.onset_detector.detect_onsets(audio.to_mono(), audio.sample_rate)

    def classify_onsets(self, audio: AudioData, onsets: Sequence[Onset]) -> List[Event]:
        """
        Classify the window after each onset.

        Each event lasts until the next onset, the last one until the end of
        the clip.

        Args:
            audio: Source audio
            onsets: Onsets in time order

        Returns:
            Events in time order
        """
        mono = audio.to_mono()
        clip_end_ms = float(audio.duration_ms)
        events = []

        for i, onset in enumerate(onsets):
            features = self.feature_extractor.extract_at(mono, audio.sample_rate, onset.timestamp_ms)
            result = self.classifier.classify(features)

            if i + 1 < len(onsets):
                duration = onsets[i + 1].timestamp_ms - onset.timestamp_ms
            else:
                duration = clip_end_ms - onset.timestamp_ms

            events.append(Event.create(
                timestamp_ms=onset.timestamp_ms,
                duration_ms=max(0.0, duration),
                event_class=result.event_class,
                confidence=result.confidence,
                features=features,
            ))

        logger.info(f"Classified {len(events)} events")
        return events

    def detect_events(self, audio: AudioData) -> List[Event]:
        """Detect and classify all events in a clip."""
        return self.classify_onsets(audio, self.detect_onsets(audio))

    def estimate_tempo(self, onsets: Sequence[Onset]) -> TempoEstimate:
        return self.tempo_estimator.estimate(onsets)

    def build_grid(self, bpm: Optional[float] = None, duration_ms: Optional[float] = None) -> Grid:
        return Grid.from_settings(self.settings.grid, bpm=bpm, duration_ms=duration_ms)

    def quantize(self, events: Sequence[Event], grid: Grid) -> List[QuantizedEvent]:
        """
        Quantize events, then apply swing and humanization from settings.

        Swing is skipped when the grid itself already swings.
        """
        quantize_settings = self.settings.quantize
        quantized = self.quantizer.quantize(events, grid)

        if quantize_settings.swing_amount > 0 and grid.feel is not GrooveFeel.SWING:
            quantized = apply_swing(quantized, grid, quantize_settings.swing_amount)

        if quantize_settings.humanize_amount > 0:
            quantized = humanize_timing(
                quantized, quantize_settings.humanize_amount, quantize_settings.humanize_seed
            )

        return quantized

    def process(self, audio: AudioData, bpm: Optional[float] = None) -> AnalysisResult:
        """
        Run the whole pipeline on decoded audio.

        Args:
            audio: Decoded audio
            bpm: Tempo override; otherwise ``grid.bpm`` from settings, then the estimate

        Returns:
            AnalysisResult

        Raises:
            ProcessingError: If processing fails
        """
        progress = ProgressLogger(logger, 5, "Beatbox analysis")

        try:
            progress.step("Detecting onsets")
            onsets = self.detect_onsets(audio)

            progress.step("Classifying events")
            events = self.classify_onsets(audio, onsets)

            progress.step("Estimating tempo")
            tempo = self.estimate_tempo(onsets)

            if bpm is None:
                bpm = self.settings.grid.bpm if self.settings.grid.bpm is not None else tempo.bpm

            progress.step("Building grid")
            grid = self.build_grid(bpm, duration_ms=audio.duration_ms)

            progress.step("Quantizing events")
            quantized = self.quantize(events, grid)

        except Beatbox2MidiError:
            raise
        except Exception as e:
            logger.error(f"Beatbox analysis failed: {e}")
            raise ProcessingError(f"Failed to analyse audio: {e}") from e

        progress.complete(f"{len(events)} events at {grid.bpm:.1f} BPM")
        return AnalysisResult(
            events=events,
            onsets=onsets,
            tempo=tempo,
            grid=grid,
            quantized_events=quantized,
        )

    def process_file(self, file_path: str, bpm: Optional[float] = None) -> AnalysisResult:
        """Load an audio file and run the pipeline on it."""
        audio = self.audio_loader.load_audio(file_path)
        return self.process(audio, bpm=bpm)
