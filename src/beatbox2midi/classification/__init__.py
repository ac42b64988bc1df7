"""
Beatbox event classification: features, heuristic and calibrated classifiers.
"""

from .types import EventClass, EventFeatures, Event, ClassificationResult
from .feature_extractor import FeatureExtractor, extract_features, extract_features_for_window
from .heuristic import HeuristicClassifier, ClassifierConfig
from .calibration import CalibrationSample, CalibrationProfile, KnnClassifier
from .base_classifier import EventClassifier, ClassifierBackend, create_classifier

__all__ = [
    "EventClass",
    "EventFeatures",
    "Event",
    "ClassificationResult",
    "FeatureExtractor",
    "extract_features",
    "extract_features_for_window",
    "HeuristicClassifier",
    "ClassifierConfig",
    "CalibrationSample",
    "CalibrationProfile",
    "KnnClassifier",
    "EventClassifier",
    "ClassifierBackend",
    "create_classifier",
]
