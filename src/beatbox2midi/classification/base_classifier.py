"""
Classifier interface and backend selection.
"""

from enum import Enum
from typing import Optional, Protocol

from ..config.settings import ClassificationSettings
from ..utils.exceptions import ConfigurationError, ValidationError
from ..utils.validators import validate_classification_settings
from ..utils.logging import get_logger
from .types import EventFeatures, ClassificationResult
from .heuristic import HeuristicClassifier, ClassifierConfig
from .calibration import CalibrationProfile, KnnClassifier

logger = get_logger(__name__)


class EventClassifier(Protocol):
    """Anything that maps a feature vector to a classification."""

    def classify(self, features: EventFeatures) -> ClassificationResult:
        ...


class ClassifierBackend(Enum):
    """Available classification strategies."""
    HEURISTIC = 'heuristic'
    CALIBRATION = 'calibration'


def create_classifier(settings: Optional[ClassificationSettings] = None,
                      profile: Optional[CalibrationProfile] = None) -> EventClassifier:
    """
    Build the classifier selected by ``settings.backend``.

    Args:
        settings: Classification settings
        profile: Calibration profile, required by the calibration backend

    Returns:
        EventClassifier

    Raises:
        ConfigurationError: On an unknown backend, or the calibration backend
            without a profile holding samples
    """
    settings = settings or ClassificationSettings()
    try:
        backend = ClassifierBackend(settings.backend)
    except ValueError:
        raise ConfigurationError(f"Unknown classifier backend: {settings.backend}")

    try:
        validate_classification_settings(settings)
    except ValidationError as e:
        raise ConfigurationError(str(e))

    if backend is ClassifierBackend.HEURISTIC:
        logger.debug("Using heuristic classifier")
        return HeuristicClassifier(ClassifierConfig.from_settings(settings))

    if profile is None or profile.total_samples() == 0:
        raise ConfigurationError("Calibration backend requires a calibration profile with samples")

    if not profile.is_sufficient():
        logger.warning(f"Calibration profile '{profile.name}' has fewer samples than recommended")

    logger.debug(f"Using KNN classifier (k={settings.k}) with profile '{profile.name}'")
    return KnnClassifier(profile, k=settings.k)
