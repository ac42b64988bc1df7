"""
Unit tests for calibration profiles, the KNN classifier and backend selection.
"""

import json
import pytest

from beatbox2midi.classification.base_classifier import create_classifier
from beatbox2midi.classification.calibration import (
    CalibrationProfile, CalibrationSample, KnnClassifier
)
from beatbox2midi.classification.heuristic import HeuristicClassifier
from beatbox2midi.classification.types import EventClass, EventFeatures
from beatbox2midi.config.settings import ClassificationSettings
from beatbox2midi.utils.exceptions import ConfigurationError, EmptyProfileError, ValidationError


def _sample(event_class: EventClass, zcr: float) -> CalibrationSample:
    return CalibrationSample(event_class, EventFeatures(zcr=zcr))


class TestCalibrationProfile:
    """Test cases for CalibrationProfile."""

    def test_new_profile_is_empty(self):
        """Test that a new profile has every class and no samples."""
        profile = CalibrationProfile(name="Empty")
        assert list(profile.samples) == list(EventClass)
        assert profile.total_samples() == 0
        assert not profile.is_sufficient()

    def test_add_sample(self, kick_features):
        """Test adding samples by class."""
        profile = CalibrationProfile(name="Kicks")
        profile.add_sample(CalibrationSample(EventClass.BILABIAL_PLOSIVE, kick_features))

        assert profile.total_samples() == 1
        assert len(profile.get_samples(EventClass.BILABIAL_PLOSIVE)) == 1
        assert profile.get_samples(EventClass.CLICK) == []

    def test_get_samples_returns_copy(self, full_profile):
        """Test that callers cannot mutate the profile through get_samples."""
        full_profile.get_samples(EventClass.CLICK).clear()
        assert len(full_profile.get_samples(EventClass.CLICK)) == 5

    def test_sufficiency(self, full_profile):
        """Test the per-class sample minimum."""
        assert full_profile.is_sufficient()
        assert not full_profile.is_sufficient(min_per_class=6)

    def test_json_round_trip(self, full_profile):
        """Test that a profile survives JSON serialisation."""
        restored = CalibrationProfile.from_json(full_profile.to_json())
        assert restored == full_profile

    def test_json_layout(self, full_profile):
        """Test the serialised field names."""
        data = json.loads(full_profile.to_json())
        assert data['name'] == "Test Profile"
        assert set(data['samples']) == {cls.value for cls in EventClass}
        assert data['samples']['HihatNoise'][0]['class'] == 'HihatNoise'

    def test_from_json_rejects_garbage(self):
        """Test that malformed documents raise ValidationError."""
        with pytest.raises(ValidationError):
            CalibrationProfile.from_json("not json")
        with pytest.raises(ValidationError):
            CalibrationProfile.from_json("{}")

    def test_sample_raw_window_is_tuple(self):
        """Test that raw windows are stored immutably."""
        sample = CalibrationSample(EventClass.CLICK, EventFeatures.zero(), raw_window=[0.1, 0.2])
        assert sample.raw_window == (0.1, 0.2)


class TestKnnClassifier:
    """Test cases for KnnClassifier."""

    def test_nearest_class_wins(self, full_profile, kick_features, hihat_features):
        """Test classification against a full profile."""
        classifier = KnnClassifier(full_profile, k=5)

        kick = classifier.classify(kick_features)
        assert kick.event_class == EventClass.BILABIAL_PLOSIVE
        assert kick.confidence == 1.0

        hihat = classifier.classify(hihat_features)
        assert hihat.event_class == EventClass.HIHAT_NOISE

    def test_scores_are_vote_shares(self, full_profile, snare_features):
        """Test that scores list every class's share of the k votes."""
        result = KnnClassifier(full_profile, k=5).classify(snare_features)
        scores = dict(result.scores)
        assert scores[EventClass.CLICK] == 1.0
        assert sum(scores.values()) == pytest.approx(1.0)

    def test_single_class_profile(self, snare_features):
        """Test that a one-class profile always answers that class."""
        profile = CalibrationProfile(name="Clicks")
        for _ in range(3):
            profile.add_sample(CalibrationSample(EventClass.CLICK, snare_features))

        result = KnnClassifier(profile, k=5).classify(EventFeatures(spectral_centroid=9000.0))
        assert result.event_class == EventClass.CLICK
        assert result.confidence == 1.0

    def test_empty_profile_raises(self):
        """Test that classifying against no samples is an error."""
        classifier = KnnClassifier(CalibrationProfile(name="Empty"))
        with pytest.raises(EmptyProfileError):
            classifier.classify(EventFeatures.zero())

    def test_invalid_k(self, full_profile):
        """Test that k must be positive."""
        with pytest.raises(ValidationError):
            KnnClassifier(full_profile, k=0)

    def test_equal_distances_follow_class_order(self):
        """Test that equidistant samples rank in class order."""
        profile = CalibrationProfile(name="Tie")
        profile.add_sample(_sample(EventClass.HIHAT_NOISE, 0.75))
        profile.add_sample(_sample(EventClass.BILABIAL_PLOSIVE, 0.25))

        result = KnnClassifier(profile, k=2).classify(EventFeatures(zcr=0.5))
        assert result.event_class == EventClass.BILABIAL_PLOSIVE
        assert result.confidence == 0.5

    def test_vote_tie_goes_to_nearest(self):
        """Test that a vote tie goes to the class with the nearest sample."""
        profile = CalibrationProfile(name="Tie")
        profile.add_sample(_sample(EventClass.BILABIAL_PLOSIVE, 0.0))
        profile.add_sample(_sample(EventClass.HIHAT_NOISE, 0.75))

        result = KnnClassifier(profile, k=2).classify(EventFeatures(zcr=0.5))
        assert result.event_class == EventClass.HIHAT_NOISE


class TestCreateClassifier:
    """Test cases for backend selection."""

    def test_default_is_heuristic(self):
        """Test the default backend."""
        assert isinstance(create_classifier(), HeuristicClassifier)

    def test_calibration_backend(self, full_profile):
        """Test that the calibration backend wraps the profile."""
        classifier = create_classifier(ClassificationSettings(backend='calibration', k=3), full_profile)
        assert isinstance(classifier, KnnClassifier)
        assert classifier.k == 3

    def test_calibration_without_profile(self):
        """Test that the calibration backend needs samples."""
        settings = ClassificationSettings(backend='calibration')
        with pytest.raises(ConfigurationError):
            create_classifier(settings)
        with pytest.raises(ConfigurationError):
            create_classifier(settings, CalibrationProfile(name="Empty"))

    def test_unknown_backend(self):
        """Test that unknown backends are rejected."""
        with pytest.raises(ConfigurationError):
            create_classifier(ClassificationSettings(backend='neural'))

    def test_invalid_settings(self):
        """Test that bad numeric settings surface as configuration errors."""
        with pytest.raises(ConfigurationError):
            create_classifier(ClassificationSettings(k=0))
        with pytest.raises(ConfigurationError):
            create_classifier(ClassificationSettings(zcr_weight=-1.0))

    def test_small_profile_still_used(self, kick_features):
        """Test that an undersized profile is accepted with a warning."""
        profile = CalibrationProfile(name="Small")
        profile.add_sample(CalibrationSample(EventClass.BILABIAL_PLOSIVE, kick_features))
        classifier = create_classifier(ClassificationSettings(backend='calibration'), profile)
        assert classifier.classify(kick_features).event_class == EventClass.BILABIAL_PLOSIVE
