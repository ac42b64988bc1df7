"""
Pytest configuration and fixtures for beatbox2midi tests.
"""

import pytest
import numpy as np
from pathlib import Path
from typing import List

# Add src to path for testing
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from beatbox2midi.config.settings import Settings
from beatbox2midi.classification.types import Event, EventClass, EventFeatures
from beatbox2midi.classification.calibration import CalibrationProfile, CalibrationSample
from beatbox2midi.core.onset_detector import Onset

SAMPLE_RATE = 22050


@pytest.fixture
def settings():
    """Create default test settings."""
    return Settings()


@pytest.fixture
def sample_rate():
    return SAMPLE_RATE


@pytest.fixture
def silence():
    """Two seconds of digital silence."""
    return np.zeros(2 * SAMPLE_RATE, dtype=np.float32)


@pytest.fixture
def kick_features():
    """Feature vector typical of a B/P sound."""
    return EventFeatures(
        spectral_centroid=300.0,
        zcr=0.08,
        low_band_energy=0.7,
        mid_band_energy=0.2,
        high_band_energy=0.1,
    )


@pytest.fixture
def hihat_features():
    """Feature vector typical of an S/TS sound."""
    return EventFeatures(
        spectral_centroid=4500.0,
        zcr=0.45,
        low_band_energy=0.05,
        mid_band_energy=0.25,
        high_band_energy=0.7,
    )


@pytest.fixture
def snare_features():
    """Feature vector typical of a T/K sound."""
    return EventFeatures(
        spectral_centroid=1800.0,
        zcr=0.3,
        low_band_energy=0.2,
        mid_band_energy=0.6,
        high_band_energy=0.2,
    )


@pytest.fixture
def full_profile(kick_features, hihat_features, snare_features):
    """Calibration profile with five samples of every class."""
    hum = EventFeatures(
        spectral_centroid=600.0,
        zcr=0.05,
        low_band_energy=0.3,
        mid_band_energy=0.45,
        high_band_energy=0.25,
    )
    by_class = {
        EventClass.BILABIAL_PLOSIVE: kick_features,
        EventClass.HIHAT_NOISE: hihat_features,
        EventClass.CLICK: snare_features,
        EventClass.HUM_VOICED: hum,
    }
    profile = CalibrationProfile(name="Test Profile")
    for event_class, features in by_class.items():
        for _ in range(5):
            profile.add_sample(CalibrationSample(event_class, features, sample_rate=SAMPLE_RATE))
    return profile


# Test utilities
def make_onsets(times_ms: List[float], strength: float = 1.0) -> List[Onset]:
    """Onsets at the given times."""
    return [Onset(timestamp_ms=float(t), strength=strength) for t in times_ms]


def make_events(times_ms: List[float], event_class: EventClass = EventClass.CLICK) -> List[Event]:
    """Events at the given times with placeholder features."""
    return [
        Event.create(
            timestamp_ms=t,
            duration_ms=50.0,
            event_class=event_class,
            confidence=0.9,
            features=EventFeatures.zero(),
        )
        for t in times_ms
    ]


def periodic_times(interval_ms: float, count: int, start_ms: float = 0.0) -> List[float]:
    return [start_ms + i * interval_ms for i in range(count)]


def create_click_train(click_times_ms: List[float], duration_ms: float,
                       sample_rate: int = SAMPLE_RATE, seed: int = 0) -> np.ndarray:
    """Short decaying noise bursts at the given times."""
    rng = np.random.default_rng(seed)
    audio = np.zeros(int(duration_ms / 1000.0 * sample_rate))
    burst_length = int(0.004 * sample_rate)
    envelope = np.exp(-np.linspace(0.0, 6.0, burst_length))

    for t in click_times_ms:
        start = int(t / 1000.0 * sample_rate)
        end = min(start + burst_length, audio.size)
        audio[start:end] += rng.standard_normal(end - start) * envelope[:end - start]

    peak = np.max(np.abs(audio))
    if peak > 0:
        audio = audio / peak * 0.8
    return audio.astype(np.float32)


def create_tone(frequency: float, duration_ms: float, sample_rate: int = SAMPLE_RATE,
                decay: float = 0.0) -> np.ndarray:
    """Sine tone, optionally with an exponential decay."""
    t = np.arange(int(duration_ms / 1000.0 * sample_rate)) / sample_rate
    tone = np.sin(2 * np.pi * frequency * t) * np.exp(-t * decay)
    return (0.8 * tone).astype(np.float32)


def create_hit_train(kind: str = 'kick', sample_rate: int = 44100, beats: int = 16,
                     interval_ms: float = 500.0, start_ms: float = 200.0) -> np.ndarray:
    """
    Beatbox-like hits on a steady pulse.

    'kick' is a decaying 70 Hz tone, 'hihat' a short decaying noise burst.
    """
    rng = np.random.default_rng(1)
    duration_ms = start_ms + beats * interval_ms + 500.0
    audio = np.zeros(int(duration_ms / 1000.0 * sample_rate))
    hit_length = int(0.06 * sample_rate)
    t = np.arange(hit_length) / sample_rate

    for i in range(beats):
        if kind == 'kick':
            hit = np.sin(2 * np.pi * 70 * t) * np.exp(-t * 40)
        else:
            hit = rng.standard_normal(hit_length) * np.exp(-t * 120)
        start = int((start_ms + i * interval_ms) / 1000.0 * sample_rate)
        end = min(start + hit_length, audio.size)
        audio[start:end] += hit[:end - start]

    audio = audio / np.max(np.abs(audio)) * 0.8
    return audio.astype(np.float32)
