"""
Constants used throughout Beatbox2MIDI.
"""

# Spectral analysis
MAX_FFT_SIZE = 2048
LOW_BAND_MAX_HZ = 200.0
MID_BAND_MAX_HZ = 2000.0
CENTROID_DISTANCE_SCALE_HZ = 5000.0
EVENT_WINDOW_MS = 50.0

# Onset detection
ONSET_WINDOW_SIZE = 2048
ONSET_HOP_SIZE = 512
ONSET_THRESHOLD_FACTOR = 1.5
MIN_ONSET_GAP_MS = 30.0
FLUX_EPSILON = 1e-6

# Classification
DEFAULT_KNN_K = 5
CENTROID_WEIGHT = 1.0
ZCR_WEIGHT = 1.0
ENERGY_WEIGHT = 1.5
MIN_SAMPLES_PER_CLASS = 5
PROFILE_VERSION = 1

# Tempo estimation
MIN_BPM = 60.0
MAX_BPM = 180.0
HISTOGRAM_BINS = 300
MIN_ONSETS = 8
FALLBACK_BPM = 120.0
FALLBACK_INTERVAL_MS = 500.0
HALF_DOUBLE_WEIGHT = 0.5
SMOOTHING_WINDOW = 3
MAX_TEMPO_PEAKS = 5
PHASE_TESTS = 8
BEAT_TOLERANCE_RATIO = 0.15

# Grid
GRID_MIN_BPM = 20.0
GRID_MAX_BPM = 300.0
SWING_FACTOR = 0.33
MAX_SWING_RATIO = 0.5
DEFAULT_BAR_COUNT = 4

# Quantization
GRACE_NOTE_GROUP_MS = 30.0
DEFAULT_QUANTIZE_STRENGTH = 0.8
DEFAULT_LOOKAHEAD_MS = 100.0
HUMANIZE_MAX_MS = 5.0
