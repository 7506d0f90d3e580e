"""
Core Constants for CDJ Playlist

Central place for the magic numbers of the tempo search, the external
pipelines and the export layout.
"""

# Signal format produced by the analysis pipeline (f32le, mono)
SAMPLE_RATE = 44100
SAMPLE_WIDTH = 4               # bytes per float32 sample
READ_CHUNK_SAMPLES = 65536     # samples decoded per read

# Energy envelope
ENVELOPE_INTERVAL = 128        # input samples per envelope point
ENVELOPE_ATTACK = 8            # fast attack divisor
ENVELOPE_DECAY = 512           # slow decay divisor

# Tempo search
SEARCH_STEPS = 1024            # grid subdivisions between the interval bounds
SEARCH_TRIALS = 1024           # random anchors per candidate interval
BEAT_OFFSETS = (-32, -16, -8, -4, -2, -1, 1, 2, 4, 8, 16, 32)
NOBEAT_OFFSETS = (-0.5, -0.25, 0.25, 0.5)

# Quality inspection (frequency gain ratio)
QUALITY_LOW_CUT = 16000        # Hz
QUALITY_HIGH_CUT = 20000       # Hz
QUALITY_THRESHOLD = 0.3        # empirical minimum for a good score

# Pipeline timeouts (seconds)
ANALYSIS_TIMEOUT = 60.0
EXPORT_TIMEOUT = 60.0
QUALITY_TIMEOUT = 30.0

# Worker pool fan-out: external processes spawned by one job
REFRESH_FANOUT = 2             # hash + analysis legs
EXPORT_FANOUT = 3              # audio + waveform + spectrogram

# Hashing
HASH_CHUNK_SIZE = 1024 * 1024

# Track status strings
STATUS_GOOD = "good"
STATUS_WARN = "warn"
STATUS_FAIL = "fail"

# File extensions
WAV_EXTENSION = ".wav"
FLAC_EXTENSION = ".flac"
PNG_EXTENSION = ".png"
LOSSLESS_EXTENSIONS = (WAV_EXTENSION, FLAC_EXTENSION)

# Export layout
EXPORT_PREFIX = "cdj-playlist-"
STAGING_DIR_NAME = ".staging"
AUDIO_DIR_NAME = "audio"
WAVEFORM_DIR_NAME = "waveforms"
SPECTROGRAM_DIR_NAME = "spectrograms"

# Storage
DEFAULT_STORE_PATH = "/tmp/cdj-playlist.json"
STORE_ENV_VAR = "CDJ_PLAYLIST_STORE"
LOCK_POLL_INTERVAL = 0.05      # seconds between non-blocking lock attempts

# Built-in BPM presets: (name, min, max). The first entry is the default.
DEFAULT_PRESETS = (
    ("default", 40, 220),      # Largo to Prestissimo
    ("dnb", 165, 179.99),
    ("jungle", 148, 164.99),
    ("dubstep", 138, 147.99),
    ("techno", 128, 137.99),
    ("house", 115, 129.99),
    ("hiphop", 60, 114.99),
    ("dub", 60, 89.99),
)
