"""
CDJ Playlist

Maintains a playlist of audio tracks annotated with an estimated tempo and
exports it to a uniform format for CDJ decks.

Features:
- Tempo estimation from an energy envelope (randomized autodifference search)
- Concurrent per-track analysis: content hash, tempo, optional quality score
- Bounded, cancellation-aware batch processing
- JSON playlist guarded by an advisory file lock across processes
- Staged three-artifact export: audio, waveform and spectrogram
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core.config_manager import CdjPlaylistConfig, ConfigManager
from .core.playlist import Playlist
from .core.presets import Preset, PresetTable
from .core.track import Track
from .core.transactions import JSONFileRepository

__all__ = [
    "__version__",
    "__license__",
    "CdjPlaylistConfig",
    "ConfigManager",
    "Playlist",
    "Preset",
    "PresetTable",
    "Track",
    "JSONFileRepository",
]
