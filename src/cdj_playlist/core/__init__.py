"""Core components for CDJ Playlist."""

from .batch_processor import BatchProcessor, default_workers, run_batch
from .config_manager import CdjPlaylistConfig, ConfigError, ConfigManager
from .presets import Preset, PresetLookupError, PresetRangeError, PresetTable, UnknownPresetError
from .track import Track, TrackDecodeError, canonical_order, decode_tracks, encode_tracks
from .transactions import (
    JSONFileRepository,
    LockAcquisitionError,
    PlaylistDecodeError,
    TransactionError,
    TransactionState,
)

__all__ = [
    "BatchProcessor",
    "default_workers",
    "run_batch",
    "CdjPlaylistConfig",
    "ConfigError",
    "ConfigManager",
    "Preset",
    "PresetLookupError",
    "PresetRangeError",
    "PresetTable",
    "UnknownPresetError",
    "Track",
    "TrackDecodeError",
    "canonical_order",
    "decode_tracks",
    "encode_tracks",
    "JSONFileRepository",
    "LockAcquisitionError",
    "PlaylistDecodeError",
    "TransactionError",
    "TransactionState",
]
