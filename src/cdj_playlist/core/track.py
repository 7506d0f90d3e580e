"""
Track model and the persisted JSON codec.

The playlist is stored as a JSON array of objects with the fields
``path``, ``hash``, ``preset``, ``bpm`` and the optional ``quality``, in
that order. Numbers keep the type they were decoded with, so an unchanged
document encodes back to the very same bytes.
"""

import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .constants import (
    LOSSLESS_EXTENSIONS,
    QUALITY_THRESHOLD,
    STATUS_FAIL,
    STATUS_GOOD,
    STATUS_WARN,
)
from .presets import Preset, PresetLookupError, PresetTable


logger = logging.getLogger(__name__)

Number = Union[int, float]


class TrackDecodeError(ValueError):
    """Raised when a persisted track entry is malformed"""
    pass


@dataclass(frozen=True)
class Track:
    """An analyzed audio track"""
    path: str
    hash: str
    preset: Optional[Preset]
    bpm: Number
    quality: Optional[Number] = None

    @property
    def basename(self) -> str:
        return os.path.basename(self.path)

    @property
    def stem(self) -> str:
        return Path(self.path).stem

    @property
    def preset_name(self) -> str:
        return self.preset.name if self.preset is not None else ""

    @property
    def rounded_bpm(self) -> int:
        return round_bpm(self.bpm)

    def status(self) -> str:
        return track_status(self)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'path': self.path, 'hash': self.hash}
        if self.preset is not None:
            data['preset'] = self.preset.name
        data['bpm'] = self.bpm
        if self.quality is not None:
            data['quality'] = self.quality
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], presets: PresetTable) -> "Track":
        """
        Build a track from its persisted form.

        An empty preset name means the default preset. A missing one is kept
        as None so that it can be derived from the BPM later on.
        """
        if not isinstance(data, dict):
            raise TrackDecodeError(f"track entry must be an object, got {type(data).__name__}")

        try:
            path = data['path']
            digest = data['hash']
            bpm = data['bpm']
        except KeyError as e:
            raise TrackDecodeError(f"track entry is missing field {e}") from e

        if not isinstance(path, str) or not isinstance(digest, str):
            raise TrackDecodeError("track path and hash must be strings")
        if isinstance(bpm, bool) or not isinstance(bpm, (int, float)):
            raise TrackDecodeError(f"track bpm must be a number, got {bpm!r}")

        quality = data.get('quality')
        if quality is not None and (isinstance(quality, bool) or not isinstance(quality, (int, float))):
            raise TrackDecodeError(f"track quality must be a number, got {quality!r}")

        name = data.get('preset', None)
        if not isinstance(name, (str, type(None))):
            raise TrackDecodeError(f"track preset must be a string, got {name!r}")
        if name is None:
            preset = None
        elif name:
            try:
                preset = presets.from_name(name)
            except PresetLookupError as e:
                raise TrackDecodeError(f"{path}: {e}") from e
        else:
            preset = presets.default

        return cls(path=path, hash=digest, preset=preset, bpm=bpm, quality=quality)

    def __str__(self) -> str:
        return f"[{self.status()}] [{self.preset_name}] [{self.rounded_bpm}] {self.basename}"


def round_bpm(bpm: Number) -> int:
    """Round half away from zero"""
    return int(math.copysign(math.floor(abs(bpm) + 0.5), bpm))


def track_status(track: Track) -> str:
    """
    Classify a track for display and pruning.

    ``fail`` when the file is gone, ``warn`` for lossy formats or a low
    quality score, ``good`` otherwise.
    """
    if not os.path.exists(track.path):
        return STATUS_FAIL
    if Path(track.path).suffix.lower() not in LOSSLESS_EXTENSIONS:
        return STATUS_WARN
    if track.quality is not None and track.quality < QUALITY_THRESHOLD:
        return STATUS_WARN
    return STATUS_GOOD


def canonical_order(tracks: Iterable[Track]) -> List[Track]:
    """Stable sort by preset name, then by file basename"""
    return sorted(tracks, key=lambda t: (t.preset_name, t.basename))


def decode_tracks(text: str, presets: PresetTable) -> List[Track]:
    """Decode a persisted playlist. Blank input is an empty playlist."""
    if not text.strip():
        return []

    data = json.loads(text)
    if data is None:
        return []
    if not isinstance(data, list):
        raise TrackDecodeError(f"playlist must be a JSON array, got {type(data).__name__}")

    return [Track.from_dict(entry, presets) for entry in data]


def encode_tracks(tracks: Iterable[Track]) -> str:
    """Encode a playlist: indented JSON array with a trailing newline"""
    return json.dumps([track.to_dict() for track in tracks], indent=2, ensure_ascii=False) + "\n"
