"""
BPM Presets

A preset is a named BPM range. It is used as a hint for the tempo search
and as the bucket a track is exported into. The preset table is an
immutable value handed to the components that need it.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple, Union

from .constants import DEFAULT_PRESETS


logger = logging.getLogger(__name__)


class PresetLookupError(LookupError):
    """Base exception for preset lookups. Carries the default preset."""

    def __init__(self, message: str, fallback: "Preset"):
        super().__init__(message)
        self.fallback = fallback


class UnknownPresetError(PresetLookupError):
    """Raised when no preset has the requested name"""
    pass


class PresetRangeError(PresetLookupError):
    """Raised when a BPM value is outside every known preset range"""
    pass


@dataclass(frozen=True)
class Preset:
    """Named BPM range"""
    name: str
    min: float
    max: float

    @property
    def width(self) -> float:
        return self.max - self.min

    def contains(self, bpm: float) -> bool:
        return self.min <= bpm <= self.max


class PresetTable:
    """
    Immutable, ordered collection of presets.

    The first preset is the default one: it should have the widest range
    and is substituted whenever a lookup fails.
    """

    def __init__(self, presets: Iterable[Union[Preset, Sequence]]):
        items = []
        for preset in presets:
            if not isinstance(preset, Preset):
                name, low, high = preset
                preset = Preset(str(name), float(low), float(high))
            if preset.min > preset.max:
                raise ValueError(f"Invalid preset range for {preset.name}: {preset.min} > {preset.max}")
            items.append(preset)

        if not items:
            raise ValueError("A preset table needs at least one (default) preset")

        names = [preset.name for preset in items]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate preset names: {names}")

        self._presets: Tuple[Preset, ...] = tuple(items)

    @classmethod
    def builtin(cls) -> "PresetTable":
        return cls(DEFAULT_PRESETS)

    @property
    def default(self) -> Preset:
        return self._presets[0]

    def __iter__(self) -> Iterator[Preset]:
        return iter(self._presets)

    def __len__(self) -> int:
        return len(self._presets)

    def __contains__(self, name: object) -> bool:
        return any(preset.name == name for preset in self._presets)

    def names(self) -> Tuple[str, ...]:
        return tuple(preset.name for preset in self._presets)

    def from_name(self, name: str) -> Preset:
        """
        Return the preset with the given name.

        Raises:
            UnknownPresetError: no such preset; ``fallback`` holds the default
        """
        for preset in self._presets:
            if preset.name == name:
                return preset
        raise UnknownPresetError(f"unknown preset: {name}", self.default)

    def from_bpm(self, bpm: float) -> Preset:
        """
        Return the preset with the narrowest range matching the given BPM.

        The value is rounded to two decimals first, so 129.996 becomes 130.00
        and lands in techno instead of falling in the gap above house. On
        equal widths the earliest preset wins.

        Raises:
            PresetRangeError: no range matches; ``fallback`` holds the default
        """
        rounded = round(bpm * 100) / 100
        match = None

        for preset in self._presets:
            if not preset.contains(rounded):
                continue
            if match is None or preset.width < match.width:
                match = preset

        if match is None:
            raise PresetRangeError(f"unknown BPM range for value: {bpm:.2f}", self.default)

        return match

    def lookup(self, text: str) -> Preset:
        """Resolve a command-line argument: a number by BPM, anything else by name"""
        try:
            bpm = float(text)
        except ValueError:
            return self.from_name(text)
        return self.from_bpm(bpm)

    def __repr__(self) -> str:
        return f"PresetTable({list(self.names())})"
