"""
Unit tests for BPM presets.
"""

import pytest

from cdj_playlist.core.presets import (
    Preset,
    PresetLookupError,
    PresetRangeError,
    PresetTable,
    UnknownPresetError,
)


class TestPreset:
    """Test the preset value."""

    def test_contains_is_inclusive(self):
        """Test that both bounds belong to the range."""
        preset = Preset("house", 115, 129.99)
        assert preset.contains(115)
        assert preset.contains(129.99)
        assert not preset.contains(130)

    def test_presets_are_immutable(self):
        """Test that presets cannot be modified."""
        preset = Preset("dub", 60, 89.99)
        with pytest.raises(AttributeError):
            preset.min = 10


class TestPresetTable:
    """Test preset lookups."""

    def test_builtin_table(self, presets):
        """Test the built-in presets and their order."""
        assert presets.names() == ("default", "dnb", "jungle", "dubstep", "techno", "house", "hiphop", "dub")
        assert presets.default == Preset("default", 40, 220)
        assert len(presets) == 8
        assert "techno" in presets
        assert "trance" not in presets

    def test_from_name(self, presets):
        """Test lookup by name."""
        assert presets.from_name("dnb") == Preset("dnb", 165, 179.99)

    def test_unknown_name_carries_default(self, presets):
        """Test that a failed name lookup offers the default preset."""
        with pytest.raises(UnknownPresetError) as excinfo:
            presets.from_name("trance")
        assert excinfo.value.fallback == presets.default
        assert "unknown preset: trance" in str(excinfo.value)
        assert isinstance(excinfo.value, PresetLookupError)

    @pytest.mark.parametrize("bpm,name", [
        (174, "dnb"),
        (150, "jungle"),
        (140, "dubstep"),
        (128, "techno"),
        (120, "house"),
        (100, "hiphop"),
        (70, "dub"),
        (45, "default"),
        (129.996, "techno"),
        (129.994, "techno"),
        (127.5, "house"),
    ])
    def test_from_bpm_picks_narrowest(self, presets, bpm, name):
        """Test that the narrowest containing range wins."""
        assert presets.from_bpm(bpm).name == name

    @pytest.mark.parametrize("bpm", [39.99, 221, 0, -120])
    def test_from_bpm_out_of_range(self, presets, bpm):
        """Test that a BPM outside every range offers the default preset."""
        with pytest.raises(PresetRangeError) as excinfo:
            presets.from_bpm(bpm)
        assert excinfo.value.fallback == presets.default

    def test_equal_widths_keep_first(self):
        """Test that ties go to the earliest preset."""
        table = PresetTable([("wide", 0, 300), ("first", 100, 120), ("second", 110, 130)])
        assert table.from_bpm(115).name == "first"

    def test_lookup_number_or_name(self, presets):
        """Test resolution of command line arguments."""
        assert presets.lookup("house").name == "house"
        assert presets.lookup("174").name == "dnb"
        assert presets.lookup("88.5").name == "dub"
        with pytest.raises(UnknownPresetError):
            presets.lookup("trance")

    def test_accepts_presets_and_tuples(self):
        """Test that entries may be Preset values or triples."""
        table = PresetTable([Preset("all", 1, 500), ("slow", 1, 90)])
        assert table.from_name("slow") == Preset("slow", 1.0, 90.0)

    def test_rejects_empty_table(self):
        """Test that a default preset is required."""
        with pytest.raises(ValueError):
            PresetTable([])

    def test_rejects_inverted_range(self):
        """Test that min must not exceed max."""
        with pytest.raises(ValueError, match="Invalid preset range"):
            PresetTable([("broken", 130, 120)])

    def test_rejects_duplicate_names(self):
        """Test that names are unique."""
        with pytest.raises(ValueError, match="Duplicate"):
            PresetTable([("a", 1, 2), ("a", 3, 4)])
