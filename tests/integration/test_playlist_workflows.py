"""
Integration tests for playlist workflows.

Pipelines and scanner are stubbed: every pipeline writes 'ok' and every
track is 100 BPM.
"""

import errno
import glob
import json
import os
from pathlib import Path

import pytest

from cdj_playlist.core.exporter import ExportOverwriteError
from cdj_playlist.core.track import Track


def store_text(store_path):
    return Path(store_path).read_text()


class TestAnalyzeWorkflow:
    """Test adding tracks to the playlist."""

    def test_analyze_twice_keeps_one_entry(self, make_playlist, hello_file, hello_hash, presets):
        """Test that analyzing the same file twice records it once."""
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        track = playlist.analyze(hello_file, presets.default)

        tracks = playlist.tracks()
        assert tracks == [track]
        assert track.hash == hello_hash
        assert track.bpm == 100
        assert track.preset.name == "default"

    def test_changed_content_replaces_entry(self, make_playlist, hello_file, presets):
        """Test that an entry recorded at the same path is replaced."""
        playlist = make_playlist()
        first = playlist.analyze(hello_file, presets.default)
        Path(hello_file).write_bytes(b"goodbye\n")
        second = playlist.analyze(hello_file, presets.default)

        assert first.hash != second.hash
        assert [t.hash for t in playlist.tracks()] == [second.hash]

    def test_moved_file_replaces_entry(self, make_playlist, hello_file, temp_workspace, presets):
        """Test that an entry with the same content is replaced."""
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        moved = os.path.join(temp_workspace, "moved.flac")
        os.rename(hello_file, moved)
        playlist.analyze(moved, presets.default)

        assert playlist.files() == [moved]

    def test_failed_analysis_keeps_store(self, make_playlist, hello_file, store_path, presets):
        """Test that a failed analysis leaves the playlist untouched."""
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        before = store_text(store_path)

        def broken(stream, min_bpm, max_bpm):
            raise ValueError("no signal")

        with pytest.raises(ValueError):
            make_playlist(scanner=broken).analyze(hello_file, presets.from_name("house"))
        assert store_text(store_path) == before

    def test_canonical_order(self, make_playlist, temp_workspace, presets):
        """Test that tracks are kept sorted by preset, then file name."""
        playlist = make_playlist()
        for name, preset in (("b.flac", "house"), ("a.flac", "techno"), ("c.flac", "house")):
            path = os.path.join(temp_workspace, name)
            Path(path).write_bytes(name.encode())
            playlist.analyze(path, presets.from_name(preset))

        assert [(t.preset_name, t.basename) for t in playlist.tracks()] == [
            ("house", "b.flac"), ("house", "c.flac"), ("techno", "a.flac"),
        ]


class TestRefreshWorkflow:
    """Test re-analyzing the playlist."""

    @pytest.fixture
    def library(self, temp_workspace, make_playlist, presets):
        playlist = make_playlist()
        for n in range(6):
            path = os.path.join(temp_workspace, f"track-{n}.flac")
            Path(path).write_bytes(f"track {n}\n".encode())
            playlist.analyze(path, presets.from_name("house" if n % 2 else "techno"))
        return playlist

    @pytest.mark.parametrize("workers", [1, 2, 16])
    def test_pool_size_does_not_change_result(self, library, make_playlist, store_path, workers):
        """Test that refresh results are independent of the pool size."""
        before = store_text(store_path)
        make_playlist(max_workers=workers).refresh()
        assert store_text(store_path) == before

    def test_refresh_uses_stored_preset(self, library, make_playlist, presets):
        """Test that every track is searched within its own preset."""
        seen = []

        def scanner(stream, min_bpm, max_bpm):
            seen.append((min_bpm, max_bpm))
            return 126

        tracks = make_playlist(scanner=scanner).refresh()
        house, techno = presets.from_name("house"), presets.from_name("techno")
        assert sorted(seen) == sorted([(house.min, house.max)] * 3 + [(techno.min, techno.max)] * 3)
        assert all(t.bpm == 126 for t in tracks)

    def test_missing_preset_is_derived(self, make_playlist, hello_file, hello_hash, store_path):
        """Test that a track stored without preset gets one from its BPM."""
        Path(store_path).write_text(json.dumps([{"path": hello_file, "hash": hello_hash, "bpm": 120}]))
        seen = []

        def scanner(stream, min_bpm, max_bpm):
            seen.append((min_bpm, max_bpm))
            return 121

        tracks = make_playlist(scanner=scanner).refresh()
        assert seen == [(115, 129.99)]
        assert tracks[0].preset.name == "house"
        assert json.loads(store_text(store_path))[0]["preset"] == "house"

    def test_failed_refresh_keeps_store(self, library, make_playlist, store_path):
        """Test that one failing track aborts the whole refresh."""
        before = store_text(store_path)

        def scanner(stream, min_bpm, max_bpm):
            raise RuntimeError("scan failed")

        with pytest.raises(RuntimeError):
            make_playlist(max_workers=2, scanner=scanner).refresh()
        assert store_text(store_path) == before


class TestCompileWorkflow:
    """Test exporting the playlist."""

    def test_export_layout(self, make_playlist, hello_file, temp_workspace, presets):
        """Test the artifacts of one analyzed track."""
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        destination = os.path.join(temp_workspace, "export")
        os.mkdir(destination)

        root = playlist.compile(destination)

        files = sorted(glob.glob(os.path.join(destination, "cdj-playlist-*", "*", "*", "*")))
        assert len(files) == 3
        assert all(os.path.dirname(f).endswith(os.sep + "default") for f in files)
        stem = Path(hello_file).stem
        assert os.path.join(root, "audio", "default", f"100 - {stem}.wav") in files
        for path in files:
            assert Path(path).read_text() == "ok\n"
        assert not os.path.exists(os.path.join(root, ".staging"))

    def test_compile_keeps_store(self, make_playlist, hello_file, temp_workspace, store_path, presets):
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        before = store_text(store_path)
        playlist.compile(temp_workspace)
        assert store_text(store_path) == before

    def test_name_collision(self, make_playlist, temp_workspace, store_path, presets):
        """Test that two tracks exporting to the same name fail the compile."""
        playlist = make_playlist()
        for directory in ("one", "two"):
            os.mkdir(os.path.join(temp_workspace, directory))
            path = os.path.join(temp_workspace, directory, "same.flac")
            Path(path).write_bytes(directory.encode())
            playlist.analyze(path, presets.default)
        before = store_text(store_path)
        destination = os.path.join(temp_workspace, "export")
        os.mkdir(destination)

        with pytest.raises(ExportOverwriteError):
            playlist.compile(destination)
        assert store_text(store_path) == before

    def test_every_compile_gets_new_root(self, make_playlist, hello_file, temp_workspace, presets):
        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        assert playlist.compile(temp_workspace) != playlist.compile(temp_workspace)


class TestPruneWorkflow:
    """Test dropping missing tracks."""

    def test_prune(self, make_playlist, hello_file, temp_workspace, presets):
        """Test that only tracks whose file is gone are removed."""
        playlist = make_playlist()
        gone = os.path.join(temp_workspace, "gone.flac")
        Path(gone).write_bytes(b"gone\n")
        playlist.analyze(hello_file, presets.default)
        playlist.analyze(gone, presets.default)
        os.remove(gone)

        removed = playlist.prune()
        assert [t.path for t in removed] == [gone]
        assert playlist.files() == [hello_file]
        assert playlist.prune() == []

    def test_listing_does_not_create_store(self, make_playlist, store_path):
        playlist = make_playlist()
        assert playlist.tracks() == []
        assert playlist.files() == []
        assert not os.path.exists(store_path)


class TestStoreOrder:
    """Test that every write leaves the store in canonical order."""

    @pytest.fixture
    def unsorted_store(self, store_path, temp_workspace):
        entries = []
        for name, preset, bpm in (("z.flac", "techno", 130), ("b.flac", "house", 120), ("a.flac", "house", 125)):
            path = os.path.join(temp_workspace, name)
            Path(path).write_bytes(name.encode())
            entries.append({"path": path, "hash": name, "preset": preset, "bpm": bpm})
        Path(store_path).write_text(json.dumps(entries))

    def stored_names(self, store_path):
        return [os.path.basename(entry["path"]) for entry in json.loads(store_text(store_path))]

    def test_prune_sorts(self, make_playlist, unsorted_store, store_path):
        """Test that prune persists the canonical order."""
        assert make_playlist().prune() == []
        assert self.stored_names(store_path) == ["a.flac", "b.flac", "z.flac"]

    def test_compile_sorts(self, make_playlist, unsorted_store, store_path, temp_workspace):
        """Test that compile persists the canonical order."""
        make_playlist().compile(temp_workspace)
        assert self.stored_names(store_path) == ["a.flac", "b.flac", "z.flac"]


class TestCompileWithoutHardLinks:
    """Test compiling onto a filesystem without hard links."""

    def test_three_artifacts(self, make_playlist, hello_file, temp_workspace, presets, monkeypatch):
        """Test that every artifact is still exported."""
        def refuse(source, destination):
            raise PermissionError(errno.EPERM, "Operation not permitted")
        monkeypatch.setattr("cdj_playlist.core.exporter.os.link", refuse)

        playlist = make_playlist()
        playlist.analyze(hello_file, presets.default)
        root = playlist.compile(temp_workspace)

        files = glob.glob(os.path.join(root, "*", "*", "*"))
        assert len(files) == 3
        for path in files:
            assert Path(path).read_text() == "ok\n"
