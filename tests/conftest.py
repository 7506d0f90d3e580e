"""
Shared pytest fixtures for CDJ Playlist tests.

Provides temporary stores, source files and stub pipelines so that no
test needs ffmpeg or sox.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from cdj_playlist.core.config_manager import CdjPlaylistConfig
from cdj_playlist.core.playlist import Playlist
from cdj_playlist.core.presets import PresetTable
from cdj_playlist.core.transactions import JSONFileRepository
from cdj_playlist.pipelines.base import Codec


HELLO_HASH = "5891b5b522d5df086d0ff0b110fbd9d21bb4fc7163af34d08286a2e846f6be03"


def _write_ok(stdin, stdout, stderr, timeout):
    stdout.write(b"ok\n")


def _stub_scanner(stream, min_bpm, max_bpm):
    return 100


@pytest.fixture
def hello_hash():
    return HELLO_HASH


@pytest.fixture
def write_ok():
    """Pipeline stub writing a fixed marker."""
    return _write_ok


@pytest.fixture
def stub_scanner():
    """Scanner stub always answering 100 BPM."""
    return _stub_scanner


@pytest.fixture
def temp_workspace():
    """Create temporary workspace directory."""
    workspace = tempfile.mkdtemp()
    yield workspace
    shutil.rmtree(workspace, ignore_errors=True)


@pytest.fixture
def presets():
    return PresetTable.builtin()


@pytest.fixture
def store_path(temp_workspace):
    return str(Path(temp_workspace) / "playlist.json")


@pytest.fixture
def repository(store_path, presets):
    return JSONFileRepository(store_path, presets=presets)


@pytest.fixture
def hello_file(temp_workspace):
    """A source file containing 'hello\\n'."""
    fd, path = tempfile.mkstemp(prefix="cdj-playlist-source-", suffix=".flac", dir=temp_workspace)
    with open(fd, "wb") as f:
        f.write(b"hello\n")
    return path


@pytest.fixture
def stub_pipelines():
    return {
        Codec.ANALYZE: _write_ok,
        Codec.CONVERT: _write_ok,
        Codec.WAVEFORM: _write_ok,
        Codec.SPECTRUM: _write_ok,
    }


@pytest.fixture
def make_playlist(repository, stub_pipelines, presets):
    """Factory for playlists wired with stub pipelines and scanner."""
    def factory(max_workers=None, scanner=_stub_scanner, pipelines=None):
        config = CdjPlaylistConfig()
        config.processing.max_workers = max_workers
        return Playlist(
            repository,
            pipelines=pipelines or stub_pipelines,
            scanner=scanner,
            presets=presets,
            config=config,
        )
    return factory
