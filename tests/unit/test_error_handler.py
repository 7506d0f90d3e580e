"""
Unit tests for user friendly error messages.
"""

import errno

import pytest

from cdj_playlist.audio.energy import SampleStreamError
from cdj_playlist.audio.quality import QualityParseError
from cdj_playlist.core.config_manager import ConfigError
from cdj_playlist.core.exporter import ExportOverwriteError
from cdj_playlist.core.presets import PresetTable
from cdj_playlist.core.transactions import LockAcquisitionError, PlaylistDecodeError
from cdj_playlist.pipelines.base import PipelineError, PipelineTimeoutError
from cdj_playlist.utils.error_handler import ErrorCategory, ErrorHandler, handle_user_error
from cdj_playlist.utils.tool_checker import ToolsMissingError


def unknown_preset():
    presets = PresetTable.builtin()
    try:
        presets.from_name("polka")
    except LookupError as e:
        return e


def out_of_range():
    try:
        PresetTable.builtin().from_bpm(300)
    except LookupError as e:
        return e


class TestClassification:
    """Test mapping exceptions to templates."""

    @pytest.mark.parametrize("exception,code", [
        (ExportOverwriteError("about to overwrite: x"), "export_overwrite"),
        (PipelineTimeoutError("ffmpeg timed out"), "pipeline_timeout"),
        (PipelineError("ffmpeg exited with status 1"), "pipeline_failed"),
        (SampleStreamError("truncated sample"), "audio_corrupted"),
        (QualityParseError("no frequency data"), "quality_parse"),
        (LockAcquisitionError("timed out"), "playlist_locked"),
        (PlaylistDecodeError("could not decode"), "playlist_corrupted"),
        (ToolsMissingError(["ffmpeg"]), "missing_tools"),
        (ConfigError("bad"), "config_invalid"),
        (FileNotFoundError(errno.ENOENT, "No such file", "/music/a.flac"), "file_not_found"),
        (PermissionError(errno.EACCES, "Permission denied"), "permission_denied"),
        (OSError(errno.ENOSPC, "No space left on device"), "disk_full"),
        (MemoryError(), "memory_error"),
        (RuntimeError("boom"), "system_error"),
    ])
    def test_error_codes(self, exception, code):
        """Test that each exception picks its template."""
        assert ErrorHandler().handle_exception(exception).code == code

    def test_preset_errors(self):
        """Test that preset lookups are user input errors."""
        handler = ErrorHandler()
        assert handler.handle_exception(unknown_preset()).code == "unknown_preset"
        assert handler.handle_exception(out_of_range()).code == "bpm_out_of_range"
        assert handler.handle_exception(unknown_preset()).category == ErrorCategory.INPUT


class TestFormatting:
    """Test rendered messages."""

    def test_message_and_suggestions(self):
        """Test that the message carries the detail and suggestions the context."""
        text = handle_user_error(unknown_preset(), {"presets": "default, house"})

        assert text.startswith("❌ Unknown preset")
        assert "unknown preset: polka" in text
        assert "Use one of: default, house" in text
        assert "🔍 Error code: unknown_preset" in text
        assert "Technical details" not in text

    def test_verbose_details(self):
        """Test that the traceback is shown in verbose mode."""
        try:
            raise PipelineError("ffmpeg exited with status 1")
        except PipelineError as e:
            text = handle_user_error(e, verbose=True)

        assert "🔧 Technical details:" in text
        assert "PipelineError" in text

    def test_message_without_placeholders(self):
        """Test templates with a fixed message."""
        error = ErrorHandler().handle_exception(MemoryError())
        assert error.message == "Not enough memory available."
        assert error.title == "Out of memory"
