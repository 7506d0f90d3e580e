"""
Error reporting for the command line

Turns the exceptions raised while analyzing, exporting or storing tracks
into a short explanation and a few hints on what to try next.
"""

import logging
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from ..audio.energy import SampleStreamError
from ..audio.quality import QualityParseError
from ..core.config_manager import ConfigError
from ..core.exporter import ExportOverwriteError
from ..core.presets import PresetRangeError, UnknownPresetError
from ..core.transactions import LockAcquisitionError, PlaylistDecodeError
from ..pipelines.base import PipelineError, PipelineTimeoutError
from .tool_checker import ToolsMissingError


class ErrorCategory(Enum):
    """Where a failure comes from"""
    INPUT = "input"
    ANALYSIS = "analysis"
    EXPORT = "export"
    PLAYLIST = "playlist"
    ENVIRONMENT = "environment"
    SYSTEM = "system"


@dataclass(frozen=True)
class ErrorTemplate:
    category: ErrorCategory
    title: str
    message: str = "{detail}"
    hints: Tuple[str, ...] = ()


@dataclass
class ErrorReport:
    """A rendered error, ready to print"""
    category: ErrorCategory
    title: str
    message: str
    hints: List[str] = field(default_factory=list)
    traceback: Optional[str] = None
    code: Optional[str] = None


TEMPLATES: Dict[str, ErrorTemplate] = {
    "unknown_preset": ErrorTemplate(
        ErrorCategory.INPUT, "Unknown preset",
        hints=("Use one of: {presets}",
               "Or give a BPM value to pick the narrowest matching preset"),
    ),
    "bpm_out_of_range": ErrorTemplate(
        ErrorCategory.INPUT, "BPM out of range",
        hints=("Use a BPM value covered by one of: {presets}",),
    ),
    "file_not_found": ErrorTemplate(
        ErrorCategory.INPUT, "File not found",
        hints=("Check the track path",
               "Run 'cdj-playlist prune' to drop tracks that were moved or deleted"),
    ),
    "config_invalid": ErrorTemplate(
        ErrorCategory.INPUT, "Invalid configuration",
        hints=("Fix or remove the offending settings to fall back to the defaults",),
    ),
    "pipeline_failed": ErrorTemplate(
        ErrorCategory.ANALYSIS, "External tool failed",
        hints=("Make sure the file plays in an audio player",
               "Run with --log-level DEBUG to see what the tool printed"),
    ),
    "pipeline_timeout": ErrorTemplate(
        ErrorCategory.ANALYSIS, "External tool timed out",
        hints=("Raise the timeouts in the settings file",
               "Run fewer tracks at once with --workers"),
    ),
    "audio_corrupted": ErrorTemplate(
        ErrorCategory.ANALYSIS, "Unreadable audio data",
        hints=("The decoded sample stream ended in the middle of a sample",),
    ),
    "quality_parse": ErrorTemplate(
        ErrorCategory.ANALYSIS, "Quality inspection failed",
        hints=("Run without --quality to skip the inspection",),
    ),
    "export_overwrite": ErrorTemplate(
        ErrorCategory.EXPORT, "Export would overwrite a file",
        hints=("Two tracks share the same preset, BPM and file name",
               "Rename one of the source files and compile again"),
    ),
    "disk_full": ErrorTemplate(
        ErrorCategory.EXPORT, "Disk full",
        message="No space left in the export directory.",
        hints=("Free some space or compile somewhere else",),
    ),
    "playlist_corrupted": ErrorTemplate(
        ErrorCategory.PLAYLIST, "Unreadable playlist",
        hints=("Check the JSON file at the store path",
               "Point --store or CDJ_PLAYLIST_STORE at another file to start over"),
    ),
    "playlist_locked": ErrorTemplate(
        ErrorCategory.PLAYLIST, "Playlist is busy",
        hints=("Another cdj-playlist process holds the playlist, wait for it",
               "Raise processing.lock_timeout in the settings file"),
    ),
    "missing_tools": ErrorTemplate(
        ErrorCategory.ENVIRONMENT, "Missing external tools",
        hints=("Debian/Ubuntu: sudo apt-get install ffmpeg sox",
               "macOS: brew install ffmpeg sox"),
    ),
    "permission_denied": ErrorTemplate(
        ErrorCategory.ENVIRONMENT, "Permission denied",
        hints=("Pick a store path and an export directory you can write to",),
    ),
    "memory_error": ErrorTemplate(
        ErrorCategory.SYSTEM, "Out of memory",
        message="Not enough memory available.",
        hints=("Run fewer tracks at once with --workers",),
    ),
    "system_error": ErrorTemplate(
        ErrorCategory.SYSTEM, "Unexpected error",
        hints=("Run with --verbose-errors to see the traceback",),
    ),
}

# First match wins, so subclasses come before their bases.
CLASSIFICATION: Tuple[Tuple[Type[BaseException], str], ...] = (
    (ExportOverwriteError, "export_overwrite"),
    (PipelineTimeoutError, "pipeline_timeout"),
    (PipelineError, "pipeline_failed"),
    (SampleStreamError, "audio_corrupted"),
    (QualityParseError, "quality_parse"),
    (LockAcquisitionError, "playlist_locked"),
    (PlaylistDecodeError, "playlist_corrupted"),
    (UnknownPresetError, "unknown_preset"),
    (PresetRangeError, "bpm_out_of_range"),
    (ToolsMissingError, "missing_tools"),
    (ConfigError, "config_invalid"),
    (FileNotFoundError, "file_not_found"),
    (PermissionError, "permission_denied"),
    (MemoryError, "memory_error"),
)


def classify(exception: BaseException) -> str:
    """Template key for an exception"""
    for exception_type, key in CLASSIFICATION:
        if isinstance(exception, exception_type):
            return key
    if isinstance(exception, OSError) and "No space left on device" in str(exception):
        return "disk_full"
    return "system_error"


class ErrorHandler:
    """
    Builds and renders ErrorReports.

    The traceback is only attached in verbose mode.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_exception(self, exception: BaseException,
                         context: Optional[Dict[str, Any]] = None) -> ErrorReport:
        """
        Args:
            exception: What went wrong
            context: Values for the template placeholders, ``presets`` in particular
        """
        values = {
            "detail": str(exception) or type(exception).__name__,
            "presets": "see 'cdj-playlist --help'",
        }
        values.update(context or {})

        code = classify(exception)
        template = TEMPLATES[code]

        try:
            message = template.message.format(**values)
            hints = [hint.format(**values) for hint in template.hints]
        except (KeyError, IndexError, ValueError):
            message = template.message
            hints = list(template.hints)

        details = None
        if self.verbose:
            details = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))

        return ErrorReport(template.category, template.title, message, hints, details, code)

    def format_error_message(self, report: ErrorReport) -> str:
        lines = [f"❌ {report.title}", f"   {report.message}", ""]

        if report.hints:
            lines.append("💡 Suggestions:")
            lines.extend(f"   • {hint}" for hint in report.hints)
            lines.append("")

        if self.verbose and report.traceback:
            lines.append("🔧 Technical details:")
            lines.extend(f"   {line}" for line in report.traceback.splitlines() if line.strip())
            lines.append("")

        if report.code:
            lines.append(f"🔍 Error code: {report.code}")

        return "\n".join(lines)

    def log_error(self, report: ErrorReport):
        if report.category == ErrorCategory.INPUT:
            self.logger.warning(f"{report.title}: {report.message}")
        else:
            self.logger.error(f"{report.category.value} error, {report.title}: {report.message}")
        if report.traceback:
            self.logger.debug(report.traceback)


def handle_user_error(exception: BaseException, context: Optional[Dict[str, Any]] = None,
                      verbose: bool = False) -> str:
    """Log ``exception`` and return the text to show the user"""
    handler = ErrorHandler(verbose=verbose)
    report = handler.handle_exception(exception, context)
    handler.log_error(report)
    return handler.format_error_message(report)
