#!/usr/bin/env python3
"""
CDJ Playlist - Command Line Interface

Maintains a playlist of tracks annotated with their BPM and exports it to
a uniform audio format with waveform and spectrogram pictures, classified
by BPM preset.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..core.config_manager import CdjPlaylistConfig, ConfigError, ConfigManager
from ..core.constants import STATUS_FAIL, STATUS_GOOD, STORE_ENV_VAR
from ..core.playlist import Playlist
from ..core.presets import PresetTable
from ..core.track import Track
from ..core.transactions import JSONFileRepository
from ..pipelines import default_pipelines
from ..utils.error_handler import handle_user_error
from ..utils.progress import ProgressFactory
from ..utils.tool_checker import ToolChecker


STATUS_STYLES = {
    STATUS_GOOD: "green",
    STATUS_FAIL: "red",
}


def setup_logging(log_level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper())

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Setup console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # Setup root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Setup file handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="cdj-playlist",
        description="Estimate the BPM of audio tracks and export them for CDJ decks",
        epilog=f"The playlist is stored in the file named by {STORE_ENV_VAR} "
               f"(or --store, or store_path in the configuration)."
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"CDJ Playlist v{__version__}"
    )

    # Configuration
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Configuration file path (JSON format)"
    )

    parser.add_argument(
        "--store",
        type=str,
        help="Playlist JSON file"
    )

    # Processing options
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of tracks processed in parallel (default: derived from the CPU count)"
    )

    parser.add_argument(
        "--lock-timeout",
        type=float,
        help="Seconds to wait for another process holding the playlist (default: wait forever)"
    )

    parser.add_argument(
        "--quality",
        action="store_true",
        default=None,
        help="Inspect the high-end frequency content of analyzed tracks (requires sox)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed of the tempo search, for reproducible estimates"
    )

    parser.add_argument(
        "--skip-tool-check",
        action="store_true",
        help="Do not check for ffmpeg and sox before running"
    )

    # Logging
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print additional information"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: ui.log_level from the settings, INFO with --verbose)"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Log file path"
    )

    parser.add_argument(
        "--verbose-errors",
        action="store_true",
        default=None,
        help="Show technical details of errors"
    )

    # Output options
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide progress bars"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    analyze = subparsers.add_parser("analyze", help="Analyze a track and add it to the playlist")
    analyze.add_argument("preset", help="Preset name, or a BPM value selecting the narrowest preset")
    analyze.add_argument("path", help="Audio file")

    compile_ = subparsers.add_parser("compile", help="Export all tracks into a new directory")
    compile_.add_argument("destination", help="Directory receiving the export")

    subparsers.add_parser("refresh", help="Re-analyze every track of the playlist")

    list_ = subparsers.add_parser("list", help="Show the playlist")
    list_.add_argument("--plain", action="store_true", help="One line per track, no table")

    subparsers.add_parser("files", help="Print the path of every track")
    subparsers.add_parser("prune", help="Drop tracks whose file is gone")

    return parser


def load_configuration(args: argparse.Namespace) -> CdjPlaylistConfig:
    """Load configuration and apply command line overrides."""
    cli_overrides: Dict[str, Any] = {
        'store_path': args.store,
        'analysis': {
            'quality': args.quality,
            'seed': args.seed,
        },
        'processing': {
            'max_workers': args.workers,
            'lock_timeout': args.lock_timeout,
        },
        'ui': {
            'progress': False if args.no_progress else None,
            'verbose_errors': args.verbose_errors,
        },
    }

    manager = ConfigManager()
    config = manager.load_config(config_file=args.config, cli_overrides=cli_overrides)

    issues = manager.validate_config(config)
    if issues:
        raise ConfigError("; ".join(issues))

    return config


def build_playlist(config: CdjPlaylistConfig, progress: Optional[ProgressFactory] = None) -> Playlist:
    """Wire the repository, pipelines and scanner from configuration."""
    presets = config.preset_table()
    repository = JSONFileRepository(
        config.store_path,
        presets=presets,
        lock_timeout=config.processing.lock_timeout,
    )
    return Playlist(
        repository,
        pipelines=default_pipelines(quality=config.analysis.quality),
        presets=presets,
        config=config,
        progress_factory=progress,
    )


def print_tracks(tracks: List[Track], console: Console) -> None:
    """Render the playlist as a table."""
    show_quality = any(track.quality is not None for track in tracks)

    table = Table(title=f"🎧 Playlist ({len(tracks)} tracks)", box=box.ROUNDED)
    table.add_column("Status")
    table.add_column("Preset")
    table.add_column("BPM", justify="right")
    if show_quality:
        table.add_column("Quality", justify="right")
    table.add_column("File")

    for track in tracks:
        status = track.status()
        row = [
            f"[{STATUS_STYLES.get(status, 'yellow')}]{status}[/]",
            track.preset_name,
            str(track.rounded_bpm),
        ]
        if show_quality:
            row.append(f"{track.quality:.3f}" if track.quality is not None else "")
        row.append(track.basename)
        table.add_row(*row)

    console.print(table)


def run_command(args: argparse.Namespace, config: CdjPlaylistConfig) -> int:
    """Run the selected sub-command."""
    logger = logging.getLogger(__name__)

    if args.command in ("analyze", "refresh", "compile") and not args.skip_tool_check:
        ToolChecker(quality=config.analysis.quality).check_and_raise_if_missing()

    progress = ProgressFactory(enabled=config.ui.progress)
    playlist = build_playlist(config, progress)

    try:
        if args.command == "analyze":
            preset = playlist.presets.lookup(args.preset)
            track = playlist.analyze(args.path, preset)
            print(track)

        elif args.command == "compile":
            root = playlist.compile(args.destination)
            print(root)

        elif args.command == "refresh":
            tracks = playlist.refresh()
            logger.info(f"✅ Refreshed {len(tracks)} tracks")

        elif args.command == "list":
            tracks = playlist.tracks()
            if args.plain:
                for track in tracks:
                    print(track)
            else:
                print_tracks(tracks, Console(no_color=not config.ui.color_output))

        elif args.command == "files":
            for path in playlist.files():
                print(path)

        elif args.command == "prune":
            for track in playlist.prune():
                print(track)

    finally:
        progress.close_all()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    # Create and parse arguments
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_level = args.log_level or ("INFO" if args.verbose else "WARNING")
    setup_logging(log_level, args.log_file)
    logger = logging.getLogger(__name__)

    verbose_errors = bool(args.verbose_errors)
    context: Dict[str, Any] = {}

    try:
        config = load_configuration(args)
        verbose_errors = config.ui.verbose_errors
        if not (args.log_level or args.verbose):
            logging.getLogger().setLevel(config.ui.log_level.upper())
        context["presets"] = ", ".join(config.preset_table().names())

        logger.info(f"CDJ Playlist v{__version__}: {args.command} ({config.store_path})")
        return run_command(args, config)

    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user", file=sys.stderr)
        return 130
    except Exception as e:
        if not context:
            context["presets"] = ", ".join(PresetTable.builtin().names())
        print(handle_user_error(e, context, verbose=verbose_errors), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
