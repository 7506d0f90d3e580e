"""
Exporter - Renders the three artifacts of every track

Each track is exported as a converted audio file, a waveform picture and a
spectrogram picture, classified by preset and named after the rounded BPM:

    <root>/audio/<preset>/<bpm> - <stem>.wav
    <root>/waveforms/<preset>/<bpm> - <stem>.png
    <root>/spectrograms/<preset>/<bpm> - <stem>.png

Artifacts are rendered into a per-track staging directory and only linked
into place once all three succeeded, so a track is exported entirely or
not at all. Filesystems without hard links get an exclusive copy instead.
"""

import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from ..pipelines.base import Codec, Pipeline, as_pipeline, run_pipeline
from .constants import (
    AUDIO_DIR_NAME,
    DEFAULT_PRESETS,
    EXPORT_PREFIX,
    EXPORT_TIMEOUT,
    PNG_EXTENSION,
    SPECTROGRAM_DIR_NAME,
    STAGING_DIR_NAME,
    WAV_EXTENSION,
    WAVEFORM_DIR_NAME,
)
from .track import Track


class ExportOverwriteError(FileExistsError):
    """Raised when an export destination already exists"""
    pass


@dataclass(frozen=True)
class Artifact:
    """One exported file kind"""
    codec: Codec
    directory: str
    extension: str


ARTIFACTS = (
    Artifact(Codec.CONVERT, AUDIO_DIR_NAME, WAV_EXTENSION),
    Artifact(Codec.WAVEFORM, WAVEFORM_DIR_NAME, PNG_EXTENSION),
    Artifact(Codec.SPECTRUM, SPECTROGRAM_DIR_NAME, PNG_EXTENSION),
)


def export_name(track: Track, default_preset: str = DEFAULT_PRESETS[0][0]) -> str:
    """``<preset>/<rounded bpm> - <stem>``, tracks without preset go to ``default_preset``"""
    preset = track.preset_name or default_preset
    return os.path.join(preset, f"{track.rounded_bpm} - {track.stem}")


def create_export_root(destination: str) -> str:
    """Fresh uniquely named directory under ``destination``"""
    return tempfile.mkdtemp(prefix=EXPORT_PREFIX, dir=os.path.normpath(destination))


class Exporter:
    """
    Exports tracks below one export root.

    Safe to call concurrently for different tracks.
    """

    def __init__(self, root: str, pipelines: Mapping[Codec, Pipeline], timeout: float = EXPORT_TIMEOUT,
                 default_preset: str = DEFAULT_PRESETS[0][0]):
        missing = [a.codec.value for a in ARTIFACTS if a.codec not in pipelines]
        if missing:
            raise ValueError(f"missing export pipelines: {', '.join(missing)}")

        self.root = Path(root)
        self.staging = self.root / STAGING_DIR_NAME
        self.pipelines = {a.codec: as_pipeline(pipelines[a.codec]) for a in ARTIFACTS}
        self.timeout = timeout
        self.default_preset = default_preset
        self.logger = logging.getLogger(__name__)

    def destinations(self, track: Track) -> List[Path]:
        name = export_name(track, self.default_preset)
        return [self.root / a.directory / f"{name}{a.extension}" for a in ARTIFACTS]

    def export(self, track: Track) -> List[Path]:
        """
        Render and place the three artifacts of ``track``.

        Returns:
            The final artifact paths

        Raises:
            ExportOverwriteError: a destination exists, nothing was written
        """
        destinations = self.destinations(track)
        for destination in destinations:
            if destination.exists():
                raise ExportOverwriteError(f"about to overwrite: {destination}")

        self.staging.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f"{track.hash[:12]}-", dir=self.staging))

        try:
            staged = self._render(track, staging)
            self._place(staged, destinations)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        self.logger.info(f"📦 {track}")
        return destinations

    def _render(self, track: Track, staging: Path) -> List[Path]:
        staged = [staging / f"{a.directory}{a.extension}" for a in ARTIFACTS]
        first_error: Optional[BaseException] = None

        with ThreadPoolExecutor(max_workers=len(ARTIFACTS)) as executor:
            futures = {
                executor.submit(self._build, track.path, target, self.pipelines[a.codec]): a
                for a, target in zip(ARTIFACTS, staged)
            }
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    self.logger.debug(f"{futures[future].codec.value} failed for {track.path}: {e}")
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error
        return staged

    def _build(self, source: str, target: Path, pipeline: Pipeline):
        with open(source, 'rb') as src, open(target, 'xb') as dst:
            run_pipeline(pipeline, src, dst, self.timeout)

    def _place(self, staged: List[Path], destinations: List[Path]):
        placed: List[Path] = []
        try:
            for source, destination in zip(staged, destinations):
                destination.parent.mkdir(parents=True, exist_ok=True)
                try:
                    os.link(source, destination)
                except FileExistsError as e:
                    raise ExportOverwriteError(f"about to overwrite: {destination}") from e
                except OSError as e:
                    # FAT32 and exFAT sticks have no hard links
                    self.logger.debug(f"Cannot link {destination} ({e}), copying instead")
                    self._copy(source, destination, placed)
                    continue
                placed.append(destination)
        except BaseException:
            for path in placed:
                try:
                    path.unlink()
                except OSError as e:
                    self.logger.warning(f"Could not remove partial export {path}: {e}")
            raise

    def _copy(self, source: Path, destination: Path, placed: List[Path]):
        """Exclusive create, then copy. The destination joins ``placed`` once created."""
        try:
            dst = open(destination, 'xb')
        except FileExistsError as e:
            raise ExportOverwriteError(f"about to overwrite: {destination}") from e
        placed.append(destination)
        with dst, open(source, 'rb') as src:
            shutil.copyfileobj(src, dst)

    def cleanup(self):
        """Remove the staging area once no export is running"""
        shutil.rmtree(self.staging, ignore_errors=True)
