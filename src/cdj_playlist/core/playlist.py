"""
Playlist - The operations on the persisted track collection

Every operation is one transaction on the repository: the collection is
decoded under an exclusive lock, transformed and written back, or left
untouched when the transformation fails.
"""

import logging
from typing import Callable, List, Mapping, Optional

from ..audio.tempo import TempoEstimator
from ..pipelines.base import Codec, Pipeline
from .batch_processor import BatchProcessor, ProgressCallback
from .config_manager import CdjPlaylistConfig
from .constants import EXPORT_FANOUT, REFRESH_FANOUT, STATUS_FAIL
from .exporter import Exporter, create_export_root
from .presets import Preset, PresetRangeError, PresetTable
from .track import Track, canonical_order
from .track_processor import Scanner, TrackProcessor
from .transactions import JSONFileRepository


class Playlist:
    """
    Facade over the repository, the track processor and the exporter.
    """

    def __init__(self, repository: JSONFileRepository,
                 pipelines: Optional[Mapping[Codec, Pipeline]] = None,
                 scanner: Optional[Scanner] = None,
                 presets: Optional[PresetTable] = None,
                 config: Optional[CdjPlaylistConfig] = None,
                 progress_factory: Optional[Callable[[str, int], ProgressCallback]] = None):
        """
        Args:
            repository: Persistence of the collection
            pipelines: External pipelines by codec
            scanner: BPM scanner, a seeded TempoEstimator when omitted
            presets: Preset table, the repository's when omitted
            config: Timeouts, pool size and seed
            progress_factory: Builds a ``(done, total)`` callback from a label and a total
        """
        self.repository = repository
        self.pipelines = dict(pipelines or {})
        self.presets = presets or repository.presets
        self.config = config or CdjPlaylistConfig()
        self.progress_factory = progress_factory
        self.logger = logging.getLogger(__name__)

        self.scanner = scanner or TempoEstimator(seed=self.config.analysis.seed)

    def _processor(self) -> TrackProcessor:
        return TrackProcessor(
            self.pipelines,
            self.scanner,
            analysis_timeout=self.config.analysis.analysis_timeout,
            quality_timeout=self.config.analysis.quality_timeout,
        )

    def _batch(self, label: str, total: int, fanout: int) -> BatchProcessor:
        callback = self.progress_factory(label, total) if self.progress_factory else None
        return BatchProcessor(self.config.processing.max_workers, fanout, callback)

    def analyze(self, path: str, preset: Preset) -> Track:
        """
        Analyze one file and add it to the playlist.

        An entry with the same content hash, or recorded at the same path, is
        replaced.
        """
        processor = self._processor()
        analyzed: List[Track] = []

        def transform(tracks: List[Track]) -> List[Track]:
            track = processor.process(path, preset)
            analyzed.append(track)

            kept = [t for t in tracks if t.hash != track.hash and t.path != track.path]
            if len(kept) != len(tracks):
                self.logger.debug(f"Replacing {len(tracks) - len(kept)} entries for {track.path}")
            kept.append(track)
            return canonical_order(kept)

        self.repository.transaction(transform)
        return analyzed[0]

    def refresh(self) -> List[Track]:
        """Re-analyze every track with its stored preset"""
        processor = self._processor()

        def job(track: Track) -> Track:
            preset = track.preset
            if preset is None:
                # not stored, derive it from the last known BPM
                try:
                    preset = self.presets.from_bpm(track.bpm)
                except PresetRangeError as e:
                    preset = e.fallback
            return processor.process(track.path, preset)

        def transform(tracks: List[Track]) -> List[Track]:
            batch = self._batch("Refreshing", len(tracks), REFRESH_FANOUT)
            self.logger.info(f"[workers] {batch.max_workers}")
            return canonical_order(batch.run(tracks, job))

        return self.repository.transaction(transform)

    def compile(self, destination: str) -> str:
        """
        Export every track below a fresh directory in ``destination``.

        Returns:
            The export root
        """
        roots: List[str] = []

        def transform(tracks: List[Track]) -> List[Track]:
            root = create_export_root(destination)
            roots.append(root)
            exporter = Exporter(root, self.pipelines, timeout=self.config.export.timeout,
                                default_preset=self.presets.default.name)

            batch = self._batch("Exporting", len(tracks), EXPORT_FANOUT)
            self.logger.info(f"[workers] {batch.max_workers}")
            try:
                batch.run(tracks, exporter.export)
            finally:
                exporter.cleanup()

            self.logger.info(f"[done] {root}")
            return canonical_order(tracks)

        self.repository.transaction(transform)
        return roots[0]

    def prune(self) -> List[Track]:
        """
        Drop tracks whose file is gone.

        Returns:
            The removed tracks
        """
        removed: List[Track] = []

        def transform(tracks: List[Track]) -> List[Track]:
            kept = []
            for track in tracks:
                if track.status() == STATUS_FAIL:
                    self.logger.info(f"🗑️  {track}")
                    removed.append(track)
                else:
                    kept.append(track)
            return canonical_order(kept)

        self.repository.transaction(transform)
        return removed

    def tracks(self) -> List[Track]:
        return self.repository.read()

    def files(self) -> List[str]:
        return [track.path for track in self.repository.read()]

