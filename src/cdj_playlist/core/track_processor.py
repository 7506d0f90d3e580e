"""
Track Processor - Produces a fully analyzed Track from a file

The independent legs of the analysis (content hash, tempo, optional
quality) run concurrently. All legs finish before the first error, in
completion order, is raised.
"""

import hashlib
import io
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import BinaryIO, Callable, Dict, Mapping, Optional

from ..audio.quality import parse_quality
from ..audio.tempo import TempoEstimator
from ..pipelines.base import Codec, Pipeline, as_pipeline, run_pipeline
from .constants import ANALYSIS_TIMEOUT, HASH_CHUNK_SIZE, QUALITY_TIMEOUT
from .presets import Preset
from .track import Track


Scanner = Callable[[BinaryIO, float, float], float]


def hash_file(path: str, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Hex SHA-256 of the file content, read in chunks"""
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class TrackProcessor:
    """
    Analyzes single tracks.

    Quality inspection only runs when a QUALITY pipeline is configured.
    """

    def __init__(self, pipelines: Mapping[Codec, Pipeline], scanner: Optional[Scanner] = None,
                 analysis_timeout: float = ANALYSIS_TIMEOUT, quality_timeout: float = QUALITY_TIMEOUT):
        """
        Args:
            pipelines: Pipelines by codec, ANALYZE is required
            scanner: BPM scanner ``(stream, min, max) -> bpm``
            analysis_timeout: Seconds allowed to the analysis pipeline
            quality_timeout: Seconds allowed to the quality pipeline
        """
        if Codec.ANALYZE not in pipelines:
            raise ValueError("an ANALYZE pipeline is required")

        self.analyze_pipeline = as_pipeline(pipelines[Codec.ANALYZE])
        quality = pipelines.get(Codec.QUALITY)
        self.quality_pipeline = as_pipeline(quality) if quality is not None else None
        self.scanner = scanner or TempoEstimator()
        self.analysis_timeout = analysis_timeout
        self.quality_timeout = quality_timeout
        self.logger = logging.getLogger(__name__)

    def process(self, path: str, preset: Preset) -> Track:
        """
        Hash and analyze the file at ``path`` with the given preset range.

        Returns:
            Track with absolute path, hash, preset, BPM and, when inspected, quality
        """
        path = os.path.abspath(os.path.normpath(path))

        legs: Dict[str, Callable] = {
            'hash': lambda: hash_file(path),
            'bpm': lambda: self.analyze(path, preset),
        }
        if self.quality_pipeline is not None:
            legs['quality'] = lambda: self.inspect(path)

        results = {}
        first_error: Optional[BaseException] = None

        with ThreadPoolExecutor(max_workers=len(legs)) as executor:
            futures = {executor.submit(leg): name for name, leg in legs.items()}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    self.logger.debug(f"{name} failed for {path}: {e}")
                    if first_error is None:
                        first_error = e

        if first_error is not None:
            raise first_error

        track = Track(
            path=path,
            hash=results['hash'],
            preset=preset,
            bpm=results['bpm'],
            quality=results.get('quality'),
        )
        self.logger.info(f"🎵 {track}")
        return track

    def analyze(self, path: str, preset: Preset) -> float:
        """Run the analysis pipeline and scan its samples within the preset range"""
        samples = io.BytesIO()
        with open(path, 'rb') as f:
            run_pipeline(self.analyze_pipeline, f, samples, self.analysis_timeout)
        samples.seek(0)
        return self.scanner(samples, preset.min, preset.max)

    def inspect(self, path: str) -> float:
        """Run the quality pipeline and score its frequency dump"""
        dump = io.BytesIO()
        with open(path, 'rb') as f:
            run_pipeline(self.quality_pipeline, f, dump, self.quality_timeout)
        return parse_quality(dump.getvalue())
