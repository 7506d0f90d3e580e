"""
External pipelines for CDJ Playlist
"""

from .base import (
    Codec,
    CommandPipeline,
    Pipeline,
    PipelineError,
    PipelineFunc,
    PipelineTimeoutError,
    as_pipeline,
    run_pipeline,
)
from .ffmpeg import FFmpegPipeline, ffmpeg_pipelines
from .sox import SoxQualityPipeline, sox_quality


def default_pipelines(quality: bool = False):
    """ffmpeg pipelines for every codec, plus sox when quality inspection is on"""
    pipelines = ffmpeg_pipelines()
    if quality:
        pipelines[Codec.QUALITY] = sox_quality()
    return pipelines


__all__ = [
    'Codec',
    'CommandPipeline',
    'Pipeline',
    'PipelineError',
    'PipelineFunc',
    'PipelineTimeoutError',
    'as_pipeline',
    'run_pipeline',
    'FFmpegPipeline',
    'SoxQualityPipeline',
    'default_pipelines',
]
