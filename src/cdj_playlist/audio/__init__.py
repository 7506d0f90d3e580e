"""
Audio analysis for CDJ Playlist: energy envelope, tempo and quality
"""

from .energy import SampleStreamError, extract_energy
from .quality import QualityParseError, parse_quality
from .tempo import TempoEstimator, bpm_to_interval, interval_to_bpm

__all__ = [
    'SampleStreamError',
    'extract_energy',
    'QualityParseError',
    'parse_quality',
    'TempoEstimator',
    'bpm_to_interval',
    'interval_to_bpm',
]
