"""
Tempo Estimation

Finds the beat interval of an energy envelope by a randomized
autodifference search. For every candidate interval on a regular grid
the envelope is probed around random anchors: energy differences at
whole-beat offsets count for the candidate, differences at fractional
offsets count against it. The interval with the lowest total wins.
"""

import logging
from typing import BinaryIO, Optional

import numpy as np

from ..core.constants import (
    BEAT_OFFSETS,
    ENVELOPE_INTERVAL,
    NOBEAT_OFFSETS,
    SAMPLE_RATE,
    SEARCH_STEPS,
    SEARCH_TRIALS,
)
from .energy import extract_energy


logger = logging.getLogger(__name__)


def bpm_to_interval(bpm: float) -> float:
    """Convert a BPM value into envelope points per beat"""
    beats_per_second = bpm / 60
    samples_per_beat = SAMPLE_RATE / beats_per_second
    return samples_per_beat / ENVELOPE_INTERVAL


def interval_to_bpm(interval: float) -> float:
    """Convert envelope points per beat back into BPM"""
    samples_per_beat = interval * ENVELOPE_INTERVAL
    beats_per_second = SAMPLE_RATE / samples_per_beat
    return beats_per_second * 60


def _offset_weights():
    beats = np.asarray(BEAT_OFFSETS, dtype=np.float64)
    nobeats = np.asarray(NOBEAT_OFFSETS, dtype=np.float64)
    offsets = np.concatenate([beats, nobeats])
    # beat differences are added, fractional-beat differences subtracted
    weights = np.concatenate([1.0 / np.abs(beats), -np.abs(nobeats)])
    total = np.abs(weights).sum()
    return offsets, weights, total


class TempoEstimator:
    """
    Randomized autodifference BPM search.

    Randomness is injectable: pass ``rng`` to a single call, or ``seed`` to
    the constructor for reproducible estimates. Without either, every
    estimate draws a fresh entropy-seeded generator.
    """

    def __init__(self, seed: Optional[int] = None, steps: int = SEARCH_STEPS,
                 trials: int = SEARCH_TRIALS):
        if steps < 1 or trials < 1:
            raise ValueError("steps and trials must be positive")
        self.seed = seed
        self.steps = steps
        self.trials = trials
        self.logger = logging.getLogger(__name__)
        self._offsets, self._weights, self._total_weight = _offset_weights()

    def scan(self, stream: BinaryIO, min_bpm: float, max_bpm: float) -> float:
        """Estimate the BPM of a raw f32le sample stream within [min_bpm, max_bpm]"""
        envelope = extract_energy(stream)
        return self.estimate(envelope, min_bpm, max_bpm)

    __call__ = scan

    def estimate(self, envelope, min_bpm: float, max_bpm: float,
                 rng: Optional[np.random.Generator] = None) -> float:
        """
        Estimate the BPM of an energy envelope.

        The result always lies in [min_bpm, max_bpm]: the grid endpoints map
        back to exactly ``max_bpm`` and ``min_bpm``.

        Raises:
            ValueError: non-positive bounds or min_bpm > max_bpm
        """
        if min_bpm <= 0 or max_bpm <= 0:
            raise ValueError(f"BPM bounds must be positive, got [{min_bpm}, {max_bpm}]")
        if min_bpm > max_bpm:
            raise ValueError(f"BPM range is inverted: {min_bpm} > {max_bpm}")
        if min_bpm == max_bpm:
            return float(min_bpm)

        nrg = np.asarray(envelope, dtype=np.float64)
        if nrg.size == 0:
            self.logger.debug("Empty envelope, every candidate ties")
            return float(max_bpm)

        if rng is None:
            rng = np.random.default_rng(self.seed)

        imin = bpm_to_interval(min_bpm)
        imax = bpm_to_interval(max_bpm)
        grid = np.linspace(imax, imin, self.steps + 1)

        best_index = 0
        best_height = np.inf
        for index, interval in enumerate(grid):
            height = self._score(nrg, interval, rng)
            if height < best_height:
                best_height = height
                best_index = index

        if best_index == 0:
            bpm = float(max_bpm)
        elif best_index == self.steps:
            bpm = float(min_bpm)
        else:
            # interior points are in range; the clamp only absorbs float roundoff
            bpm = min(max(interval_to_bpm(grid[best_index]), float(min_bpm)), float(max_bpm))

        self.logger.debug(f"Tempo estimate {bpm:.2f} BPM in [{min_bpm}, {max_bpm}] from {nrg.size} points")
        return bpm

    def _score(self, nrg: np.ndarray, interval: float, rng: np.random.Generator) -> float:
        """Sum of the weighted autodifference over ``trials`` random anchors"""
        size = nrg.size
        anchors = rng.random(self.trials) * size

        reference = self._sample(nrg, anchors)
        positions = anchors[:, np.newaxis] + self._offsets[np.newaxis, :] * interval
        probes = self._sample(nrg, positions)

        diffs = np.abs(probes - reference[:, np.newaxis]) @ self._weights
        return float(diffs.sum() / self._total_weight)

    @staticmethod
    def _sample(nrg: np.ndarray, positions: np.ndarray) -> np.ndarray:
        # floor, out-of-range reads as 0
        index = np.floor(positions)
        valid = (index >= 0) & (index < nrg.size)
        values = np.zeros(positions.shape, dtype=np.float64)
        values[valid] = nrg[index[valid].astype(np.intp)]
        return values
