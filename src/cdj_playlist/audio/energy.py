"""
Energy Envelope Extraction

Turns a raw stream of little-endian float32 mono samples into a compact
energy envelope: an asymmetric peak follower (fast attack, slow decay)
sampled once every ENVELOPE_INTERVAL input samples.
"""

import logging
from typing import BinaryIO

import numpy as np

from ..core.constants import (
    ENVELOPE_ATTACK,
    ENVELOPE_DECAY,
    ENVELOPE_INTERVAL,
    READ_CHUNK_SAMPLES,
    SAMPLE_WIDTH,
)


logger = logging.getLogger(__name__)


class SampleStreamError(Exception):
    """Raised when the sample stream cannot be read or is truncated"""
    pass


def extract_energy(stream: BinaryIO, chunk_samples: int = READ_CHUNK_SAMPLES) -> np.ndarray:
    """
    Read ``stream`` to exhaustion and return its energy envelope.

    The envelope has ``floor(L / ENVELOPE_INTERVAL)`` points for ``L`` input
    samples. End of stream is the normal way out; a read failure or a
    trailing partial sample raises SampleStreamError.

    Returns:
        float32 array of envelope values
    """
    chunk_bytes = max(1, chunk_samples) * SAMPLE_WIDTH
    envelope = []
    value = 0.0
    counter = 0
    pending = b""
    total = 0

    while True:
        try:
            data = stream.read(chunk_bytes)
        except (OSError, ValueError) as e:
            raise SampleStreamError(f"failed to read sample stream: {e}") from e

        if not data:
            break

        if pending:
            data = pending + data
        usable = len(data) - len(data) % SAMPLE_WIDTH
        pending = data[usable:]
        if not usable:
            continue

        samples = np.abs(np.frombuffer(data[:usable], dtype='<f4')).tolist()
        total += len(samples)

        for z in samples:
            if z > value:
                value += (z - value) / ENVELOPE_ATTACK
            else:
                value -= (value - z) / ENVELOPE_DECAY
            counter += 1
            if counter == ENVELOPE_INTERVAL:
                envelope.append(value)
                counter = 0

    if pending:
        raise SampleStreamError(
            f"sample stream ended with a partial sample ({len(pending)} trailing bytes)"
        )

    logger.debug(f"Extracted {len(envelope)} envelope points from {total} samples")
    return np.asarray(envelope, dtype=np.float32)
