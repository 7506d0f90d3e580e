"""
Audio Quality Inspection

Scores a track by the presence of high-end frequencies, from the
``<frequency> <gain>`` dump written by ``sox ... stat -freq``. Lossy
encoders cut the top of the spectrum, which drags the score down.
"""

import io
import logging
from typing import BinaryIO, Iterable, TextIO, Union

from ..core.constants import QUALITY_HIGH_CUT, QUALITY_LOW_CUT


logger = logging.getLogger(__name__)


class QualityParseError(ValueError):
    """Raised when a frequency dump cannot be turned into a score"""
    pass


def _lines(source) -> Iterable[str]:
    if isinstance(source, bytes):
        return source.decode('utf-8', errors='replace').splitlines()
    if isinstance(source, str):
        return source.splitlines()
    if isinstance(source, io.TextIOBase):
        return source
    return io.TextIOWrapper(source, encoding='utf-8', errors='replace')


def parse_quality(source: Union[str, bytes, TextIO, BinaryIO],
                  low_cut: float = QUALITY_LOW_CUT,
                  high_cut: float = QUALITY_HIGH_CUT) -> float:
    """
    Compute the quality score of a frequency dump.

    The score is the mean gain over frequencies >= ``high_cut`` divided by
    the mean gain over frequencies >= ``low_cut``. Lines that do not start
    with a number (tool banners and the statistics trailer) are skipped.

    Raises:
        QualityParseError: a frequency line has no numeric gain, or no data
            lies above one of the cutoffs
    """
    low_total = low_count = 0.0
    high_total = high_count = 0.0

    for number, line in enumerate(_lines(source), 1):
        fields = line.split()
        if not fields:
            continue

        try:
            freq = float(fields[0])
        except ValueError:
            continue

        try:
            gain = float(fields[1])
        except (IndexError, ValueError) as e:
            raise QualityParseError(f"line {number}: missing or invalid gain in {line.strip()!r}") from e

        if freq < low_cut:
            continue
        low_total += gain
        low_count += 1

        if freq < high_cut:
            continue
        high_total += gain
        high_count += 1

    if not low_count or not high_count:
        raise QualityParseError(
            f"no frequency data above {low_cut:.0f} Hz and {high_cut:.0f} Hz"
        )

    low_mean = low_total / low_count
    if low_mean == 0:
        raise QualityParseError(f"zero mean gain above {low_cut:.0f} Hz")

    score = (high_total / high_count) / low_mean
    logger.debug(f"Quality score {score:.3f} from {int(low_count)} bins above {low_cut:.0f} Hz")
    return score

