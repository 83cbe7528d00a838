"""
GlitchCam — Byte Corruptor
Find-and-replace on encoded image bytes.

Matches are exact, left-to-right and non-overlapping. The stream never
changes length: a shorter dest is padded with its last byte, a longer dest
is cut to the source length.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from core.encoder import EncodedStream
from core.formats import FORMATS, UnknownFormatForProtection, resolve_mode
from core.pattern import PatternConfig

logger = logging.getLogger(__name__)


@dataclass
class CorruptionReport:
    stream: EncodedStream
    replacement_count: int
    changed_bytes: int
    start_offset: int


def effective_start_offset(length: int, mode, header_protection: bool) -> int:
    """First byte position the scan may touch.

    Without protection this is 0. With protection it is the larger of the
    fixed header guard and the format's fraction of the stream length.

    Raises:
        UnknownFormatForProtection: protection is on and ``mode`` is not a
            known container.
    """
    if not header_protection:
        return 0
    spec = FORMATS[resolve_mode(mode, error=UnknownFormatForProtection)]
    return max(spec.skip_bytes, math.floor(length * spec.protect_fraction))


def _replacement_for(source: bytes, dest: bytes) -> bytes:
    n = len(source)
    if len(dest) >= n:
        return dest[:n]
    return dest + dest[-1:] * (n - len(dest))


def replace_bytes(data: bytearray, source: bytes, dest: bytes, start: int = 0) -> int:
    """Replace every non-overlapping ``source`` run at or after ``start``.

    Mutates ``data`` in place and returns the number of matches. Empty
    patterns or identical patterns replace nothing.
    """
    if not source or not dest or source == dest:
        return 0

    replacement = _replacement_for(source, dest)
    step = len(source)
    count = 0
    pos = data.find(source, max(0, start))
    while pos != -1:
        data[pos:pos + step] = replacement
        count += 1
        pos = data.find(source, pos + step)
    return count


def corrupt_stream(stream: EncodedStream, config: PatternConfig) -> CorruptionReport:
    """Apply the configured substitution to a copy of ``stream``.

    The mode is only looked up for a real substitution with header
    protection on; that is the one case where an unknown mode raises
    ``UnknownFormatForProtection``.
    """
    corrupted = stream.copy()
    if config.is_noop:
        return CorruptionReport(corrupted, 0, 0, 0)

    start = effective_start_offset(len(stream.data), config.mode, config.header_protection)
    count = replace_bytes(corrupted.data, config.source_bytes, config.dest_bytes, start)
    changed = 0
    if count:
        before = np.frombuffer(bytes(stream.data), dtype=np.uint8)
        after = np.frombuffer(bytes(corrupted.data), dtype=np.uint8)
        changed = int(np.count_nonzero(before != after))

    if count:
        logger.info('Replaced %d instances: "%s" -> "%s" (%d bytes changed)',
                    count, config.source_chars, config.dest_chars, changed)
    return CorruptionReport(corrupted, count, changed, start)
