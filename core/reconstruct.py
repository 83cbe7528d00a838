"""
GlitchCam — Stream Reconstructor
Turns (possibly broken) encoded bytes back into a frame.

A decode attempt races a short timer. If the decode wins and succeeds, the
decoded image is drawn at the origin of a canvas the size of the original
frame. If it fails or the timer fires first, the raw bytes themselves are
painted as pixels.
"""

import asyncio
import concurrent.futures
import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from core.encoder import DEFAULT_CODEC, EncodedStream, ImageCodec
from core.safety import as_rgba

logger = logging.getLogger(__name__)

DECODE_TIMEOUT_SEC = 0.05  # short on purpose: raw-byte output is the preferred look
DECODE_WORKERS = 4

# Separate from the loop default executor, which asyncio.run joins on exit
_decode_pool = concurrent.futures.ThreadPoolExecutor(
    max_workers=DECODE_WORKERS, thread_name_prefix="glitchcam-decode"
)


class ReconstructPolicy(str, Enum):
    """How the decode branch and the raw-byte branch are arbitrated."""
    RACE = "race"          # first to finish wins (timing dependent)
    DECODE = "decode"      # wait for the decode, raw bytes only on error (deterministic)
    FALLBACK = "fallback"  # always paint raw bytes (deterministic, no decode)


@dataclass
class Reconstruction:
    pixels: np.ndarray
    decoded: bool


def fallback_pixels(data, width: int, height: int) -> np.ndarray:
    """Paint the byte stream directly as opaque RGBA pixels.

    Pixel p reads bytes i, i+1, i+2 (wrapping) where i = p mod len(data).
    An empty stream gives an opaque black frame.
    """
    out = np.zeros((height, width, 4), dtype=np.uint8)
    out[:, :, 3] = 255
    n = len(data)
    if n == 0:
        return out

    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    idx = np.arange(width * height) % n
    flat = out.reshape(-1, 4)
    flat[:, 0] = buf[idx]
    flat[:, 1] = buf[(idx + 1) % n]
    flat[:, 2] = buf[(idx + 2) % n]
    return out


def draw_at_origin(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Copy ``image`` onto a transparent (height, width) canvas at (0, 0), unscaled."""
    canvas = np.zeros((height, width, 4), dtype=np.uint8)
    h = min(height, image.shape[0])
    w = min(width, image.shape[1])
    canvas[:h, :w] = image[:h, :w]
    return canvas


def _decode_onto_canvas(codec: ImageCodec, data: bytes, mime_type: str,
                        width: int, height: int) -> np.ndarray:
    return draw_at_origin(as_rgba(codec.decode(data, mime_type)), width, height)


async def reconstruct_detailed(
    stream: EncodedStream,
    width: int,
    height: int,
    codec: ImageCodec = None,
    timeout: float = DECODE_TIMEOUT_SEC,
    policy=ReconstructPolicy.RACE,
) -> Reconstruction:
    """Rebuild a (height, width, 4) frame from ``stream``, noting which branch won.

    Decode errors are never raised; they select the raw-byte branch.
    """
    codec = codec or DEFAULT_CODEC
    policy = ReconstructPolicy(policy)
    # Private snapshot: a late decode can't observe or touch the caller's buffer
    data = bytes(stream.data)

    if policy is ReconstructPolicy.FALLBACK:
        return Reconstruction(fallback_pixels(data, width, height), False)

    loop = asyncio.get_running_loop()
    task = loop.run_in_executor(
        _decode_pool, _decode_onto_canvas, codec, data, stream.mime_type, width, height
    )
    if policy is ReconstructPolicy.RACE:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    else:
        done, _ = await asyncio.wait({task})

    if task in done:
        error = task.exception()
        if error is None:
            return Reconstruction(task.result(), True)
        logger.debug("Decode of %s failed (%s), painting raw bytes", stream.mime_type, error)
    else:
        # Drop the late decode; its result is never delivered
        task.cancel()
        logger.debug("Decode of %s still running after %.0fms, painting raw bytes",
                     stream.mime_type, timeout * 1000)

    return Reconstruction(fallback_pixels(data, width, height), False)


async def reconstruct(stream: EncodedStream, width: int, height: int, codec: ImageCodec = None,
                      timeout: float = DECODE_TIMEOUT_SEC, policy=ReconstructPolicy.RACE) -> np.ndarray:
    result = await reconstruct_detailed(stream, width, height, codec=codec,
                                        timeout=timeout, policy=policy)
    return result.pixels
