"""
GlitchCam — Format Encoder
Serializes an RGBA frame into one of the four container formats.

The codec is a narrow primitive (encode/decode by mime type). PillowCodec is
the default; tests and callers can hand in anything with the same two
methods.
"""

import io
import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from PIL import Image

from core.formats import (
    CorruptionMode,
    FORMATS,
    MIME_TYPES,
    PNG_SIGNATURE,
    UnsupportedFormat,
    format_spec,
    resolve_mode,
)
from core.safety import as_rgba

logger = logging.getLogger(__name__)


class ImageCodec(Protocol):
    def encode(self, frame: np.ndarray, mime_type: str, quality: float | None = None) -> bytes:
        ...

    def decode(self, data: bytes, mime_type: str) -> np.ndarray:
        ...


class PillowCodec:
    """Encode/decode through Pillow, like a canvas toDataURL / <img> pair."""

    def encode(self, frame: np.ndarray, mime_type: str, quality: float | None = None) -> bytes:
        mode = MIME_TYPES.get(mime_type)
        if mode is None:
            raise UnsupportedFormat(f"Unsupported image format: {mime_type}")
        pil_format = FORMATS[mode].pil_format

        img = Image.fromarray(frame)
        if pil_format == "JPEG" and img.mode == "RGBA":
            # No alpha in JPEG: flatten onto black the way a canvas export does
            flat = Image.new("RGB", img.size, (0, 0, 0))
            flat.paste(img, mask=img.getchannel("A"))
            img = flat

        save_kwargs = {}
        if quality is not None:
            save_kwargs["quality"] = int(round(quality * 100))

        buf = io.BytesIO()
        try:
            img.save(buf, format=pil_format, **save_kwargs)
        except (KeyError, OSError, ValueError) as e:
            raise UnsupportedFormat(f"{pil_format} encoding not available: {e}") from e
        return buf.getvalue()

    def decode(self, data: bytes, mime_type: str) -> np.ndarray:
        # Format is sniffed from the bytes, mime_type is informational
        img = Image.open(io.BytesIO(bytes(data)))
        img.load()
        return np.array(img.convert("RGBA"))


DEFAULT_CODEC = PillowCodec()


@dataclass
class EncodedStream:
    """Container-format bytes for one corruption pass."""
    mime_type: str
    data: bytearray
    mode: CorruptionMode

    def __len__(self):
        return len(self.data)

    def copy(self) -> "EncodedStream":
        return EncodedStream(self.mime_type, bytearray(self.data), self.mode)


def encode(frame: np.ndarray, mode, codec: ImageCodec = None) -> EncodedStream:
    """Encode a frame into the container format for ``mode``.

    Args:
        frame: (H, W, 4) or (H, W, 3) uint8 array.
        mode: CorruptionMode or its string value.
        codec: Encode primitive (defaults to Pillow).

    Raises:
        UnsupportedFormat: Unknown mode, a format the codec cannot write,
            or a PNG payload returned when BMP was requested.
    """
    codec = codec or DEFAULT_CODEC
    mode = resolve_mode(mode, error=UnsupportedFormat)
    spec = format_spec(mode)
    frame = as_rgba(frame)

    data = codec.encode(frame, spec.mime_type, spec.quality)

    # Some codecs quietly hand back PNG for BMP. Never corrupt the wrong format.
    if mode is CorruptionMode.BMP and bytes(data[:8]) == PNG_SIGNATURE:
        raise UnsupportedFormat("BMP format not supported by this codec (got PNG instead)")

    logger.debug("Encoded %dx%d frame as %s (%d bytes)",
                 frame.shape[1], frame.shape[0], spec.mime_type, len(data))
    return EncodedStream(spec.mime_type, bytearray(data), mode)
