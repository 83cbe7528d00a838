"""
GlitchCam — Container Formats
Lookup table for the four container formats the engine can corrupt.
Every per-format decision (mime type, encoder quality, header protection)
lives here, keyed by CorruptionMode.
"""

from dataclasses import dataclass
from enum import Enum


class GlitchError(Exception):
    """Base class for errors that abort a corruption pass."""
    pass


class UnknownCorruptionMode(GlitchError):
    """Configured mode is not one of the four container formats."""
    pass


class UnsupportedFormat(GlitchError):
    """Encoder cannot produce the requested container."""
    pass


class UnknownFormatForProtection(GlitchError):
    """Header-protection offset lookup failed for a mode."""
    pass


class CorruptionMode(str, Enum):
    """Container format the frame is round-tripped through."""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    BMP = "bmp"


@dataclass(frozen=True)
class FormatSpec:
    mime_type: str
    pil_format: str
    quality: float | None     # 0-1 scale, None = lossless / not applicable
    skip_bytes: int           # fixed header guard when protection is on
    protect_fraction: float   # share of the stream left untouched when protection is on


FORMATS: dict[CorruptionMode, FormatSpec] = {
    # JPEG is resilient: corruption close to the header still decodes
    CorruptionMode.JPEG: FormatSpec("image/jpeg", "JPEG", 0.95, 50, 0.0),
    # PNG has strict chunk CRCs, keep the first half intact
    CorruptionMode.PNG: FormatSpec("image/png", "PNG", None, 200, 0.5),
    CorruptionMode.WEBP: FormatSpec("image/webp", "WEBP", 0.95, 100, 0.3),
    # BMP is uncompressed, every hit is visible
    CorruptionMode.BMP: FormatSpec("image/bmp", "BMP", None, 30, 0.2),
}

MIME_TYPES = {spec.mime_type: mode for mode, spec in FORMATS.items()}

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def resolve_mode(mode, error=UnknownCorruptionMode) -> CorruptionMode:
    """Map a configured mode (enum member or string) to a CorruptionMode.

    Raises ``error`` (UnknownCorruptionMode by default) for anything else;
    unknown modes never fall back to a default format.
    """
    if isinstance(mode, CorruptionMode):
        return mode
    try:
        return CorruptionMode(mode)
    except ValueError:
        raise error(f"Unknown corruption mode: {mode!r}") from None


def format_spec(mode, error=UnknownCorruptionMode) -> FormatSpec:
    return FORMATS[resolve_mode(mode, error)]


def list_modes() -> list[dict]:
    """Describe every mode, in enum order (used by the API and CLI)."""
    return [
        {
            "mode": mode.value,
            "mime_type": spec.mime_type,
            "quality": spec.quality,
            "skip_bytes": spec.skip_bytes,
            "protect_fraction": spec.protect_fraction,
        }
        for mode, spec in FORMATS.items()
    ]
