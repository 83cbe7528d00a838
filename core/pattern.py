"""
GlitchCam — Pattern Configuration
Immutable settings for one corruption pass: which byte sequence to find,
what to write over it, which container to round-trip through, and whether
the header region is protected.

Updates produce a new PatternConfig; a pass that already started keeps the
value it was handed.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from core.formats import CorruptionMode

DEFAULT_SOURCE = "a"
DEFAULT_DEST = "b"

_CONTROL_NAMES = {0: "NUL", 8: "BS", 9: "TAB", 10: "LF", 13: "CR", 27: "ESC"}


def to_bytes(text: str) -> bytes:
    """UTF-8 byte sequence for a pattern string."""
    return text.encode("utf-8")


class PatternConfig(BaseModel):
    """Source/dest byte patterns plus mode and protection flags.

    ``mode`` is kept exactly as given. An unrecognized value is accepted
    here and rejected when a pass dispatches on it.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    source_chars: str = DEFAULT_SOURCE
    dest_chars: str = DEFAULT_DEST
    mode: str = CorruptionMode.JPEG.value
    header_protection: bool = True
    active: bool = False

    @classmethod
    def create(cls, source: str = DEFAULT_SOURCE, dest: str = DEFAULT_DEST,
               mode=CorruptionMode.JPEG, header_protection: bool = True,
               active: bool = False) -> PatternConfig:
        return cls().with_pattern(source, dest).with_mode(mode).model_copy(
            update={"header_protection": bool(header_protection), "active": bool(active)}
        )

    def with_pattern(self, source: str, dest: str) -> PatternConfig:
        return self.model_copy(update={
            "source_chars": source,
            "dest_chars": dest,
        })

    def with_mode(self, mode) -> PatternConfig:
        if isinstance(mode, CorruptionMode):
            mode = mode.value
        return self.model_copy(update={"mode": mode})

    def with_header_protection(self, enabled: bool) -> PatternConfig:
        return self.model_copy(update={"header_protection": bool(enabled)})

    def with_active(self, enabled: bool) -> PatternConfig:
        return self.model_copy(update={"active": bool(enabled)})

    @property
    def source_bytes(self) -> bytes:
        return to_bytes(self.source_chars)

    @property
    def dest_bytes(self) -> bytes:
        return to_bytes(self.dest_chars)

    @property
    def is_noop(self) -> bool:
        """True when substitution cannot change any byte."""
        return (
            self.source_bytes == self.dest_bytes
            or not self.source_bytes
            or not self.dest_bytes
        )


def describe_bytes(text: str) -> str:
    """Byte hint for a pattern field, e.g. ``"3 bytes: [61 62 63]"``."""
    data = to_bytes(text)
    hex_str = " ".join(f"{b:02X}" for b in data)
    return f"{len(data)} bytes: [{hex_str}]"


def ascii_display(byte_value: int) -> str:
    """Readable label for a single byte value."""
    if byte_value < 32:
        return _CONTROL_NAMES.get(byte_value, f"^{chr(64 + byte_value)}")
    if byte_value == 32:
        return "SPC"
    if byte_value == 127:
        return "DEL"
    if byte_value > 127:
        return "•"
    return chr(byte_value)
