"""
GlitchCam — Safety & Resource Guards
Centralized checks run before a frame enters the engine.
Prevents malformed buffers and runaway frame sizes from reaching the codec.
"""

import numpy as np

# --- Configurable Limits ---
MAX_FRAME_PIXELS = 3840 * 2160   # 4K is the largest frame we accept
MAX_PATTERN_CHARS = 3            # Caller-side policy, the engine itself has no cap


class SafetyError(Exception):
    """Raised when a preflight check fails."""
    pass


def as_rgba(frame) -> np.ndarray:
    """Validate a pixel buffer and normalize it to (H, W, 4) uint8 RGBA.

    RGB input gets an opaque alpha channel. The array is never resized.

    Raises:
        SafetyError: wrong dtype, wrong shape, empty, or too many pixels.
    """
    if not isinstance(frame, np.ndarray):
        raise SafetyError(f"Frame must be a numpy array, got {type(frame).__name__}")
    if frame.dtype != np.uint8:
        raise SafetyError(f"Frame must be uint8, got {frame.dtype}")
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise SafetyError(f"Frame must be (H, W, 3) or (H, W, 4), got {frame.shape}")

    h, w = frame.shape[:2]
    if h == 0 or w == 0:
        raise SafetyError(f"Frame is empty ({w}x{h})")
    if h * w > MAX_FRAME_PIXELS:
        raise SafetyError(
            f"Frame is {w}x{h} ({h * w} pixels), exceeds {MAX_FRAME_PIXELS} pixel limit."
        )

    if frame.shape[2] == 3:
        alpha = np.full((h, w, 1), 255, dtype=np.uint8)
        return np.concatenate([frame, alpha], axis=2)
    return np.ascontiguousarray(frame)


def validate_pattern_text(text: str, max_chars: int = MAX_PATTERN_CHARS) -> None:
    """Check a user-supplied pattern string against the caller-side limit.

    Raises:
        SafetyError: If the string is longer than ``max_chars`` characters.
    """
    if len(text) > max_chars:
        raise SafetyError(
            f"Pattern '{text[:20]}' is {len(text)} characters, max is {max_chars}."
        )
