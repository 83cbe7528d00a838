"""
GlitchCam — Destruction Effects
Per-frame wrappers around the byte corruption engine.
Every effect is a function: (frame: np.ndarray, **params) -> np.ndarray
"""

import numpy as np

from core.corruptor import replace_bytes
from core.engine import GlitchEngine
from core.pattern import PatternConfig
from core.reconstruct import ReconstructPolicy
from core.safety import as_rgba


def stream_glitch(
    frame: np.ndarray,
    source: str = "a",
    dest: str = "b",
    mode: str = "jpeg",
    header_protection: bool = True,
    active: bool = True,
    policy: str = "race",
) -> np.ndarray:
    """Find/replace bytes inside the encoded image, then rebuild the frame.

    Args:
        frame: (H, W, 3) or (H, W, 4) uint8 array.
        source: Characters to find (UTF-8 bytes).
        dest: Characters written over each match.
        mode: Container format: jpeg, png, webp or bmp.
        header_protection: Leave the format's header region untouched.
        active: False = plain encode/decode round trip.
        policy: race, decode or fallback (see ReconstructPolicy).

    Returns:
        (H, W, 4) uint8 RGBA frame.
    """
    config = PatternConfig.create(source, dest, mode=mode,
                                  header_protection=header_protection, active=active)
    engine = GlitchEngine(config, policy=ReconstructPolicy(policy))
    return engine.apply_effect_sync(frame)


def raw_replace(
    frame: np.ndarray,
    source: str = "a",
    dest: str = "b",
) -> np.ndarray:
    """Same find/replace, but on the raw RGBA sample bytes (no container).

    Returns:
        (H, W, 4) uint8 RGBA frame.
    """
    rgba = as_rgba(frame)
    data = bytearray(rgba.tobytes())
    config = PatternConfig().with_pattern(source, dest)
    replace_bytes(data, config.source_bytes, config.dest_bytes)
    return np.frombuffer(bytes(data), dtype=np.uint8).reshape(rgba.shape).copy()
