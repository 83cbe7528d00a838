"""
GlitchCam — Corruption Engine
encode -> corrupt -> reconstruct, once per frame.

The engine holds the latest PatternConfig. Setters replace it with a new
value (last write wins); each apply_effect call reads it exactly once, so a
call in flight keeps the configuration it started with.

The engine does not throttle itself. Callers keep at most one call in
flight per engine (see core.throttle).
"""

import asyncio
import logging

import numpy as np

from core.corruptor import CorruptionReport, corrupt_stream
from core.encoder import DEFAULT_CODEC, ImageCodec, encode
from core.formats import resolve_mode
from core.pattern import PatternConfig
from core.reconstruct import DECODE_TIMEOUT_SEC, ReconstructPolicy, reconstruct_detailed
from core.safety import as_rgba

logger = logging.getLogger(__name__)


class GlitchEngine:
    def __init__(self, config: PatternConfig = None, codec: ImageCodec = None,
                 timeout: float = DECODE_TIMEOUT_SEC, policy=ReconstructPolicy.RACE):
        self.config = config or PatternConfig()
        self.codec = codec or DEFAULT_CODEC
        self.timeout = timeout
        self.policy = ReconstructPolicy(policy)
        self.last_report: CorruptionReport | None = None
        self.last_decoded: bool | None = None

    # --- configuration ---

    def set_pattern(self, source: str, dest: str) -> None:
        self.config = self.config.with_pattern(source, dest)
        logger.info('Updated replacement: "%s" -> "%s"', source, dest)

    def set_mode(self, mode) -> None:
        self.config = self.config.with_mode(mode)

    def set_header_protection(self, enabled: bool) -> None:
        self.config = self.config.with_header_protection(enabled)

    def set_active(self, enabled: bool) -> None:
        self.config = self.config.with_active(enabled)

    # --- processing ---

    async def apply_effect(self, frame: np.ndarray) -> np.ndarray:
        """Round-trip ``frame`` through the configured container.

        The round trip always happens, so lossy formats leave recompression
        artifacts even when inactive. Substitution only runs when active.

        Returns:
            (H, W, 4) uint8 RGBA frame, same size as the input.

        Raises:
            UnknownCorruptionMode: configured mode is not a known container.
            UnsupportedFormat: the codec cannot produce the container.
            SafetyError: malformed input frame.
        """
        config = self.config
        mode = resolve_mode(config.mode)
        frame = as_rgba(frame)
        height, width = frame.shape[:2]

        stream = encode(frame, mode, codec=self.codec)

        report = None
        if config.active:
            report = corrupt_stream(stream, config)
            stream = report.stream
        self.last_report = report

        result = await reconstruct_detailed(stream, width, height, codec=self.codec,
                                            timeout=self.timeout, policy=self.policy)
        self.last_decoded = result.decoded
        logger.debug("%s pass: %s replacements, %s", mode.value,
                     report.replacement_count if report else 0,
                     "decoded" if result.decoded else "raw bytes")
        return result.pixels

    def apply_effect_sync(self, frame: np.ndarray) -> np.ndarray:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.apply_effect(frame))
