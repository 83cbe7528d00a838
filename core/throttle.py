"""
GlitchCam — Frame Throttle
Caller-side invocation policy around a GlitchEngine: at most one call in
flight and a minimum interval between calls. While a call is running (or
the interval hasn't elapsed) the last finished frame is shown again; before
the first result a transparent black frame is shown.
"""

import asyncio
import logging
import time

import numpy as np

from core.engine import GlitchEngine

logger = logging.getLogger(__name__)

MIN_INTERVAL_SEC = 0.5


class FrameThrottle:
    def __init__(self, engine: GlitchEngine, min_interval: float = MIN_INTERVAL_SEC,
                 clock=time.monotonic):
        self.engine = engine
        self.min_interval = min_interval
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_start = None
        self.last_result: np.ndarray | None = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _due(self) -> bool:
        if self._last_start is None:
            return True
        return self._clock() - self._last_start > self.min_interval

    def _stale(self, frame: np.ndarray) -> np.ndarray:
        if self.last_result is not None:
            return self.last_result
        h, w = frame.shape[:2]
        return np.zeros((h, w, 4), dtype=np.uint8)

    async def submit(self, frame: np.ndarray) -> tuple[np.ndarray, bool]:
        """Process ``frame`` if allowed, else return the frame currently on show.

        Returns:
            (frame, fresh) where ``fresh`` is True when the engine ran.

        Engine errors propagate; the busy flag is always released.
        """
        if self.busy or not self._due():
            return self._stale(frame), False

        async with self._lock:
            self._last_start = self._clock()
            result = await self.engine.apply_effect(frame)
            self.last_result = result
        return result, True

    def reset(self) -> None:
        self._last_start = None
        self.last_result = None
