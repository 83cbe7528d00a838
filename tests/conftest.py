"""
Conftest: shared fixtures for all GlitchCam test modules.

1. Synthetic frames — gradients, not blank, so encoders produce real data
2. Fake codecs — force the decode branch to fail or stall
"""

import io
import os
import sys
import time

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.encoder import PillowCodec


def _make_test_frame(width=64, height=48, alpha=True):
    """Generate a synthetic test frame (gradient, not blank)."""
    frame = np.zeros((height, width, 4 if alpha else 3), dtype=np.uint8)
    frame[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)  # R gradient
    frame[:, :, 1] = 128  # constant G
    frame[:, :, 2] = np.linspace(255, 0, width, dtype=np.uint8)  # B inverse
    if alpha:
        frame[:, :, 3] = 255
    return frame


def _png_bytes(frame):
    buf = io.BytesIO()
    Image.fromarray(frame).save(buf, format="PNG")
    return buf.getvalue()


class FailingDecodeCodec(PillowCodec):
    """Real encoder, decoder that always fails (forces the raw-byte branch)."""

    def __init__(self):
        self.decode_calls = 0

    def decode(self, data, mime_type):
        self.decode_calls += 1
        raise OSError("cannot identify image file")


class SlowDecodeCodec(PillowCodec):
    """Real encoder, decoder that succeeds only after ``delay`` seconds."""

    def __init__(self, delay=0.3):
        self.delay = delay

    def decode(self, data, mime_type):
        time.sleep(self.delay)
        return super().decode(data, mime_type)


@pytest.fixture
def frame():
    return _make_test_frame()


@pytest.fixture
def rgb_frame():
    return _make_test_frame(alpha=False)


@pytest.fixture
def failing_codec():
    return FailingDecodeCodec()
