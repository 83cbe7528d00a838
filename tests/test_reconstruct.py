"""Tests for StreamReconstructor: decode branch, raw-byte fallback, the race."""

import asyncio
from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import SlowDecodeCodec, _make_test_frame
from core.encoder import EncodedStream, encode
from core.formats import CorruptionMode
from core.reconstruct import (
    ReconstructPolicy,
    draw_at_origin,
    fallback_pixels,
    reconstruct,
    reconstruct_detailed,
)


def _garbage_stream(data=b"\x10\x20\x30\x40" * 8):
    return EncodedStream("image/png", bytearray(data), CorruptionMode.PNG)


class TestFallbackPixels:

    def test_single_pixel(self):
        out = fallback_pixels(bytes([10, 20, 30, 40]), 1, 1)
        assert out.shape == (1, 1, 4)
        assert out[0, 0].tolist() == [10, 20, 30, 255]

    def test_cycles_through_short_stream(self):
        out = fallback_pixels(bytes([1, 2, 3]), 2, 2)
        assert out.reshape(-1, 4).tolist() == [
            [1, 2, 3, 255],
            [2, 3, 1, 255],
            [3, 1, 2, 255],
            [1, 2, 3, 255],
        ]

    def test_long_stream_uses_prefix(self):
        data = bytes(range(100))
        out = fallback_pixels(data, 3, 1)
        assert out[0].tolist() == [[0, 1, 2, 255], [1, 2, 3, 255], [2, 3, 4, 255]]

    def test_wraps_at_end_of_stream(self):
        out = fallback_pixels(bytes([5, 6]), 2, 1)
        assert out[0].tolist() == [[5, 6, 5, 255], [6, 5, 6, 255]]

    def test_empty_stream_is_opaque_black(self):
        out = fallback_pixels(b"", 4, 3)
        assert out.shape == (3, 4, 4)
        assert (out[:, :, :3] == 0).all()
        assert (out[:, :, 3] == 255).all()

    def test_accepts_bytearray(self):
        out = fallback_pixels(bytearray([7, 8, 9]), 1, 1)
        assert out[0, 0].tolist() == [7, 8, 9, 255]


class TestDrawAtOrigin:

    def test_smaller_image_is_padded_transparent(self):
        img = np.full((2, 2, 4), 200, dtype=np.uint8)
        out = draw_at_origin(img, 3, 3)
        assert out.shape == (3, 3, 4)
        assert (out[:2, :2] == 200).all()
        assert (out[2, :] == 0).all()
        assert (out[:, 2] == 0).all()

    def test_larger_image_is_cropped(self):
        img = np.arange(5 * 5 * 4, dtype=np.uint8).reshape(5, 5, 4)
        out = draw_at_origin(img, 2, 3)
        assert out.shape == (3, 2, 4)
        np.testing.assert_array_equal(out, img[:3, :2])


class TestReconstruct:

    def test_valid_png_decodes(self, frame):
        stream = encode(frame, "png")
        result = asyncio.run(reconstruct_detailed(stream, 64, 48, policy=ReconstructPolicy.DECODE))
        assert result.decoded is True
        np.testing.assert_array_equal(result.pixels, frame)

    def test_decode_failure_falls_back(self, frame, failing_codec):
        stream = encode(frame, "jpeg")
        result = asyncio.run(reconstruct_detailed(stream, 64, 48, codec=failing_codec))
        assert result.decoded is False
        np.testing.assert_array_equal(result.pixels, fallback_pixels(stream.data, 64, 48))

    def test_garbage_bytes_fall_back_with_real_codec(self):
        stream = _garbage_stream()
        out = asyncio.run(reconstruct(stream, 2, 2, policy=ReconstructPolicy.DECODE))
        assert out[0, 0].tolist() == [0x10, 0x20, 0x30, 255]

    def test_decode_errors_never_propagate(self):
        codec = MagicMock()
        codec.decode.side_effect = RuntimeError("boom")
        out = asyncio.run(reconstruct(_garbage_stream(), 1, 1, codec=codec))
        assert out.shape == (1, 1, 4)

    def test_timeout_wins_over_slow_decode(self, frame):
        codec = SlowDecodeCodec(delay=0.3)
        stream = encode(frame, "png", codec=codec)

        async def run():
            result = await reconstruct_detailed(stream, 64, 48, codec=codec, timeout=0.01)
            snapshot = result.pixels.copy()
            # Let the losing decode finish; it must not touch the returned frame
            await asyncio.sleep(0.4)
            return result, snapshot

        result, snapshot = asyncio.run(run())
        assert result.decoded is False
        np.testing.assert_array_equal(result.pixels, snapshot)
        np.testing.assert_array_equal(result.pixels, fallback_pixels(stream.data, 64, 48))

    def test_decode_policy_waits_for_slow_decode(self, frame):
        codec = SlowDecodeCodec(delay=0.1)
        stream = encode(frame, "png", codec=codec)
        result = asyncio.run(reconstruct_detailed(stream, 64, 48, codec=codec, timeout=0.01,
                                                  policy=ReconstructPolicy.DECODE))
        assert result.decoded is True
        np.testing.assert_array_equal(result.pixels, frame)

    def test_fallback_policy_skips_decode(self, frame):
        codec = MagicMock()
        stream = encode(frame, "png")
        result = asyncio.run(reconstruct_detailed(stream, 64, 48, codec=codec,
                                                  policy="fallback"))
        codec.decode.assert_not_called()
        assert result.decoded is False

    def test_decoded_image_drawn_at_original_size(self):
        small = _make_test_frame(16, 8)
        stream = encode(small, "png")
        out = asyncio.run(reconstruct(stream, 20, 10, policy=ReconstructPolicy.DECODE))
        assert out.shape == (10, 20, 4)
        np.testing.assert_array_equal(out[:8, :16], small)
        assert (out[8:, :] == 0).all()

    def test_caller_buffer_not_shared(self, frame, failing_codec):
        stream = encode(frame, "jpeg")
        out = asyncio.run(reconstruct(stream, 64, 48, codec=failing_codec))
        stream.data[:] = b"\x00" * len(stream.data)
        assert out[:, :, :3].any()

    def test_unknown_policy(self, frame):
        with pytest.raises(ValueError):
            asyncio.run(reconstruct(encode(frame, "png"), 64, 48, policy="sometimes"))
