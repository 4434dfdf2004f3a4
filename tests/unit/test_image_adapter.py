"""
Unit tests for image decoding, cropping and matrix ownership.
"""

import numpy as np
import pytest

from shelfspine.errors import DecodeError
from shelfspine.vision.image_adapter import (
    MatrixArena,
    clamp_box,
    clamp_region,
    crop_region,
    decode_image,
    encode_image,
    mean_brightness,
    resize_if_needed,
)
from shelfspine.vision.models import BoundingBox

from tests.conftest import encode_png


class TestDecodeEncode:
    """Tests for decode_image / encode_image."""

    def test_decode_png(self, uniform_pixels):
        mat = decode_image(encode_png(uniform_pixels))

        assert mat.shape == (400, 600, 3)
        assert mat.dtype == np.uint8

    def test_decode_grayscale_gives_three_channels(self):
        gray = np.full((50, 80), 90, dtype=np.uint8)

        mat = decode_image(encode_png(gray))

        assert mat.shape == (50, 80, 3)

    def test_decode_empty_raises(self):
        with pytest.raises(DecodeError):
            decode_image(b"")

    def test_decode_garbage_raises(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_image(b"definitely not an image")

        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "DECODE_ERROR"

    def test_encode_jpeg_and_png(self, uniform_pixels):
        jpeg = encode_image(uniform_pixels, "jpeg")
        png = encode_image(uniform_pixels, "png")

        assert jpeg[:2] == b"\xff\xd8"
        assert png[:8] == b"\x89PNG\r\n\x1a\n"

    def test_mean_brightness(self, uniform_pixels):
        brightness = mean_brightness(encode_image(uniform_pixels, "png"))

        assert brightness == pytest.approx(128.0, abs=0.5)


class TestResize:
    """Tests for resize_if_needed."""

    def test_small_image_returned_as_is(self, uniform_pixels):
        assert resize_if_needed(uniform_pixels, 2000) is uniform_pixels

    def test_downscales_longest_side(self):
        mat = np.zeros((1500, 3000, 3), dtype=np.uint8)

        resized = resize_if_needed(mat, 2000)

        assert resized.shape[:2] == (1000, 2000)

    def test_preserves_aspect_ratio_portrait(self):
        mat = np.zeros((4000, 1000, 3), dtype=np.uint8)

        resized = resize_if_needed(mat, 2000)

        assert resized.shape[:2] == (2000, 500)


class TestCropping:
    """Tests for region clamping and cropping."""

    def test_clamp_region_inside(self):
        assert clamp_region(10, 20, 30, 40, 100, 100) == (10, 20, 30, 40)

    def test_clamp_region_overflow(self):
        assert clamp_region(90, 95, 50, 50, 100, 100) == (90, 95, 10, 5)

    def test_clamp_region_negative_origin(self):
        assert clamp_region(-10, -5, 20, 20, 100, 100) == (0, 0, 20, 20)

    def test_clamp_region_minimum_size(self):
        x, y, w, h = clamp_region(200, 200, 0, 0, 100, 100)

        assert (x, y) == (99, 99)
        assert (w, h) == (1, 1)

    def test_clamp_box(self):
        box = clamp_box(BoundingBox(x=950, y=0, width=100, height=600), 1000, 500)

        assert box == BoundingBox(x=950, y=0, width=50, height=500)

    def test_crop_is_independent_copy(self, uniform_pixels):
        crop = crop_region(uniform_pixels, 10, 10, 20, 20)
        crop[:] = 0

        assert crop.shape == (20, 20, 3)
        assert uniform_pixels[15, 15, 0] == 128


class TestMatrixArena:
    """Tests for scoped matrix ownership."""

    def test_releases_on_exit(self):
        with MatrixArena("test") as arena:
            arena.track(np.zeros((2, 2)))
            arena.track(np.ones((2, 2)))
            assert arena.live_count == 2

        assert arena.live_count == 0

    def test_releases_on_exception(self):
        arena = MatrixArena("test")

        with pytest.raises(RuntimeError):
            with arena:
                arena.track(np.zeros((2, 2)))
                raise RuntimeError("stage failed")

        assert arena.live_count == 0

    def test_track_same_matrix_once(self):
        mat = np.zeros((2, 2))

        with MatrixArena() as arena:
            assert arena.track(mat) is mat
            arena.track(mat)
            assert arena.live_count == 1

    def test_release_single(self):
        a = np.zeros((2, 2))
        b = np.zeros((2, 2))

        with MatrixArena() as arena:
            arena.track(a)
            arena.track(b)
            arena.release(a)
            arena.release(None)

            assert arena.live_count == 1
