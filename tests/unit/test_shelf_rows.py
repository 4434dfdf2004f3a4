"""
Unit tests for shelf row segmentation.
"""

import numpy as np
import pytest

from shelfspine.vision.models import ShelfRow
from shelfspine.vision.shelf_rows import (
    DarkBand,
    detect_shelf_rows,
    find_dark_bands,
    smooth_profile,
)


class TestSmoothProfile:
    """Tests for the centred moving average."""

    def test_constant_signal_unchanged(self):
        profile = np.full(50, 10.0)

        assert np.allclose(smooth_profile(profile, 5), 10.0)

    def test_window_of_one_is_identity(self):
        profile = np.arange(10, dtype=np.float64)

        assert np.allclose(smooth_profile(profile, 1), profile)

    def test_truncated_at_edges(self):
        profile = np.array([0.0, 0.0, 0.0, 9.0, 0.0, 0.0, 0.0])

        smoothed = smooth_profile(profile, 3)

        assert smoothed[3] == pytest.approx(3.0)
        assert smoothed[2] == pytest.approx(3.0)
        assert smoothed[0] == pytest.approx(0.0)
        assert len(smoothed) == len(profile)


class TestFindDarkBands:
    """Tests for find_dark_bands."""

    def test_finds_band(self):
        signal = np.full(100, 200.0)
        signal[40:50] = 0

        bands = find_dark_bands(signal, threshold=80, min_height=5)

        assert bands == [DarkBand(40, 50)]
        assert bands[0].height == 10
        assert bands[0].center == 45

    def test_short_band_ignored(self):
        signal = np.full(100, 200.0)
        signal[40:45] = 0

        assert find_dark_bands(signal, threshold=80, min_height=5) == []

    def test_band_at_bottom_edge(self):
        signal = np.full(100, 200.0)
        signal[90:] = 0

        assert find_dark_bands(signal, threshold=80, min_height=5) == [DarkBand(90, 100)]


class TestDetectShelfRows:
    """Tests for detect_shelf_rows."""

    def test_two_dark_bands_give_three_rows(self, two_shelf_pixels):
        rows = detect_shelf_rows(two_shelf_pixels)

        assert len(rows) == 3
        expected = [(0, 502), (518, 484), (1018, 482)]
        for row, (y, height) in zip(rows, expected):
            assert abs(row.y - y) <= 5
            assert abs(row.height - height) <= 5

    def test_rows_ordered_and_disjoint(self, two_shelf_pixels):
        rows = detect_shelf_rows(two_shelf_pixels)

        for upper, lower in zip(rows, rows[1:]):
            assert upper.bottom <= lower.y
        for row in rows:
            assert row.height > 0.15 * 1500
            assert 0 <= row.y and row.bottom <= 1500

    def test_uniform_image_is_one_row(self, uniform_pixels):
        assert detect_shelf_rows(uniform_pixels) == [ShelfRow(y=0, height=400)]

    def test_band_near_top_ignored(self):
        pixels = np.full((1000, 500, 3), 200, dtype=np.uint8)
        pixels[50:80, :] = 0

        assert detect_shelf_rows(pixels) == [ShelfRow(y=0, height=1000)]

    def test_single_separator_gives_two_rows(self):
        pixels = np.full((1000, 500, 3), 200, dtype=np.uint8)
        pixels[490:510, :] = 0

        rows = detect_shelf_rows(pixels)

        assert len(rows) == 2
        assert rows[0].y == 0
        assert rows[1].bottom == 1000

    def test_small_middle_row_dropped(self):
        # Separators 12% apart leave a middle row under the 15% minimum
        pixels = np.full((1000, 500, 3), 200, dtype=np.uint8)
        pixels[440:460, :] = 0
        pixels[560:580, :] = 0

        rows = detect_shelf_rows(pixels)

        assert len(rows) == 2
        assert all(row.height > 150 for row in rows)

    def test_repeatable(self, two_shelf_pixels):
        assert detect_shelf_rows(two_shelf_pixels) == detect_shelf_rows(two_shelf_pixels)

    def test_idempotent_on_single_row(self, two_shelf_pixels):
        rows = detect_shelf_rows(two_shelf_pixels)
        middle = rows[1]

        sub_rows = detect_shelf_rows(two_shelf_pixels[middle.y:middle.bottom])

        assert sub_rows == [ShelfRow(y=0, height=middle.height)]

    def test_grayscale_input(self, two_shelf_pixels):
        gray = two_shelf_pixels[:, :, 0].copy()

        assert len(detect_shelf_rows(gray)) == 3
