"""
Shelf Row Segmenter

Splits a bookshelf image into horizontal shelf bands by looking for dark
horizontal gaps in the row-brightness projection. This is more reliable
than Hough lines for shelf boundaries, which are often shadows rather
than crisp edges.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from loguru import logger

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DetectionConfig
from shelfspine.vision.models import PixelMatrix, ShelfRow


SMOOTH_WINDOW_RATIO = 0.01    # moving-average window, fraction of height
DARK_THRESHOLD_RATIO = 0.4    # dark if below this fraction of mean brightness
MIN_BAND_RATIO = 0.01         # dark band must be taller than this
SEPARATOR_MARGIN_RATIO = 0.15 # ignore bands centred in the top/bottom 15%
MIN_CANDIDATE_RATIO = 0.10
MIN_ROW_RATIO = 0.15


@dataclass(frozen=True)
class DarkBand:
    """Contiguous run of dark rows, [start, end)."""
    start: int
    end: int

    @property
    def height(self) -> int:
        return self.end - self.start

    @property
    def center(self) -> float:
        return (self.start + self.end) / 2


def row_brightness_profile(mat: PixelMatrix, backend: Optional[VisionBackend] = None) -> np.ndarray:
    """Mean grayscale brightness of every image row."""
    backend = backend or get_backend()
    gray = backend.to_grayscale(mat)
    return gray.mean(axis=1, dtype=np.float64)


def smooth_profile(profile: np.ndarray, window: int) -> np.ndarray:
    """
    Centred moving average of `window` samples.

    Near the ends the window is truncated and averages only the samples
    that exist.
    """
    n = len(profile)
    if n == 0:
        return profile.astype(np.float64)

    window = max(1, int(window))
    left = window // 2
    right = window - 1 - left

    csum = np.concatenate(([0.0], np.cumsum(profile, dtype=np.float64)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - left)
    hi = np.minimum(n, idx + right + 1)
    return (csum[hi] - csum[lo]) / (hi - lo)


def find_dark_bands(smoothed: np.ndarray, threshold: float, min_height: float) -> List[DarkBand]:
    """Runs of samples below `threshold` that are taller than `min_height`."""
    dark = smoothed < threshold
    bands = []
    band_start = -1

    for y, is_dark in enumerate(dark):
        if is_dark:
            if band_start == -1:
                band_start = y
        elif band_start != -1:
            if y - band_start > min_height:
                bands.append(DarkBand(band_start, y))
            band_start = -1

    # Band running off the bottom edge
    height = len(smoothed)
    if band_start != -1 and height - band_start > min_height:
        bands.append(DarkBand(band_start, height))

    return bands


def detect_shelf_rows(
    mat: PixelMatrix,
    config: Optional[DetectionConfig] = None,
    backend: Optional[VisionBackend] = None,
) -> List[ShelfRow]:
    """
    Detect shelf rows from dark horizontal bands.

    Falls back to a single full-image row whenever the evidence for a
    split is weak: one oversized row is preferable to a spurious cut
    through a shelf of books.

    Args:
        mat: Color or grayscale matrix
        config: Detection configuration (the brightness heuristics use
            fixed ratios; accepted for a uniform stage signature)
        backend: Vision backend, defaults to the shared one

    Returns:
        Non-overlapping rows ordered top to bottom
    """
    height = mat.shape[0]
    full_image = [ShelfRow(y=0, height=height)]

    if height == 0:
        return full_image

    profile = row_brightness_profile(mat, backend)
    smoothed = smooth_profile(profile, int(height * SMOOTH_WINDOW_RATIO) or 1)

    avg_brightness = float(smoothed.mean())
    dark_threshold = avg_brightness * DARK_THRESHOLD_RATIO

    bands = find_dark_bands(smoothed, dark_threshold, height * MIN_BAND_RATIO)

    margin = height * SEPARATOR_MARGIN_RATIO
    separators = [b for b in bands if margin < b.center < height - margin]

    logger.debug(
        f"Shelf segmentation: mean brightness {avg_brightness:.1f}, "
        f"{len(bands)} dark bands, {len(separators)} separators"
    )

    if not separators:
        return full_image

    min_candidate = height * MIN_CANDIDATE_RATIO
    rows: List[ShelfRow] = []

    # Top of image to first separator
    if separators[0].start > min_candidate:
        rows.append(ShelfRow(y=0, height=separators[0].start))

    for upper, lower in zip(separators, separators[1:]):
        top, bottom = upper.end, lower.start
        if bottom - top > min_candidate:
            rows.append(ShelfRow(y=top, height=bottom - top))

    # Last separator to bottom of image
    last_end = separators[-1].end
    if height - last_end > min_candidate:
        rows.append(ShelfRow(y=last_end, height=height - last_end))

    valid_rows = [r for r in rows if r.height > height * MIN_ROW_RATIO]

    if len(valid_rows) < 2:
        return full_image

    return valid_rows
