"""
Spine Extractor

Crops candidate spine regions out of a full-resolution shelf row and
filters out crops that cannot contain legible text.
"""

from typing import List, Optional, Tuple

from loguru import logger

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DEFAULT_CONFIG, DetectionConfig
from shelfspine.vision.image_adapter import clamp_box, crop_region, encode_image, mean_brightness
from shelfspine.vision.models import DetectedLine, DetectedSpine, PixelMatrix
from shelfspine.vision.spine_regions import add_padding, calculate_spine_regions


MIN_WIDTH_RATIO = 0.015  # of full image width
MIN_BRIGHTNESS = 20.0    # mean pixel value, 0-255


def extract_spines(
    mat: PixelMatrix,
    lines: List[DetectedLine],
    config: Optional[DetectionConfig] = None,
    backend: Optional[VisionBackend] = None,
    padding: int = 0,
) -> List[DetectedSpine]:
    """
    Crop spine regions from a full-resolution matrix.

    Args:
        mat: Full-resolution image (or shelf row) to crop from
        lines: Vertical lines in `mat` coordinates, sorted left to right
        config: Detection configuration
        backend: Vision backend
        padding: Extra pixels around each crop, clipped to the matrix

    Returns:
        Spines with boxes in `mat` coordinates and provisional indices
    """
    config = config or DEFAULT_CONFIG
    backend = backend or get_backend()

    height, width = mat.shape[:2]
    regions = calculate_spine_regions(lines, width, height, config)

    spines = []
    for i, region in enumerate(regions):
        box = clamp_box(region.bounding_box, width, height)
        box = add_padding(box, padding, width, height)

        crop = crop_region(mat, box.x, box.y, box.width, box.height, backend)
        image_buffer = encode_image(crop, "jpeg", backend)
        del crop

        spines.append(DetectedSpine(
            index=i,
            bounding_box=box,
            image_buffer=image_buffer,
            left_edge=region.left_edge,
            right_edge=region.right_edge,
        ))

    return spines


def filter_spines(
    spines: List[DetectedSpine],
    image_width: int,
) -> Tuple[List[DetectedSpine], int]:
    """
    Drop spine crops that are too narrow or too dark to read.

    Filters out:
    - boxes narrower than 1.5% of the full image width
    - crops whose mean brightness is below 20/255 (shadows, gaps)

    Survivors are re-indexed 0..n-1 in their current order.

    Returns:
        (kept spines, number discarded)
    """
    min_width = image_width * MIN_WIDTH_RATIO

    kept = []
    for spine in spines:
        if spine.bounding_box.width < min_width:
            logger.debug(f"Spine {spine.index} too narrow: {spine.bounding_box.width}px < {min_width:.1f}px")
            continue

        brightness = mean_brightness(spine.image_buffer)
        if brightness < MIN_BRIGHTNESS:
            logger.debug(f"Spine {spine.index} too dark: mean brightness {brightness:.1f}")
            continue

        kept.append(spine)

    for i, spine in enumerate(kept):
        spine.index = i

    return kept, len(spines) - len(kept)
