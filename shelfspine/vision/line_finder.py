"""
Line Finder

Probabilistic Hough line extraction on a binary edge map, filtered to
near-vertical segments (spine edges) or near-horizontal segments (shelf
separators).
"""

import math
from typing import Callable, List, Optional, Tuple

from loguru import logger

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DEFAULT_CONFIG, DetectionConfig
from shelfspine.vision.edge_detector import detect_edges
from shelfspine.vision.line_merger import merge_nearby_lines
from shelfspine.vision.models import DetectedLine, LineOrientation, PixelMatrix
from shelfspine.vision.preprocessing import preprocess_image


# Vertical (spine edge) search
VERTICAL_VOTE_THRESHOLD = 30
VERTICAL_MAX_LINE_GAP = 30

# Horizontal (shelf separator) search: long, strong lines only so text
# baselines are not picked up
HORIZONTAL_VOTE_THRESHOLD = 100
HORIZONTAL_MAX_LINE_GAP = 50
HORIZONTAL_MIN_LENGTH_RATIO = 0.5
HORIZONTAL_ANGLE_TOLERANCE = 5.0


def _deviation(raw_angle: float) -> float:
    """Fold an angle in [0, 180] to its distance from the nearest axis direction."""
    return min(raw_angle, 180.0 - raw_angle)


def find_vertical_lines(
    edges: PixelMatrix,
    config: Optional[DetectionConfig] = None,
    backend: Optional[VisionBackend] = None,
) -> List[DetectedLine]:
    """
    Find near-vertical segments in an edge map.

    Minimum segment length is `min_line_length_percent` of the edge map's
    height, so pass the map of a single shelf row.

    Returns:
        Unordered list of lines; angle is the deviation from vertical
    """
    config = config or DEFAULT_CONFIG
    backend = backend or get_backend()

    height = edges.shape[0]
    min_line_length = int(height * (config.min_line_length_percent / 100))

    segments = backend.hough_lines(
        edges,
        threshold=VERTICAL_VOTE_THRESHOLD,
        min_line_length=min_line_length,
        max_line_gap=VERTICAL_MAX_LINE_GAP,
    )

    tolerance = config.vertical_angle_tolerance
    lines = []
    for x1, y1, x2, y2 in segments.tolist():
        # 0 = vertical, 90 = horizontal, 180 = vertical again
        raw_angle = abs(math.degrees(math.atan2(x2 - x1, y2 - y1)))
        if raw_angle <= tolerance or raw_angle >= 180 - tolerance:
            lines.append(DetectedLine(
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                angle=_deviation(raw_angle),
                position=(x1 + x2) / 2,
                orientation=LineOrientation.VERTICAL,
            ))

    return lines


def find_horizontal_lines(
    edges: PixelMatrix,
    config: Optional[DetectionConfig] = None,
    backend: Optional[VisionBackend] = None,
) -> List[DetectedLine]:
    """
    Find strong near-horizontal segments spanning half the image width.

    Intended for cross-checking shelf separators; row segmentation itself
    relies on the brightness projection.
    """
    backend = backend or get_backend()

    width = edges.shape[1]
    min_line_length = int(width * HORIZONTAL_MIN_LENGTH_RATIO)

    segments = backend.hough_lines(
        edges,
        threshold=HORIZONTAL_VOTE_THRESHOLD,
        min_line_length=min_line_length,
        max_line_gap=HORIZONTAL_MAX_LINE_GAP,
    )

    lines = []
    for x1, y1, x2, y2 in segments.tolist():
        raw_angle = abs(math.degrees(math.atan2(y2 - y1, x2 - x1)))
        if raw_angle <= HORIZONTAL_ANGLE_TOLERANCE or raw_angle >= 180 - HORIZONTAL_ANGLE_TOLERANCE:
            lines.append(DetectedLine(
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                angle=_deviation(raw_angle),
                position=(y1 + y2) / 2,
                orientation=LineOrientation.HORIZONTAL,
            ))

    return lines


def detect_vertical_lines(
    mat: PixelMatrix,
    config: Optional[DetectionConfig] = None,
    backend: Optional[VisionBackend] = None,
    on_stage: Optional[Callable[[str, str], None]] = None,
) -> Tuple[List[DetectedLine], PixelMatrix]:
    """
    Full vertical line pipeline for one shelf row.

    preprocess -> edges -> Hough -> merge -> sort left to right.

    Args:
        mat: Shelf row image (BGR or grayscale)
        config: Detection thresholds
        backend: Vision backend
        on_stage: Called as on_stage(stage, detail) after "edges_computed",
            "lines_found" and "lines_merged"

    Returns:
        (lines, edges). The caller owns `edges`; it is kept around for
        debug visualization.
    """
    config = config or DEFAULT_CONFIG
    backend = backend or get_backend()
    notify = on_stage or (lambda stage, detail: None)

    preprocessed = preprocess_image(mat, backend)
    edges = detect_edges(preprocessed, config, backend)
    del preprocessed
    notify("edges_computed", f"{edges.shape[1]}x{edges.shape[0]} edge map")

    raw_lines = find_vertical_lines(edges, config, backend)
    notify("lines_found", f"{len(raw_lines)} raw lines")

    lines = merge_nearby_lines(raw_lines)
    lines.sort(key=lambda line: line.position)
    notify("lines_merged", f"{len(lines)} merged lines")

    logger.debug(f"Vertical lines: {len(raw_lines)} raw, {len(lines)} after merging")
    return lines, edges
