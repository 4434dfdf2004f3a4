"""
Edge detection for spine boundaries.
"""

from typing import Optional

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DetectionConfig
from shelfspine.vision.models import PixelMatrix


# (width, height): bridges gaps along vertical edges only, so horizontal
# text strokes stay separate
DILATION_KERNEL = (1, 3)


def detect_edges(
    gray: PixelMatrix,
    config: DetectionConfig,
    backend: Optional[VisionBackend] = None,
) -> PixelMatrix:
    """
    Binary edge map of a preprocessed grayscale matrix.

    Canny with the configured thresholds, then a thin vertical dilation
    to reconnect broken spine edges. The caller owns the result.
    """
    backend = backend or get_backend()
    edges = backend.canny(gray, config.canny_low_threshold, config.canny_high_threshold)
    return backend.dilate(edges, DILATION_KERNEL)
