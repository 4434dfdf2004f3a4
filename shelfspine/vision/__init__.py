"""
Computer Vision Module for ShelfSpine

This module handles the spine detection pipeline:
- Image decoding, resizing and cropping
- Preprocessing and edge detection
- Shelf row segmentation
- Vertical line detection and merging
- Spine region extraction and quality filtering
"""

from shelfspine.vision.config import DetectionConfig, DEFAULT_CONFIG, get_default_config
from shelfspine.vision.models import (
    BoundingBox,
    DetectedLine,
    DetectedSpine,
    DetectionDebugInfo,
    DetectionResult,
    LineOrientation,
    ShelfRow,
    SpineRegion,
)
from shelfspine.vision.backend import VisionBackend, OpenCVBackend, get_backend
from shelfspine.vision.image_adapter import MatrixArena
from shelfspine.vision.shelf_rows import detect_shelf_rows
from shelfspine.vision.line_finder import find_vertical_lines, find_horizontal_lines, detect_vertical_lines
from shelfspine.vision.line_merger import merge_nearby_lines
from shelfspine.vision.spine_regions import calculate_spine_regions, add_padding
from shelfspine.vision.spine_extractor import extract_spines, filter_spines
from shelfspine.vision.detection import (
    SpineDetectionPipeline,
    DetectionState,
    BatchItem,
    detect_spines,
    detect_spines_batch,
)

__all__ = [
    "DetectionConfig",
    "DEFAULT_CONFIG",
    "get_default_config",
    "BoundingBox",
    "DetectedLine",
    "DetectedSpine",
    "DetectionDebugInfo",
    "DetectionResult",
    "LineOrientation",
    "ShelfRow",
    "SpineRegion",
    "VisionBackend",
    "OpenCVBackend",
    "get_backend",
    "MatrixArena",
    "detect_shelf_rows",
    "find_vertical_lines",
    "find_horizontal_lines",
    "detect_vertical_lines",
    "merge_nearby_lines",
    "calculate_spine_regions",
    "add_padding",
    "extract_spines",
    "filter_spines",
    "SpineDetectionPipeline",
    "DetectionState",
    "BatchItem",
    "detect_spines",
    "detect_spines_batch",
]
