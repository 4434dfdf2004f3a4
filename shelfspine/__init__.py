"""
ShelfSpine - bookshelf spine-region detection.

Splits a bookshelf photograph into shelf rows and crops the individual
book spines found in each row.
"""

from shelfspine.errors import (
    ShelfSpineError,
    DecodeError,
    BackendUnavailable,
    MalformedConfigError,
    DetectionError,
)
from shelfspine.vision import (
    DetectionConfig,
    DEFAULT_CONFIG,
    DetectionResult,
    DetectedSpine,
    SpineDetectionPipeline,
    detect_spines,
    detect_spines_batch,
)

__version__ = "0.1.0"

__all__ = [
    "ShelfSpineError",
    "DecodeError",
    "BackendUnavailable",
    "MalformedConfigError",
    "DetectionError",
    "DetectionConfig",
    "DEFAULT_CONFIG",
    "DetectionResult",
    "DetectedSpine",
    "SpineDetectionPipeline",
    "detect_spines",
    "detect_spines_batch",
]
