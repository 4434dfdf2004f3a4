"""
Data model for spine detection.

Coordinates are plain pixels. BoundingBox and DetectedSpine are always in
full-resolution image coordinates; ShelfRow is in whichever space it was
derived from and the orchestrator converts explicitly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

# An OpenCV-style pixel matrix: uint8, (h, w) or (h, w, 3|4) in BGR(A) order
PixelMatrix = np.ndarray


class LineOrientation(str, Enum):
    """Canonical orientation of a detected line."""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


@dataclass
class DetectedLine:
    """A line segment from the Hough transform."""
    x1: int
    y1: int
    x2: int
    y2: int
    angle: float  # degrees off the canonical orientation, 0 = exact
    # Sort / cluster key: mean x for vertical lines, mean y for horizontal
    position: float
    orientation: LineOrientation = LineOrientation.VERTICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "angle": self.angle,
            "position": self.position,
            "orientation": self.orientation.value,
        }


@dataclass
class ShelfRow:
    """A horizontal band believed to hold one shelf of books."""
    y: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_dict(self) -> Dict[str, int]:
        return {"y": self.y, "height": self.height}


@dataclass
class BoundingBox:
    """Axis-aligned box in full-resolution image coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class SpineRegion:
    """Candidate spine region, before cropping."""
    bounding_box: BoundingBox
    left_edge: Optional[DetectedLine] = None
    right_edge: Optional[DetectedLine] = None


@dataclass
class DetectedSpine:
    """A cropped spine with its location and bounding lines."""
    index: int
    bounding_box: BoundingBox
    image_buffer: bytes  # encoded JPEG, independent of any matrix
    left_edge: Optional[DetectedLine] = None
    right_edge: Optional[DetectedLine] = None

    def to_dict(self, include_image: bool = False) -> Dict[str, Any]:
        d = {
            "index": self.index,
            "bounding_box": self.bounding_box.to_dict(),
            "left_edge": self.left_edge.to_dict() if self.left_edge else None,
            "right_edge": self.right_edge.to_dict() if self.right_edge else None,
        }
        if include_image:
            d["image_buffer"] = self.image_buffer
        return d


@dataclass
class DetectionDebugInfo:
    """Diagnostic counters for one detection call."""
    image_width: int = 0
    image_height: int = 0
    resized_width: int = 0
    resized_height: int = 0
    shelf_rows_detected: int = 0
    total_lines_detected: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_width": self.image_width,
            "image_height": self.image_height,
            "resized_width": self.resized_width,
            "resized_height": self.resized_height,
            "shelf_rows_detected": self.shelf_rows_detected,
            "total_lines_detected": self.total_lines_detected,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class DetectionResult:
    """Result of spine detection on a single image."""
    spines: List[DetectedSpine] = field(default_factory=list)
    filtered_count: int = 0
    shelf_rows: List[ShelfRow] = field(default_factory=list)
    debug_info: DetectionDebugInfo = field(default_factory=DetectionDebugInfo)
    edges_image_buffer: Optional[bytes] = None  # PNG of the last row's edges

    def __len__(self) -> int:
        return len(self.spines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spines": [s.to_dict() for s in self.spines],
            "filtered_count": self.filtered_count,
            "shelf_rows": [r.to_dict() for r in self.shelf_rows],
            "debug_info": self.debug_info.to_dict(),
            "has_edges_image": self.edges_image_buffer is not None,
        }
