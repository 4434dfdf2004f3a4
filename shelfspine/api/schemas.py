"""
API Schemas for ShelfSpine

Pydantic models for request validation and response serialization:
- Detection configuration
- Detection results
- Errors and health
"""

import base64
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from shelfspine.vision.config import DetectionConfig
from shelfspine.vision.models import (
    BoundingBox,
    DetectedLine,
    DetectedSpine,
    DetectionResult,
)


# =============================================================================
# Detection Config
# =============================================================================

class DetectionConfigSchema(BaseModel):
    """Effective detection thresholds."""

    min_spine_width_percent: float = Field(..., description="Minimum spine width, percent of image width")
    max_spine_width_percent: float = Field(..., description="Maximum spine width, percent of image width")
    vertical_angle_tolerance: float = Field(..., ge=0, le=90, description="Degrees off vertical")
    min_line_length_percent: float = Field(..., ge=0, le=100, description="Minimum line length, percent of row height")
    canny_low_threshold: float = Field(..., ge=0)
    canny_high_threshold: float = Field(..., ge=0)
    max_image_dimension: int = Field(..., ge=1, description="Longest side of the working copy")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "min_spine_width_percent": 0.8,
                "max_spine_width_percent": 12.0,
                "vertical_angle_tolerance": 15.0,
                "min_line_length_percent": 15.0,
                "canny_low_threshold": 30.0,
                "canny_high_threshold": 120.0,
                "max_image_dimension": 2000,
            }
        }
    )

    @classmethod
    def from_config(cls, config: DetectionConfig) -> "DetectionConfigSchema":
        return cls(**config.to_dict())


# =============================================================================
# Detection Results
# =============================================================================

class BoundingBoxSchema(BaseModel):
    """Pixel box in the uploaded image."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_box(cls, box: BoundingBox) -> "BoundingBoxSchema":
        return cls(**box.to_dict())


class DetectedLineSchema(BaseModel):
    """A merged spine edge."""

    x1: int
    y1: int
    x2: int
    y2: int
    angle: float
    position: float
    orientation: str

    @classmethod
    def from_line(cls, line: Optional[DetectedLine]) -> Optional["DetectedLineSchema"]:
        if line is None:
            return None
        return cls(**line.to_dict())


class DetectedSpineSchema(BaseModel):
    """One cropped book spine."""

    index: int
    bounding_box: BoundingBoxSchema
    left_edge: Optional[DetectedLineSchema] = None
    right_edge: Optional[DetectedLineSchema] = None
    image_base64: str = Field(..., description="JPEG crop, base64 encoded")

    @classmethod
    def from_spine(cls, spine: DetectedSpine) -> "DetectedSpineSchema":
        return cls(
            index=spine.index,
            bounding_box=BoundingBoxSchema.from_box(spine.bounding_box),
            left_edge=DetectedLineSchema.from_line(spine.left_edge),
            right_edge=DetectedLineSchema.from_line(spine.right_edge),
            image_base64=base64.b64encode(spine.image_buffer).decode("ascii"),
        )


class ShelfRowSchema(BaseModel):
    """A horizontal shelf band."""

    y: int
    height: int


class DebugInfoSchema(BaseModel):
    """Diagnostics for one detection call."""

    image_width: int
    image_height: int
    resized_width: int
    resized_height: int
    shelf_rows_detected: int
    total_lines_detected: int
    processing_time_ms: float


class DetectionResponse(BaseModel):
    """Spine detection response."""

    spines: list[DetectedSpineSchema]
    total_spines: int
    filtered_count: int
    shelf_rows: list[ShelfRowSchema]
    debug_info: DebugInfoSchema

    # PNG edge map of the last processed row, when requested
    edges_image_base64: Optional[str] = None

    @classmethod
    def from_result(cls, result: DetectionResult) -> "DetectionResponse":
        edges = None
        if result.edges_image_buffer is not None:
            edges = base64.b64encode(result.edges_image_buffer).decode("ascii")

        return cls(
            spines=[DetectedSpineSchema.from_spine(s) for s in result.spines],
            total_spines=len(result.spines),
            filtered_count=result.filtered_count,
            shelf_rows=[ShelfRowSchema(**r.to_dict()) for r in result.shelf_rows],
            debug_info=DebugInfoSchema(**result.debug_info.to_dict()),
            edges_image_base64=edges,
        )


# =============================================================================
# Common Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Could not decode image",
                "detail": "Data is not a supported image format",
                "code": "DECODE_ERROR",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    )


# =============================================================================
# Batch Detection
# =============================================================================

class BatchErrorSchema(BaseModel):
    """Failure of one image in a batch."""

    error: str
    code: str
    detail: Optional[str] = None


class BatchItemResponse(BaseModel):
    """Outcome for one image of a batch."""

    index: int
    filename: Optional[str] = None
    result: Optional[DetectionResponse] = None
    error: Optional[BatchErrorSchema] = None


class BatchDetectionResponse(BaseModel):
    """Batch detection response."""

    results: list[BatchItemResponse]
    total_images: int
    total_spines: int
    failed_images: int
