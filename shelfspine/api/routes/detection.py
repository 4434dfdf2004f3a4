"""
Detection API Routes

Endpoints for spine detection on uploaded bookshelf images.
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from shelfspine.api.dependencies import Settings, get_pipeline, get_settings
from shelfspine.api.middleware.error_handler import InvalidRequestError
from shelfspine.api.schemas import (
    BatchDetectionResponse,
    BatchErrorSchema,
    BatchItemResponse,
    DetectionConfigSchema,
    DetectionResponse,
    ErrorResponse,
)
from shelfspine.vision.detection import SpineDetectionPipeline, detect_spines_batch


router = APIRouter(prefix="/detect", tags=["detection"])


def parse_config_overrides(raw: Optional[str]) -> Optional[dict]:
    """Parse the optional JSON object of config overrides from the form."""
    if raw is None or not raw.strip():
        return None
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidRequestError("Invalid detection config", detail=f"Not valid JSON: {e.msg}")
    if not isinstance(overrides, dict):
        raise InvalidRequestError("Invalid detection config", detail="Expected a JSON object")
    return overrides


async def read_upload(file: UploadFile, settings: Settings) -> bytes:
    """Read an uploaded image, enforcing content type and size limits."""
    allowed = settings.allowed_image_type_set
    if file.content_type not in allowed:
        logger.warning(f"Rejected upload {file.filename}: unsupported type {file.content_type}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image format: {file.content_type}. "
                   f"Supported: {', '.join(sorted(allowed))}",
        )

    content = await file.read()

    if len(content) > settings.max_upload_size_bytes:
        logger.warning(f"Rejected upload {file.filename}: {len(content)} bytes")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds maximum size of {settings.max_upload_size_mb}MB",
        )

    return content


# =============================================================================
# Detection Endpoints
# =============================================================================

@router.post(
    "",
    response_model=DetectionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image or config"},
        413: {"model": ErrorResponse, "description": "Image too large"},
        500: {"model": ErrorResponse, "description": "Detection failed"},
    },
)
async def detect(
    file: UploadFile = File(..., description="Bookshelf image"),
    config: Optional[str] = Form(None, description="JSON object of detection config overrides"),
    include_debug_image: bool = Form(False, description="Return the edge map of the last row"),
    pipeline: SpineDetectionPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """
    Detect book spines in an uploaded bookshelf image.

    Returns one base64 JPEG crop per spine with its bounding box.
    """
    content = await read_upload(file, settings)
    detection_config = settings.detection_config.with_overrides(parse_config_overrides(config))

    logger.info(
        f"Processing image: {file.filename}, "
        f"size={len(content)//1024}KB, "
        f"debug_image={include_debug_image}"
    )

    result = await run_in_threadpool(
        pipeline.detect,
        content,
        detection_config,
        include_debug_image,
    )

    return DetectionResponse.from_result(result)


@router.post(
    "/batch",
    response_model=BatchDetectionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image or config"},
        413: {"model": ErrorResponse, "description": "Image too large"},
    },
)
async def detect_batch(
    files: List[UploadFile] = File(..., description="Bookshelf images"),
    config: Optional[str] = Form(None, description="JSON object of detection config overrides"),
    pipeline: SpineDetectionPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """
    Detect spines in several images.

    A failed or timed-out image is reported in its own entry and does
    not fail the request.
    """
    contents = [await read_upload(file, settings) for file in files]
    detection_config = settings.detection_config.with_overrides(parse_config_overrides(config))

    items = await run_in_threadpool(
        detect_spines_batch,
        contents,
        detection_config,
        settings.detection_max_workers,
        settings.detection_timeout_seconds,
        pipeline,
    )

    results = []
    for item, file in zip(items, files):
        error = None
        if item.error is not None:
            error = BatchErrorSchema(
                error=item.error.message,
                code=item.error.code,
                detail=item.error.detail,
            )
        results.append(BatchItemResponse(
            index=item.index,
            filename=file.filename,
            result=DetectionResponse.from_result(item.result) if item.ok else None,
            error=error,
        ))

    return BatchDetectionResponse(
        results=results,
        total_images=len(items),
        total_spines=sum(len(item.result) for item in items if item.ok),
        failed_images=sum(1 for item in items if not item.ok),
    )


@router.get("/config", response_model=DetectionConfigSchema)
async def get_detection_config(settings: Settings = Depends(get_settings)):
    """Get the default detection thresholds used by this server."""
    return DetectionConfigSchema.from_config(settings.detection_config)
