"""
Spine Detection Pipeline

Main orchestrator for detecting book spines in bookshelf images.
Segments the image into shelf rows, then detects spines within each row.

Pipeline:
1. Decode and resize to a working resolution for performance
2. Segment shelf rows from dark horizontal bands
3. Per row: edges -> vertical lines -> merge -> spine regions
4. Crop spine regions from the original (full-resolution) image
5. Filter unreadable crops and re-index
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from shelfspine.errors import DetectionError, ShelfSpineError
from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DEFAULT_CONFIG, DetectionConfig
from shelfspine.vision.image_adapter import (
    MatrixArena,
    crop_region,
    decode_image,
    encode_image,
    resize_if_needed,
)
from shelfspine.vision.line_finder import detect_vertical_lines
from shelfspine.vision.models import (
    DetectedLine,
    DetectedSpine,
    DetectionDebugInfo,
    DetectionResult,
    PixelMatrix,
    ShelfRow,
)
from shelfspine.vision.shelf_rows import detect_shelf_rows
from shelfspine.vision.spine_extractor import extract_spines, filter_spines


ConfigInput = Union[DetectionConfig, Mapping[str, Any], None]


class DetectionState(str, Enum):
    """Stages of one detection call, in order."""
    STARTED = "started"
    DECODED = "decoded"
    RESIZED = "resized"
    ROWS_SEGMENTED = "rows_segmented"
    EDGES_COMPUTED = "edges_computed"
    LINES_FOUND = "lines_found"
    LINES_MERGED = "lines_merged"
    REGIONS_COMPUTED = "regions_computed"
    SPINES_EXTRACTED = "spines_extracted"
    AGGREGATED = "aggregated"
    FILTERED = "filtered"
    DONE = "done"


class _Progress:
    """Tracks the last state reached so failures can name it."""

    def __init__(self):
        self.state = DetectionState.STARTED

    def advance(self, state: DetectionState, detail: str = "") -> None:
        self.state = state
        logger.debug(f"[{state.value}] {detail}".rstrip())


@dataclass
class _Scale:
    """Per-axis factors from working resolution to full resolution."""
    x: float
    y: float


def resolve_config(config: ConfigInput) -> DetectionConfig:
    """Accept a DetectionConfig, a partial mapping of overrides, or None."""
    if config is None:
        return DEFAULT_CONFIG
    if isinstance(config, DetectionConfig):
        return config
    return DetectionConfig.from_mapping(config)


def scale_line(line: DetectedLine, scale: _Scale, row_y: int) -> DetectedLine:
    """Map a row-relative working-resolution line to absolute full resolution."""
    return replace(
        line,
        x1=int(round(line.x1 * scale.x)),
        y1=int(round((line.y1 + row_y) * scale.y)),
        x2=int(round(line.x2 * scale.x)),
        y2=int(round((line.y2 + row_y) * scale.y)),
        position=line.position * scale.x,
    )


def scale_row(row: ShelfRow, scale: _Scale, image_height: int) -> ShelfRow:
    """Map a working-resolution shelf row to full resolution, inside the image."""
    y = min(int(round(row.y * scale.y)), max(image_height - 1, 0))
    height = min(int(round(row.height * scale.y)), image_height - y)
    return ShelfRow(y=y, height=max(1, height))


class SpineDetectionPipeline:
    """
    Classical computer-vision spine detector.

    Holds no per-image state, so one instance can serve several threads.

    Usage:
        pipeline = SpineDetectionPipeline()
        result = pipeline.detect(image_bytes)

        for spine in result.spines:
            print(spine.index, spine.bounding_box)
    """

    def __init__(
        self,
        backend: Optional[VisionBackend] = None,
        crop_padding: int = 0,
    ):
        """
        Initialize the pipeline.

        Args:
            backend: Vision backend, defaults to the shared OpenCV backend
            crop_padding: Extra pixels around each spine crop
        """
        self.backend = backend or get_backend()
        self.crop_padding = max(0, int(crop_padding))

    def detect(
        self,
        image_bytes: bytes,
        config: ConfigInput = None,
        include_debug_image: bool = False,
    ) -> DetectionResult:
        """
        Detect book spines in a bookshelf image.

        Args:
            image_bytes: Encoded JPEG/PNG/WebP image
            config: DetectionConfig or partial mapping of overrides
            include_debug_image: Also return the last row's edge map as PNG

        Returns:
            DetectionResult with cropped spine images

        Raises:
            DecodeError: the bytes are not a supported image
            DetectionError: any other stage failed; no partial output
        """
        start_time = time.time()
        config = resolve_config(config)
        progress = _Progress()

        with MatrixArena("detection") as arena:
            try:
                return self._run(image_bytes, config, include_debug_image, arena, progress, start_time)
            except ShelfSpineError:
                raise
            except Exception as e:
                logger.error(
                    f"Spine detection failed after {progress.state.value}: "
                    f"{type(e).__name__}: {e}"
                )
                raise DetectionError(progress.state.value, detail=str(e)) from e

    def _run(
        self,
        image_bytes: bytes,
        config: DetectionConfig,
        include_debug_image: bool,
        arena: MatrixArena,
        progress: _Progress,
        start_time: float,
    ) -> DetectionResult:
        original = arena.track(decode_image(image_bytes, self.backend))
        original_height, original_width = original.shape[:2]
        progress.advance(DetectionState.DECODED, f"{original_width}x{original_height}")

        resized = arena.track(resize_if_needed(original, config.max_image_dimension, self.backend))
        resized_height, resized_width = resized.shape[:2]
        scale = _Scale(x=original_width / resized_width, y=original_height / resized_height)
        progress.advance(DetectionState.RESIZED, f"{resized_width}x{resized_height}")

        shelf_rows = detect_shelf_rows(resized, config, self.backend)
        progress.advance(DetectionState.ROWS_SEGMENTED, f"{len(shelf_rows)} rows")

        all_spines: List[DetectedSpine] = []
        total_lines = 0
        last_edges: Optional[PixelMatrix] = None

        for row_index, row in enumerate(shelf_rows):
            with MatrixArena(f"row {row_index}") as row_arena:
                row_spines, line_count, edges = self._process_row(
                    original, resized, row, scale, config, row_arena, progress,
                )
                # Only the most recent edge map outlives its row
                arena.release(last_edges)
                last_edges = arena.track(edges)

            for spine in row_spines:
                spine.index = len(all_spines)
                all_spines.append(spine)
            total_lines += line_count

        progress.advance(DetectionState.AGGREGATED, f"{len(all_spines)} candidate spines")

        edges_image_buffer = None
        if include_debug_image and last_edges is not None:
            edges_image_buffer = encode_image(last_edges, "png", self.backend)
        arena.release(last_edges)

        spines, filtered_count = filter_spines(all_spines, original_width)
        progress.advance(DetectionState.FILTERED, f"{filtered_count} filtered out")

        original_rows = [scale_row(row, scale, original_height) for row in shelf_rows]

        processing_time = (time.time() - start_time) * 1000
        progress.advance(DetectionState.DONE)

        logger.info(
            f"Detected {len(spines)} spines in {len(shelf_rows)} shelf rows "
            f"({filtered_count} filtered, {total_lines} lines) in {processing_time:.0f}ms"
        )

        return DetectionResult(
            spines=spines,
            filtered_count=filtered_count,
            shelf_rows=original_rows,
            debug_info=DetectionDebugInfo(
                image_width=original_width,
                image_height=original_height,
                resized_width=resized_width,
                resized_height=resized_height,
                shelf_rows_detected=len(shelf_rows),
                total_lines_detected=total_lines,
                processing_time_ms=processing_time,
            ),
            edges_image_buffer=edges_image_buffer,
        )

    def _process_row(
        self,
        original: PixelMatrix,
        resized: PixelMatrix,
        row: ShelfRow,
        scale: _Scale,
        config: DetectionConfig,
        row_arena: MatrixArena,
        progress: _Progress,
    ) -> Tuple[List[DetectedSpine], int, PixelMatrix]:
        """Detect lines on the working-resolution row, crop from the full-resolution row."""
        backend = self.backend
        resized_width = resized.shape[1]
        original_height, original_width = original.shape[:2]

        row_mat = row_arena.track(crop_region(resized, 0, row.y, resized_width, row.height, backend))
        logger.debug(f"Row y={row.y} h={row.height}")

        lines, edges = detect_vertical_lines(
            row_mat,
            config,
            backend,
            on_stage=lambda stage, detail: progress.advance(DetectionState(stage), detail),
        )
        row_arena.track(edges)

        original_row = scale_row(row, scale, original_height)
        row_relative_lines = []
        for line in lines:
            scaled = scale_line(line, scale, row.y)
            row_relative_lines.append(replace(
                scaled,
                y1=scaled.y1 - original_row.y,
                y2=scaled.y2 - original_row.y,
            ))
        progress.advance(DetectionState.REGIONS_COMPUTED, f"full-res row y={original_row.y} h={original_row.height}")

        original_row_mat = row_arena.track(crop_region(
            original, 0, original_row.y, original_width, original_row.height, backend,
        ))
        row_spines = extract_spines(
            original_row_mat, row_relative_lines, config, backend, padding=self.crop_padding,
        )

        for spine in row_spines:
            spine.bounding_box.y += original_row.y
        progress.advance(DetectionState.SPINES_EXTRACTED, f"{len(row_spines)} spines")

        return row_spines, len(lines), edges


def detect_spines(
    image_bytes: bytes,
    config: ConfigInput = None,
    include_debug_image: bool = False,
    backend: Optional[VisionBackend] = None,
) -> DetectionResult:
    """Detect book spines in an encoded bookshelf image."""
    return SpineDetectionPipeline(backend=backend).detect(
        image_bytes,
        config=config,
        include_debug_image=include_debug_image,
    )


@dataclass
class BatchItem:
    """Outcome for one image of a batch."""
    index: int
    result: Optional[DetectionResult] = None
    error: Optional[ShelfSpineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _BatchTask:
    """Runs one batch image and records when its worker picked it up."""

    def __init__(self, pipeline: SpineDetectionPipeline, image: bytes, config: DetectionConfig):
        self.pipeline = pipeline
        self.image = image
        self.config = config
        self.started = threading.Event()
        self.started_at = 0.0

    def __call__(self) -> DetectionResult:
        self.started_at = time.monotonic()
        self.started.set()
        return self.pipeline.detect(self.image, self.config)

    def remaining(self, timeout: float) -> float:
        """Seconds left before this image's own deadline."""
        return max(0.0, self.started_at + timeout - time.monotonic())


def detect_spines_batch(
    images: Sequence[bytes],
    config: ConfigInput = None,
    max_workers: int = 4,
    timeout: Optional[float] = None,
    pipeline: Optional[SpineDetectionPipeline] = None,
) -> List[BatchItem]:
    """
    Run detection on several images in parallel threads.

    A failure or timeout only affects its own image. The timeout is counted
    from the moment a worker starts on that image, so time spent queued
    behind other images does not count against it. A timed-out detection
    keeps running in its worker but its result is discarded.

    Returns:
        One BatchItem per input image, in input order
    """
    pipeline = pipeline or SpineDetectionPipeline()
    config = resolve_config(config)
    items = [BatchItem(index=i) for i in range(len(images))]
    tasks = [_BatchTask(pipeline, image, config) for image in images]

    logger.info(f"Batch detection: {len(images)} images, {max_workers} workers")

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = [executor.submit(task) for task in tasks]

        for item, task, future in zip(items, tasks, futures):
            try:
                if timeout is None:
                    item.result = future.result()
                else:
                    task.started.wait()
                    item.result = future.result(timeout=task.remaining(timeout))
            except FutureTimeoutError:
                logger.warning(f"Batch image {item.index} timed out after {timeout}s")
                item.error = DetectionError("timeout", detail=f"Exceeded {timeout}s")
            except ShelfSpineError as e:
                logger.warning(f"Batch image {item.index} failed: {e.code} - {e.message}")
                item.error = e
    finally:
        # Do not block on detections whose results were abandoned
        executor.shutdown(wait=False, cancel_futures=True)

    return items
