"""
Image Adapter

Boundary between encoded image bytes and pixel matrices: decoding,
encoding, resizing, clamped cropping, and scoped ownership of the
matrices a detection call creates.
"""

import io
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageStat
from loguru import logger

from shelfspine.errors import DecodeError
from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.models import BoundingBox, PixelMatrix


JPEG_QUALITY = 90


class MatrixArena:
    """
    Scoped owner for the pixel matrices of one detection call.

    Matrices registered with track() are dropped when the arena exits,
    whether the block finished normally or raised. Nested arenas are
    used for per-row buffers so each row is released before the next.

    Usage:
        with MatrixArena("row 0") as arena:
            gray = arena.track(backend.to_grayscale(image))
            ...
    """

    def __init__(self, name: str = "detection"):
        self.name = name
        self._held: List[PixelMatrix] = []

    def __enter__(self) -> "MatrixArena":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        count = self.release_all()
        if exc_type is not None:
            logger.debug(f"Arena '{self.name}' released {count} matrices after {exc_type.__name__}")
        return False

    @property
    def live_count(self) -> int:
        return len(self._held)

    def track(self, mat: PixelMatrix) -> PixelMatrix:
        """Take ownership of `mat` and return it."""
        if not any(held is mat for held in self._held):
            self._held.append(mat)
        return mat

    def release(self, mat: Optional[PixelMatrix]) -> None:
        """Release one matrix early."""
        if mat is None:
            return
        self._held = [held for held in self._held if held is not mat]

    def release_all(self) -> int:
        count = len(self._held)
        self._held.clear()
        return count


def decode_image(data: bytes, backend: Optional[VisionBackend] = None) -> PixelMatrix:
    """
    Decode an encoded image buffer.

    Raises:
        DecodeError: if the bytes are empty or not a supported format
    """
    if not data:
        raise DecodeError("Image buffer is empty")

    image = (backend or get_backend()).decode(data)
    if image is None or image.size == 0:
        raise DecodeError("Input is not a supported image format (JPEG, PNG, WebP)")
    return image


def encode_image(mat: PixelMatrix, fmt: str = "jpeg", backend: Optional[VisionBackend] = None) -> bytes:
    """Encode a matrix as JPEG (quality 90) or PNG bytes."""
    data = (backend or get_backend()).encode(mat, fmt=fmt, quality=JPEG_QUALITY)
    if data is None:
        raise ValueError(f"Failed to encode {mat.shape} matrix as {fmt}")
    return data


def resize_if_needed(
    mat: PixelMatrix,
    max_dimension: int,
    backend: Optional[VisionBackend] = None,
) -> PixelMatrix:
    """
    Downscale so the longest side is at most `max_dimension`.

    Returns the input object itself when no resize is needed.
    """
    height, width = mat.shape[:2]
    max_side = max(width, height)

    if max_side <= max_dimension:
        return mat

    scale = max_dimension / max_side
    new_width = max(1, int(round(width * scale)))
    new_height = max(1, int(round(height * scale)))

    return (backend or get_backend()).resize(mat, (new_width, new_height))


def clamp_region(
    x: int,
    y: int,
    width: int,
    height: int,
    image_width: int,
    image_height: int,
) -> Tuple[int, int, int, int]:
    """Clamp a region so it lies inside the image and is at least 1x1."""
    clamped_x = max(0, min(int(x), image_width - 1))
    clamped_y = max(0, min(int(y), image_height - 1))
    clamped_width = max(1, min(int(width), image_width - clamped_x))
    clamped_height = max(1, min(int(height), image_height - clamped_y))
    return clamped_x, clamped_y, clamped_width, clamped_height


def clamp_box(box: BoundingBox, image_width: int, image_height: int) -> BoundingBox:
    return BoundingBox(*clamp_region(box.x, box.y, box.width, box.height, image_width, image_height))


def crop_region(
    mat: PixelMatrix,
    x: int,
    y: int,
    width: int,
    height: int,
    backend: Optional[VisionBackend] = None,
) -> PixelMatrix:
    """Crop an independent copy of a region, clamped to the matrix bounds."""
    image_height, image_width = mat.shape[:2]
    cx, cy, cw, ch = clamp_region(x, y, width, height, image_width, image_height)
    return (backend or get_backend()).crop(mat, cx, cy, cw, ch)


def mean_brightness(image_buffer: bytes) -> float:
    """Mean pixel value of an encoded image, averaged across channels."""
    with Image.open(io.BytesIO(image_buffer)) as img:
        stats = ImageStat.Stat(img)
        return float(np.mean(stats.mean))
