"""
Image Preprocessing for spine edge detection.

Grayscale conversion, noise suppression and local contrast enhancement
ahead of Canny.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from loguru import logger

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.models import PixelMatrix


@dataclass(frozen=True)
class PreprocessConfig:
    """Fixed preprocessing parameters."""

    blur_kernel_size: int = 5

    # CLAHE
    clahe_clip_limit: float = 2.0
    clahe_tile_grid: Tuple[int, int] = (8, 8)


DEFAULT_PREPROCESS = PreprocessConfig()


def to_grayscale(mat: PixelMatrix, backend: Optional[VisionBackend] = None) -> PixelMatrix:
    """Single-channel copy of `mat` (a plain copy if it already is one)."""
    return (backend or get_backend()).to_grayscale(mat)


def preprocess_image(
    mat: PixelMatrix,
    backend: Optional[VisionBackend] = None,
    config: Optional[PreprocessConfig] = None,
) -> PixelMatrix:
    """
    Prepare a matrix for edge detection.

    Steps:
    1. Grayscale
    2. Gaussian blur (5x5) against sensor noise
    3. CLAHE, or global histogram equalization when the backend
       has no CLAHE

    Args:
        mat: BGR, BGRA or grayscale matrix; not modified
        backend: Vision backend, defaults to the shared one
        config: Optional preprocessing parameters

    Returns:
        New single-channel matrix
    """
    backend = backend or get_backend()
    config = config or DEFAULT_PREPROCESS

    gray = to_grayscale(mat, backend)
    blurred = backend.gaussian_blur(gray, config.blur_kernel_size)
    del gray

    if backend.clahe_available:
        enhanced = backend.clahe(
            blurred,
            clip_limit=config.clahe_clip_limit,
            tile_grid=config.clahe_tile_grid,
        )
    else:
        logger.debug("CLAHE unavailable, falling back to histogram equalization")
        enhanced = backend.equalize_hist(blurred)

    return enhanced
