"""
Vision Backend

Narrow wrapper around the OpenCV primitives the pipeline needs
(grayscale, blur, contrast, Canny, dilation, probabilistic Hough,
resize, crop, encode/decode). Pipeline modules only talk to a
VisionBackend, never to cv2 directly.
"""

from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from shelfspine.errors import BackendUnavailable

try:
    import cv2
except ImportError:
    logger.warning("opencv-python not installed. Install with: pip install opencv-python-headless")
    cv2 = None


class VisionBackend:
    """Interface every backend implements."""

    name = "abstract"

    @property
    def clahe_available(self) -> bool:
        return False

    def decode(self, data: bytes) -> Optional[np.ndarray]:
        raise NotImplementedError

    def encode(self, mat: np.ndarray, fmt: str = "jpeg", quality: int = 90) -> Optional[bytes]:
        raise NotImplementedError

    def to_grayscale(self, mat: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def gaussian_blur(self, mat: np.ndarray, ksize: int = 5) -> np.ndarray:
        raise NotImplementedError

    def clahe(self, mat: np.ndarray, clip_limit: float = 2.0, tile_grid: Tuple[int, int] = (8, 8)) -> np.ndarray:
        raise NotImplementedError

    def equalize_hist(self, mat: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def canny(self, mat: np.ndarray, low: float, high: float) -> np.ndarray:
        raise NotImplementedError

    def dilate(self, mat: np.ndarray, kernel_size: Tuple[int, int]) -> np.ndarray:
        raise NotImplementedError

    def hough_lines(
        self,
        edges: np.ndarray,
        threshold: int,
        min_line_length: int,
        max_line_gap: int,
    ) -> np.ndarray:
        raise NotImplementedError

    def resize(self, mat: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
        raise NotImplementedError

    def crop(self, mat: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
        raise NotImplementedError


class OpenCVBackend(VisionBackend):
    """VisionBackend on top of opencv-python."""

    name = "opencv"

    def __init__(self):
        if cv2 is None:
            raise BackendUnavailable(
                "OpenCV",
                detail="opencv-python is not installed",
            )
        self.version = cv2.__version__
        logger.info(f"OpenCV backend initialized (version {self.version}, CLAHE: {self.clahe_available})")

    @property
    def clahe_available(self) -> bool:
        return hasattr(cv2, "createCLAHE")

    def decode(self, data: bytes) -> Optional[np.ndarray]:
        """Decode JPEG/PNG/WebP bytes to a BGR matrix, or None."""
        nparr = np.frombuffer(data, np.uint8)
        if nparr.size == 0:
            return None
        return cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    def encode(self, mat: np.ndarray, fmt: str = "jpeg", quality: int = 90) -> Optional[bytes]:
        if fmt == "jpeg":
            ok, buf = cv2.imencode(".jpg", mat, [cv2.IMWRITE_JPEG_QUALITY, quality])
        elif fmt == "png":
            ok, buf = cv2.imencode(".png", mat)
        else:
            raise ValueError(f"Unsupported encode format: {fmt}")
        return buf.tobytes() if ok else None

    def to_grayscale(self, mat: np.ndarray) -> np.ndarray:
        if mat.ndim == 2:
            return mat.copy()
        channels = mat.shape[2]
        if channels == 1:
            return mat[:, :, 0].copy()
        if channels == 4:
            return cv2.cvtColor(mat, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(mat, cv2.COLOR_BGR2GRAY)

    def gaussian_blur(self, mat: np.ndarray, ksize: int = 5) -> np.ndarray:
        return cv2.GaussianBlur(mat, (ksize, ksize), 0)

    def clahe(self, mat: np.ndarray, clip_limit: float = 2.0, tile_grid: Tuple[int, int] = (8, 8)) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=tile_grid)
        return clahe.apply(mat)

    def equalize_hist(self, mat: np.ndarray) -> np.ndarray:
        return cv2.equalizeHist(mat)

    def canny(self, mat: np.ndarray, low: float, high: float) -> np.ndarray:
        return cv2.Canny(mat, low, high)

    def dilate(self, mat: np.ndarray, kernel_size: Tuple[int, int]) -> np.ndarray:
        """Dilate with a rectangular kernel of (width, height)."""
        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, kernel_size)
        return cv2.dilate(mat, kernel)

    def hough_lines(
        self,
        edges: np.ndarray,
        threshold: int,
        min_line_length: int,
        max_line_gap: int,
    ) -> np.ndarray:
        """Probabilistic Hough (rho=1px, theta=1deg). Returns an (N, 4) int array."""
        lines = cv2.HoughLinesP(
            edges,
            1,
            np.pi / 180,
            threshold,
            minLineLength=min_line_length,
            maxLineGap=max_line_gap,
        )
        if lines is None:
            return np.empty((0, 4), dtype=np.int32)
        return lines.reshape(-1, 4)

    def resize(self, mat: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
        """Resize to (width, height) with area interpolation."""
        return cv2.resize(mat, size, interpolation=cv2.INTER_AREA)

    def crop(self, mat: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
        """Copy out a region. Bounds must already be valid."""
        return mat[y:y + height, x:x + width].copy()


@lru_cache()
def get_backend() -> VisionBackend:
    """
    Get the shared vision backend.

    Raises BackendUnavailable once if OpenCV cannot be loaded; the
    failure is not cached, so callers surface it at startup.
    """
    return OpenCVBackend()
