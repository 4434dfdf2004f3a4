"""
Pytest configuration and fixtures for ShelfSpine tests.
"""

import io
import sys
from pathlib import Path
from typing import AsyncGenerator

import numpy as np
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfspine.api.main import create_app
from shelfspine.api.dependencies import Settings, get_pipeline, get_settings
from shelfspine.vision.config import DEFAULT_CONFIG
from shelfspine.vision.detection import SpineDetectionPipeline


# =============================================================================
# Helpers
# =============================================================================

def encode_png(pixels: np.ndarray) -> bytes:
    """Encode a uint8 array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def encode_jpeg(pixels: np.ndarray, quality: int = 95) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def make_spine_pixels(width: int = 1000, height: int = 600) -> np.ndarray:
    """
    Synthetic single-shelf image: vertical book spines of alternating
    brightness, each 60px wide, on a light background.
    """
    pixels = np.full((height, width, 3), 230, dtype=np.uint8)
    levels = [60, 190, 70, 200, 50, 180, 80, 210, 60]

    for i, level in enumerate(levels):
        x = 100 + i * 60
        pixels[:, x:x + 60] = level
    return pixels


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        detection_config=DEFAULT_CONFIG,
        crop_padding=0,
        max_upload_size_mb=1,
        environment="test",
        debug=True,
        log_level="DEBUG",
    )


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app():
    """Create FastAPI application for testing."""
    application = create_app(get_test_settings())

    application.dependency_overrides[get_settings] = get_test_settings
    application.dependency_overrides[get_pipeline] = lambda: SpineDetectionPipeline()

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def two_shelf_pixels() -> np.ndarray:
    """
    1000x1500 mid-gray image with black 20px bands at y=500 and y=1000,
    i.e. three shelves.
    """
    pixels = np.full((1500, 1000, 3), 200, dtype=np.uint8)
    pixels[500:520, :] = 0
    pixels[1000:1020, :] = 0
    return pixels


@pytest.fixture
def uniform_pixels() -> np.ndarray:
    """Featureless gray image."""
    return np.full((400, 600, 3), 128, dtype=np.uint8)


@pytest.fixture
def spine_pixels() -> np.ndarray:
    return make_spine_pixels()


@pytest.fixture
def spine_image_bytes(spine_pixels) -> bytes:
    return encode_png(spine_pixels)


@pytest.fixture
def two_shelf_image_bytes(two_shelf_pixels) -> bytes:
    return encode_png(two_shelf_pixels)


@pytest.fixture
def uniform_image_bytes(uniform_pixels) -> bytes:
    return encode_png(uniform_pixels)


@pytest.fixture
def large_spine_image_bytes() -> bytes:
    """Spine image whose long side exceeds the default working size."""
    return encode_jpeg(make_spine_pixels(width=3000, height=1800))
