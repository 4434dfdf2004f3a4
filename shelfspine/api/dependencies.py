"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- The spine detection pipeline
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from loguru import logger

from shelfspine.vision.backend import VisionBackend, get_backend
from shelfspine.vision.config import DEFAULT_CONFIG, DetectionConfig
from shelfspine.vision.detection import SpineDetectionPipeline


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Detection
    detection_config: DetectionConfig = field(default_factory=lambda: DEFAULT_CONFIG)
    crop_padding: int = 0
    detection_max_workers: int = 4
    detection_timeout_seconds: Optional[float] = None

    # File uploads
    max_upload_size_mb: int = 10
    allowed_image_types: str = "image/jpeg,image/png,image/webp"

    # Logging
    log_level: str = "INFO"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def allowed_image_type_set(self) -> set:
        return {t.strip() for t in self.allowed_image_types.split(",") if t.strip()}

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        timeout = os.getenv("DETECTION_TIMEOUT_SECONDS")
        return cls(
            detection_config=DetectionConfig.from_env(),
            crop_padding=int(os.getenv("CROP_PADDING", cls.crop_padding)),
            detection_max_workers=int(os.getenv("DETECTION_MAX_WORKERS", cls.detection_max_workers)),
            detection_timeout_seconds=float(timeout) if timeout else None,
            max_upload_size_mb=int(os.getenv("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb)),
            allowed_image_types=os.getenv("ALLOWED_IMAGE_TYPES", cls.allowed_image_types),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            environment=os.getenv("SHELFSPINE_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Dependencies (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    The vision backend is resolved on first access; init_services()
    touches it at startup so a missing OpenCV fails fast.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._backend: Optional[VisionBackend] = None
        self._pipeline: Optional[SpineDetectionPipeline] = None

    @property
    def backend(self) -> VisionBackend:
        if self._backend is None:
            self._backend = get_backend()
        return self._backend

    @property
    def pipeline(self) -> SpineDetectionPipeline:
        if self._pipeline is None:
            self._pipeline = SpineDetectionPipeline(
                backend=self.backend,
                crop_padding=self.settings.crop_padding,
            )
            logger.info(f"Spine detection pipeline ready (crop padding {self.settings.crop_padding}px)")
        return self._pipeline


_container: Optional[ServiceContainer] = None


def init_services(settings: Settings) -> ServiceContainer:
    """Create the service container and load the vision backend."""
    global _container
    _container = ServiceContainer(settings)
    _ = _container.backend
    return _container


def get_service_container() -> ServiceContainer:
    """Get the service container, creating it on first use."""
    global _container
    if _container is None:
        _container = ServiceContainer(get_settings())
    return _container


def get_pipeline() -> SpineDetectionPipeline:
    """Dependency that provides the detection pipeline."""
    return get_service_container().pipeline
