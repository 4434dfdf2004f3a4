"""
ShelfSpine - FastAPI Backend.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_pipeline,
    get_service_container,
    ServiceContainer,
)
from .schemas import (
    DetectionConfigSchema,
    DetectionResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_pipeline",
    "get_service_container",
    "ServiceContainer",
    # Schemas
    "DetectionConfigSchema",
    "DetectionResponse",
    "HealthResponse",
    "ErrorResponse",
]
