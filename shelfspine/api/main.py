"""
ShelfSpine API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI
from loguru import logger

from shelfspine import __version__
from shelfspine.errors import BackendUnavailable
from shelfspine.logging_config import configure_logging

from .schemas import HealthResponse
from .routes import detection
from .middleware import setup_exception_handlers
from .dependencies import (
    get_settings,
    get_service_container,
    init_services,
    Settings,
)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Loads the vision backend at startup so a missing OpenCV stops the
    server instead of failing the first request.
    """
    settings = get_settings()
    logger.info(f"Starting ShelfSpine in {settings.environment} mode")

    try:
        services = init_services(settings)
        app.state.services = services
        app.state.settings = settings

        logger.info("ShelfSpine started successfully")

        yield

    finally:
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="ShelfSpine",
        description="Bookshelf spine-region detection.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    api_prefix = "/api/v1"
    app.include_router(detection.router, prefix=api_prefix)

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "ShelfSpine",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check() -> HealthResponse:
        """Health check endpoint reporting the vision backend."""
        components = {}
        healthy = True

        try:
            backend = get_service_container().backend
            components["vision_backend"] = f"{backend.name} {getattr(backend, 'version', '')}".strip()
            components["clahe"] = "available" if backend.clahe_available else "fallback"
        except BackendUnavailable as e:
            components["vision_backend"] = f"unavailable: {e.detail}"
            healthy = False

        return HealthResponse(
            status="healthy" if healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shelfspine.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
