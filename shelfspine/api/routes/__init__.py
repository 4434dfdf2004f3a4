"""
API Routes for ShelfSpine

Route modules:
- detection: Image upload and spine detection
"""

from shelfspine.api.routes.detection import router as detection_router

__all__ = [
    "detection_router",
]
