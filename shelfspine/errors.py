"""
Error kinds for ShelfSpine.

Every failure the detection pipeline can surface derives from
ShelfSpineError, which carries an error code and an HTTP status so the
API layer can translate it without knowing the concrete type.
"""

from typing import Optional


class ShelfSpineError(Exception):
    """Base exception for ShelfSpine errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class DecodeError(ShelfSpineError):
    """Input bytes are not a supported image format."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            message="Could not decode image",
            code="DECODE_ERROR",
            status_code=400,
            detail=detail,
        )


class BackendUnavailable(ShelfSpineError):
    """The native vision backend failed to initialize."""

    def __init__(self, backend: str, detail: Optional[str] = None):
        super().__init__(
            message=f"{backend} vision backend unavailable",
            code="BACKEND_UNAVAILABLE",
            status_code=503,
            detail=detail,
        )


class MalformedConfigError(ShelfSpineError):
    """A detection config value could not be interpreted as a number."""

    def __init__(self, field: str, value):
        super().__init__(
            message=f"Invalid value for {field}",
            code="MALFORMED_CONFIG",
            status_code=400,
            detail=f"Expected a number for '{field}', got {value!r}",
        )


class DetectionError(ShelfSpineError):
    """A pipeline stage failed; the whole detection call is aborted."""

    def __init__(self, state: str, detail: Optional[str] = None):
        self.state = state
        super().__init__(
            message=f"Spine detection failed after state '{state}'",
            code="DETECTION_FAILED",
            status_code=500,
            detail=detail,
        )
