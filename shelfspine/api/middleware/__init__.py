"""
API middleware components.

Provides cross-cutting concerns for the API:
- Error handling
"""

from .error_handler import (
    InvalidRequestError,
    setup_exception_handlers,
    create_error_response,
)


__all__ = [
    "InvalidRequestError",
    "setup_exception_handlers",
    "create_error_response",
]
