"""API middleware components."""

from src.api.middleware.error_handler import (
    APIError,
    error_handler_middleware,
    validation_exception_handler,
)
from src.api.middleware.logging import LoggingMiddleware

__all__ = [
    "APIError",
    "LoggingMiddleware",
    "error_handler_middleware",
    "validation_exception_handler",
]
