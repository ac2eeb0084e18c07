"""Error handling middleware and exception handlers."""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from src.commons.infrastructure.blob.base import BlobNotFoundError, BlobStoreNotReadyError
from src.commons.telemetry.logger import get_logger
from src.domain.exceptions import (
    AssetNotFoundError,
    AssetStorageError,
    BadGatewayError,
    CarouselItemNotFoundError,
    DomainException,
    InvalidEntityError,
    InvalidEntityIdError,
    InvalidInputException,
    InvalidMediaTypeError,
    InvalidOrderError,
    InvalidProxyUrlError,
    MissingUploadError,
    NotFoundException,
    PayloadTooLargeError,
    ProductNotFoundError,
    StorageUnavailableError,
    UnavailableException,
    UnsupportedMediaTypeError,
    UpstreamException,
    UpstreamTimeoutError,
)

logger = get_logger(__name__)


class APIError(Exception):
    """Base API error with code and details."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            code: Error code for clients.
            message: Human-readable error message.
            status_code: HTTP status code.
            details: Additional error details.
        """
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Each domain error kind maps to one status; first match wins
_STATUS_BY_KIND: list[tuple[type[DomainException], int]] = [
    (InvalidInputException, status.HTTP_400_BAD_REQUEST),
    (NotFoundException, status.HTTP_404_NOT_FOUND),
    (UnsupportedMediaTypeError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
    (UnavailableException, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamException, status.HTTP_502_BAD_GATEWAY),
    (AssetStorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]

_CODES: dict[type[DomainException], str] = {
    MissingUploadError: "MISSING_FILE",
    InvalidMediaTypeError: "INVALID_MEDIA_TYPE",
    PayloadTooLargeError: "PAYLOAD_TOO_LARGE",
    InvalidProxyUrlError: "INVALID_URL",
    InvalidOrderError: "INVALID_ORDER",
    InvalidEntityIdError: "INVALID_ID",
    InvalidEntityError: "VALIDATION_ERROR",
    AssetNotFoundError: "FILE_NOT_FOUND",
    ProductNotFoundError: "PRODUCT_NOT_FOUND",
    CarouselItemNotFoundError: "CAROUSEL_ITEM_NOT_FOUND",
    UnsupportedMediaTypeError: "UNSUPPORTED_MEDIA_TYPE",
    StorageUnavailableError: "STORAGE_UNAVAILABLE",
    UpstreamTimeoutError: "UPSTREAM_TIMEOUT",
    BadGatewayError: "BAD_GATEWAY",
    AssetStorageError: "STORAGE_ERROR",
}

# Exception attributes safe to echo back to clients
_DETAIL_ATTRIBUTES = (
    "field",
    "media_type",
    "max_bytes",
    "received_bytes",
    "url",
    "missing",
    "unknown",
    "duplicates",
    "entity_id",
    "logical_name",
    "product_id",
    "item_id",
    "content_type",
    "timeout_seconds",
)


def _build_error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build standardized error response.

    Args:
        request: HTTP request.
        code: Error code.
        message: Error message.
        status_code: HTTP status code.
        details: Additional details.

    Returns:
        JSON error response.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
            }
        },
        headers={"X-Request-ID": request_id},
    )


def _domain_details(exc: DomainException) -> dict[str, Any]:
    return {
        name: getattr(exc, name)
        for name in _DETAIL_ATTRIBUTES
        if getattr(exc, name, None) not in (None, [], "")
    }


def _handle_domain_exception(request: Request, exc: DomainException) -> JSONResponse:
    status_code = next(
        (code for kind, code in _STATUS_BY_KIND if isinstance(exc, kind)),
        status.HTTP_400_BAD_REQUEST,
    )
    code = next(
        (value for kind, value in _CODES.items() if isinstance(exc, kind)),
        "DOMAIN_ERROR",
    )

    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            f"Domain error: {code}",
            exc_info=exc,
            extra={"error_code": code},
        )
    else:
        logger.warning(f"Domain error: {exc}", extra={"error_code": code})

    message = str(exc)
    details = _domain_details(exc)
    if isinstance(exc, AssetStorageError):
        # Backend failure text stays in the logs
        message = "The file could not be stored"
        details = {"logical_name": exc.logical_name}

    return _build_error_response(
        request=request,
        code=code,
        message=message,
        status_code=status_code,
        details=details,
    )


def _handle_exception(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle exception and return appropriate error response.

    Args:
        request: HTTP request.
        exc: Exception to handle.

    Returns:
        JSON error response.
    """
    if isinstance(exc, APIError):
        logger.warning(
            f"API error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "details": exc.details,
            },
        )
        return _build_error_response(
            request=request,
            code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details,
        )

    if isinstance(exc, DomainException):
        return _handle_domain_exception(request, exc)

    if isinstance(exc, BlobNotFoundError):
        logger.warning(f"Blob not found: {exc}")
        return _build_error_response(
            request=request,
            code="FILE_NOT_FOUND",
            message=str(exc),
            status_code=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, BlobStoreNotReadyError):
        logger.warning(f"Blob store not ready: {exc}")
        return _build_error_response(
            request=request,
            code="STORAGE_UNAVAILABLE",
            message=str(exc),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Catch-all for unexpected errors
    logger.exception(f"Unexpected error: {exc}")
    return _build_error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Report request validation failures as 400 VALIDATION_ERROR."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    fields = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in errors
    ]
    logger.warning("Request validation failed", extra={"errors": fields})
    return _build_error_response(
        request=request,
        code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"errors": fields},
    )


async def error_handler_middleware(
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Middleware to catch and format all exceptions.

    Args:
        request: HTTP request.
        call_next: Next handler in chain.

    Returns:
        HTTP response.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return _handle_exception(request, exc)
