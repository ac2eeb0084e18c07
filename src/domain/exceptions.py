"""Domain exceptions for the catalog asset server.

Exceptions are grouped by the kind of failure they represent. The API layer
maps each group to one HTTP status, so new errors should subclass the group
that matches how a caller is expected to react.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base exception for domain errors."""


# =============================================================================
# Invalid input (400)
# =============================================================================


class InvalidInputException(DomainException):
    """Raised when a caller supplied malformed or missing input."""


class MissingUploadError(InvalidInputException):
    """Raised when an upload request carries no file."""

    def __init__(self, field: str = "image") -> None:
        self.field = field
        super().__init__(f"No file was sent in field '{field}'")


class InvalidMediaTypeError(InvalidInputException):
    """Raised when an upload's declared media type is not accepted."""

    def __init__(self, media_type: str | None) -> None:
        self.media_type = media_type or ""
        super().__init__(f"Media type not accepted: '{self.media_type}'")


class PayloadTooLargeError(InvalidInputException):
    """Raised when an upload exceeds the configured size ceiling."""

    def __init__(self, max_bytes: int, received_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes
        self.received_bytes = received_bytes
        super().__init__(f"Payload exceeds the limit of {max_bytes} bytes")


class InvalidProxyUrlError(InvalidInputException):
    """Raised when a URL handed to the image proxy is unusable."""

    def __init__(self, url: str, reason: str = "Invalid URL") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid proxy URL '{url}': {reason}")


class InvalidOrderError(InvalidInputException):
    """Raised when a reorder payload is not a permutation of the current ids."""

    def __init__(
        self,
        reason: str,
        *,
        missing: list[str] | None = None,
        unknown: list[str] | None = None,
        duplicates: list[str] | None = None,
    ) -> None:
        self.reason = reason
        self.missing = missing or []
        self.unknown = unknown or []
        self.duplicates = duplicates or []
        super().__init__(f"Invalid order: {reason}")


class InvalidEntityIdError(InvalidInputException):
    """Raised when an entity id is not in a resolvable format."""

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"Invalid id: '{entity_id}'")


class InvalidEntityError(InvalidInputException):
    """Raised when entity fields fail domain validation."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason}")


# =============================================================================
# Not found (404)
# =============================================================================


class NotFoundException(DomainException):
    """Raised when a requested resource does not exist."""


class AssetNotFoundError(NotFoundException):
    """Raised when no blob exists under a logical name."""

    def __init__(self, logical_name: str) -> None:
        self.logical_name = logical_name
        super().__init__(f"Asset not found: {logical_name}")


class ProductNotFoundError(NotFoundException):
    """Raised when a product id does not resolve."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class CarouselItemNotFoundError(NotFoundException):
    """Raised when a carousel item id does not resolve."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Carousel item not found: {item_id}")


# =============================================================================
# Unsupported media (415)
# =============================================================================


class UnsupportedMediaTypeError(DomainException):
    """Raised when an upstream resource is not an image."""

    def __init__(self, url: str, content_type: str | None) -> None:
        self.url = url
        self.content_type = content_type or ""
        super().__init__(
            f"Upstream content type '{self.content_type}' is not an image"
        )


# =============================================================================
# Unavailable (503)
# =============================================================================


class UnavailableException(DomainException):
    """Raised when a dependency is not ready yet. Callers may retry."""


class StorageUnavailableError(UnavailableException):
    """Raised when the blob store has not finished initializing."""

    def __init__(self, backend: str = "blob store") -> None:
        self.backend = backend
        super().__init__(f"{backend} is not ready")


# =============================================================================
# Upstream failure (502)
# =============================================================================


class UpstreamException(DomainException):
    """Raised when an outbound fetch fails."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Upstream fetch failed for '{url}': {reason}")


class UpstreamTimeoutError(UpstreamException):
    """Raised when an outbound fetch exceeds its timeout."""

    def __init__(self, url: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(url, f"timed out after {timeout_seconds:g}s")


class BadGatewayError(UpstreamException):
    """Raised on network errors or error statuses from the upstream."""


# =============================================================================
# Internal failure (500)
# =============================================================================


class AssetStorageError(DomainException):
    """Raised when the blob store fails unexpectedly during a write."""

    def __init__(self, logical_name: str, reason: str) -> None:
        self.logical_name = logical_name
        self.reason = reason
        super().__init__(f"Failed to store asset {logical_name}: {reason}")
