"""Domain layer - catalog entities, asset names and errors."""

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
from src.domain.models import CarouselItem, Product
from src.domain.value_objects import extract_logical_name, generate_logical_name

__all__ = [
    # Exceptions
    "DomainException",
    "InvalidInputException",
    "MissingUploadError",
    "InvalidMediaTypeError",
    "PayloadTooLargeError",
    "InvalidProxyUrlError",
    "InvalidOrderError",
    "InvalidEntityIdError",
    "InvalidEntityError",
    "NotFoundException",
    "AssetNotFoundError",
    "ProductNotFoundError",
    "CarouselItemNotFoundError",
    "UnsupportedMediaTypeError",
    "UnavailableException",
    "StorageUnavailableError",
    "UpstreamException",
    "UpstreamTimeoutError",
    "BadGatewayError",
    "AssetStorageError",
    # Models
    "CarouselItem",
    "Product",
    # Value objects
    "extract_logical_name",
    "generate_logical_name",
]
