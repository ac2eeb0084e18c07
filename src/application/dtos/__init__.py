"""Data Transfer Objects for application layer."""

from src.application.dtos.assets import UploadResponse
from src.application.dtos.catalog import (
    CarouselCreateRequest,
    CarouselItemResponse,
    CarouselPageResponse,
    CarouselReorderRequest,
    CarouselUpdateRequest,
    MessageResponse,
    ProductRequest,
    ProductResponse,
)

__all__ = [
    # Assets
    "UploadResponse",
    # Products
    "ProductRequest",
    "ProductResponse",
    # Carousel
    "CarouselCreateRequest",
    "CarouselUpdateRequest",
    "CarouselReorderRequest",
    "CarouselItemResponse",
    "CarouselPageResponse",
    "MessageResponse",
]
