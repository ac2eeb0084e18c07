"""Domain models."""

from src.domain.models.carousel import CarouselItem
from src.domain.models.product import Product

__all__ = [
    "CarouselItem",
    "Product",
]
