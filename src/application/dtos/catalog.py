"""DTOs for products and carousel items.

JSON bodies use camelCase keys (``imageUrl``); snake_case is accepted too.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for DTOs exchanged with the storefront."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Products
# =============================================================================


class ProductRequest(CamelModel):
    """Body of product create and update requests."""

    name: str = Field(min_length=1, description="Product name")
    description: str = Field(min_length=1, description="Product description")
    price: str | float | int | None = Field(
        default=None,
        description="Price as shown to customers; stored as text",
    )
    image_url: str = Field(min_length=1, description="Image URL")
    is_new_release: bool = Field(
        default=False,
        description="List the product among new releases",
    )


class ProductResponse(CamelModel):
    """A product as returned by the API."""

    id: str
    name: str
    description: str
    price: str
    image_url: str
    is_new_release: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Carousel
# =============================================================================


class CarouselCreateRequest(CamelModel):
    """Body of a carousel append request."""

    image_url: str = Field(min_length=1, description="Image URL")
    full_image_url: str | None = Field(
        default=None,
        description="Full-size image URL; defaults to image_url",
    )
    alt: str | None = Field(default=None, description="Alternative text")
    caption: str | None = Field(default=None, description="Caption text")


class CarouselUpdateRequest(CamelModel):
    """Body of a carousel update. Omitted fields are left unchanged."""

    image_url: str | None = Field(default=None, min_length=1)
    full_image_url: str | None = None
    alt: str | None = None
    caption: str | None = None


class CarouselReorderRequest(CamelModel):
    """New carousel order: every item id, exactly once."""

    order: list[str] = Field(description="Item ids in display order")


class CarouselItemResponse(CamelModel):
    """A carousel item with delivery-ready image URLs."""

    id: str
    image_url: str
    full_image_url: str
    alt: str | None = None
    caption: str | None = None
    position: int


class CarouselPageResponse(CamelModel):
    """Paginated carousel listing."""

    total: int
    limit: int
    offset: int
    items: list[CarouselItemResponse]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
