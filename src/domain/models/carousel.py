"""Carousel item domain model."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class CarouselItem(BaseModel):
    """An image shown in the storefront carousel.

    ``position`` is zero-based. Across the whole collection the positions
    form the range ``0..n-1`` between mutations.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Internal UUID for this item",
    )
    image_url: str = Field(min_length=1, description="URL of the displayed image")
    full_image_url: str | None = Field(
        default=None,
        description="URL of the full-size image, if different",
    )
    alt: str | None = Field(default=None, description="Alternative text")
    caption: str | None = Field(default=None, description="Caption text")
    position: int = Field(default=0, ge=0, description="Zero-based display position")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When this item was created",
    )
