"""Catalog product domain model."""

from datetime import UTC, datetime
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field


class Product(BaseModel):
    """A catalog product.

    The product never holds image bytes; ``image_url`` is a delivery URL
    whose last path segment is the logical name of a stored blob (or an
    external URL that does not correspond to any local blob).
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Internal UUID for this product",
    )
    name: str = Field(min_length=1, description="Product name")
    description: str = Field(min_length=1, description="Product description")
    price: str = Field(
        default="",
        description="Free-form price text, may be empty",
    )
    image_url: str = Field(min_length=1, description="URL of the product image")
    is_new_release: bool = Field(
        default=False,
        description="Whether the product is listed among new releases",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When this product was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Last update timestamp",
    )

    def with_changes(
        self,
        *,
        name: str,
        description: str,
        price: str,
        image_url: str,
        is_new_release: bool,
    ) -> Self:
        """Create a new instance with replaced editable fields."""
        return self.model_copy(
            update={
                "name": name,
                "description": description,
                "price": price,
                "image_url": image_url,
                "is_new_release": is_new_release,
                "updated_at": datetime.now(UTC),
            }
        )
