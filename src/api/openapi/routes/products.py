"""Product catalog endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.api.dependencies import AdminDep, ProductServiceDep
from src.application.dtos.catalog import (
    MessageResponse,
    ProductRequest,
    ProductResponse,
)
from src.domain.models.product import Product

router = APIRouter()


def _to_response(product: Product) -> ProductResponse:
    return ProductResponse.model_validate(product.model_dump())


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
    dependencies=[AdminDep],
)
async def create_product(
    body: ProductRequest,
    service: ProductServiceDep,
) -> ProductResponse:
    """Create a catalog product."""
    product = await service.create(
        name=body.name,
        description=body.description,
        price=body.price,
        image_url=body.image_url,
        is_new_release=body.is_new_release,
    )
    return _to_response(product)


@router.get(
    "",
    response_model=list[ProductResponse],
    summary="List products",
    description="Newest first. Filter with `is_new_release`.",
)
async def list_products(
    service: ProductServiceDep,
    is_new_release: Annotated[bool | None, Query()] = None,
) -> list[ProductResponse]:
    """List catalog products."""
    products = await service.list_products(is_new_release=is_new_release)
    return [_to_response(p) for p in products]


@router.get(
    "/new-releases",
    response_model=list[ProductResponse],
    summary="List new releases",
)
async def list_new_releases(service: ProductServiceDep) -> list[ProductResponse]:
    """List products flagged as new releases."""
    return [_to_response(p) for p in await service.list_new_releases()]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get a product",
)
async def get_product(
    product_id: str,
    service: ProductServiceDep,
) -> ProductResponse:
    """Fetch one product."""
    return _to_response(await service.get(product_id))


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Replaces the editable fields. A replaced image is released.",
    dependencies=[AdminDep],
)
async def update_product(
    product_id: str,
    body: ProductRequest,
    service: ProductServiceDep,
) -> ProductResponse:
    """Replace a product's editable fields."""
    product = await service.update(
        product_id,
        name=body.name,
        description=body.description,
        price=body.price,
        image_url=body.image_url,
        is_new_release=body.is_new_release,
    )
    return _to_response(product)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete a product",
    dependencies=[AdminDep],
)
async def delete_product(
    product_id: str,
    service: ProductServiceDep,
) -> MessageResponse:
    """Delete a product and release its image."""
    await service.delete(product_id)
    return MessageResponse(message="Product deleted")
