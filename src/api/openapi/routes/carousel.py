"""Carousel endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Request, status

from src.api.dependencies import AdminDep, CarouselServiceDep, SettingsDep
from src.api.openapi.routes.assets import request_origin
from src.application.dtos.catalog import (
    CarouselCreateRequest,
    CarouselItemResponse,
    CarouselPageResponse,
    CarouselReorderRequest,
    CarouselUpdateRequest,
    MessageResponse,
)
from src.commons.settings.models import Settings
from src.domain.models.carousel import CarouselItem
from src.domain.value_objects import to_same_origin

router = APIRouter()


def _to_response(
    item: CarouselItem,
    request: Request,
    settings: Settings,
) -> CarouselItemResponse:
    """Render an item with image URLs the storefront can load same-origin."""
    origin = request_origin(request, settings.server.public_base_url)
    proxy_path = settings.server.api_prefix.rstrip("/") + settings.proxy.route
    image_url = to_same_origin(item.image_url, origin, proxy_path) or item.image_url
    full_image_url = (
        to_same_origin(item.full_image_url or item.image_url, origin, proxy_path)
        or image_url
    )
    return CarouselItemResponse(
        id=item.id,
        image_url=image_url,
        full_image_url=full_image_url,
        alt=item.alt,
        caption=item.caption,
        position=item.position,
    )


@router.post(
    "",
    response_model=CarouselItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a carousel item",
    dependencies=[AdminDep],
)
async def add_item(
    body: CarouselCreateRequest,
    request: Request,
    service: CarouselServiceDep,
    settings: SettingsDep,
) -> CarouselItemResponse:
    """Append an item at the end of the carousel."""
    item = await service.append(
        image_url=body.image_url,
        full_image_url=body.full_image_url,
        alt=body.alt,
        caption=body.caption,
    )
    return _to_response(item, request, settings)


@router.get(
    "",
    response_model=list[CarouselItemResponse] | CarouselPageResponse,
    summary="List carousel items",
    description=(
        "Items ordered by position. With `limit`, a page is returned "
        "together with the total count."
    ),
)
async def list_items(
    request: Request,
    service: CarouselServiceDep,
    settings: SettingsDep,
    limit: Annotated[int | None, Query(ge=0)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[CarouselItemResponse] | CarouselPageResponse:
    """List the carousel in display order."""
    if limit is None:
        items = await service.list_items()
        return [_to_response(item, request, settings) for item in items]

    page = await service.list_page(limit=limit, offset=offset)
    return CarouselPageResponse(
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        items=[_to_response(item, request, settings) for item in page.items],
    )


@router.post(
    "/reorder",
    response_model=list[CarouselItemResponse],
    summary="Reorder the carousel",
    description="The body must list every current item id exactly once.",
    dependencies=[AdminDep],
)
async def reorder_items(
    body: CarouselReorderRequest,
    request: Request,
    service: CarouselServiceDep,
    settings: SettingsDep,
) -> list[CarouselItemResponse]:
    """Apply a new display order."""
    items = await service.reorder(body.order)
    return [_to_response(item, request, settings) for item in items]


@router.patch(
    "/{item_id}",
    response_model=CarouselItemResponse,
    summary="Update a carousel item",
    dependencies=[AdminDep],
)
async def update_item(
    item_id: str,
    body: CarouselUpdateRequest,
    request: Request,
    service: CarouselServiceDep,
    settings: SettingsDep,
) -> CarouselItemResponse:
    """Change an item's image or texts."""
    item = await service.update(item_id, body.model_dump(exclude_unset=True))
    return _to_response(item, request, settings)


@router.delete(
    "/{item_id}",
    response_model=MessageResponse,
    summary="Delete a carousel item",
    description="Removes the item, closes the position gap and releases its image.",
    dependencies=[AdminDep],
)
async def delete_item(
    item_id: str,
    service: CarouselServiceDep,
) -> MessageResponse:
    """Remove an item from the carousel."""
    await service.delete(item_id)
    return MessageResponse(message="Carousel item deleted")
