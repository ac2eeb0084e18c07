"""Same-origin image proxy endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from src.api.dependencies import ProxyServiceDep

router = APIRouter()


@router.get(
    "/image-proxy",
    summary="Proxy a remote image",
    description=(
        "Fetch an http(s) image and serve it from this origin. Non-image "
        "responses are refused with 415; upstream failures answer 502."
    ),
    response_class=StreamingResponse,
)
async def proxy_image(
    service: ProxyServiceDep,
    url: Annotated[str | None, Query(description="Absolute image URL")] = None,
) -> StreamingResponse:
    """Stream a remote image through this server."""
    image = await service.fetch(url)
    return StreamingResponse(
        image.body(),
        media_type=image.content_type,
        headers=image.headers,
        background=BackgroundTask(image.aclose),
    )
