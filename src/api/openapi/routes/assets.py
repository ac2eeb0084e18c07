"""Image upload and file delivery endpoints."""

from typing import Annotated

from fastapi import APIRouter, File, Request, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from src.api.dependencies import DownloadServiceDep, SettingsDep, UploadServiceDep
from src.application.dtos.assets import UploadResponse

router = APIRouter()


def request_origin(request: Request, public_base_url: str = "") -> str:
    """Origin used to build absolute URLs for this request."""
    if public_base_url:
        return public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


@router.post(
    "/upload",
    response_model=UploadResponse,
    response_model_by_alias=True,
    summary="Upload an image",
    description=(
        "Store an image sent as the multipart field `image` and return the "
        "URL it is served from."
    ),
)
async def upload_image(
    request: Request,
    service: UploadServiceDep,
    settings: SettingsDep,
    image: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    """Validate and store an uploaded image."""
    try:
        result = await service.upload(
            image,
            media_type=image.content_type if image else None,
            original_filename=image.filename if image else None,
            declared_size=image.size if image else None,
            base_url=request_origin(request, settings.server.public_base_url),
        )
    finally:
        if image is not None:
            await image.close()

    return UploadResponse(
        image_url=result.image_url,
        filename=result.logical_name,
        size_bytes=result.size_bytes,
        mime_type=result.mime_type,
    )


@router.get(
    "/files/{logical_name}",
    summary="Download a stored file",
    description="Stream a stored blob with its recorded content type.",
    response_class=StreamingResponse,
)
async def download_file(
    logical_name: str,
    service: DownloadServiceDep,
) -> StreamingResponse:
    """Stream a stored blob to the client."""
    download = await service.open(logical_name)
    return StreamingResponse(
        download.body(),
        media_type=download.media_type,
        headers=download.headers,
        background=BackgroundTask(download.aclose),
    )


@router.head(
    "/files/{logical_name}",
    summary="Check a stored file",
    description="Delivery headers of a stored blob, without the body.",
)
async def file_headers(
    logical_name: str,
    service: DownloadServiceDep,
) -> Response:
    """Answer with the headers a download would carry."""
    record = await service.stat(logical_name)
    return Response(status_code=status.HTTP_200_OK, headers=service.headers_for(record))
