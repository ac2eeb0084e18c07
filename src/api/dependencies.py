"""FastAPI dependency injection for services and settings."""

import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, status

from src.api.middleware.error_handler import APIError
from src.application.services.carousel import CarouselService
from src.application.services.download import DownloadService
from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.application.services.products import ProductService
from src.application.services.proxy import ImageProxyService
from src.application.services.upload import UploadService
from src.commons.infrastructure.blob.base import BlobStoreBase
from src.commons.settings.loader import get_settings as _load_settings
from src.commons.settings.models import Settings
from src.commons.telemetry import get_logger
from src.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)

logger = get_logger(__name__)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings loaded from config files and environment.
    """
    return _load_settings()


def get_infrastructure_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InfrastructureFactory:
    """Get infrastructure factory with all providers."""
    return get_factory(settings)


def get_blob_storage(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> BlobStoreBase:
    """Get the shared blob store."""
    return factory.get_blob_storage()


def get_lifecycle_coordinator(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AssetLifecycleCoordinator:
    """Get the coordinator that releases unreferenced blobs."""
    return AssetLifecycleCoordinator(
        blob_storage=factory.get_blob_storage(),
        proxy_route=settings.proxy.route,
    )


def get_upload_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadService:
    """Get upload service writing into the configured blob store."""
    return UploadService(
        blob_storage=factory.get_blob_storage(),
        settings=settings.upload,
        route_prefix=settings.server.api_prefix.rstrip("/") + settings.upload.asset_route,
    )


def get_download_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DownloadService:
    """Get download service reading from the configured blob store."""
    return DownloadService(
        blob_storage=factory.get_blob_storage(),
        settings=settings.delivery,
    )


def get_proxy_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImageProxyService:
    """Get image proxy service sharing one outbound HTTP client."""
    return ImageProxyService(
        client=factory.get_http_client(),
        settings=settings.proxy,
    )


class _CarouselHolder:
    """Holds the one carousel service whose lock serializes all mutations."""

    instance: CarouselService | None = None


def get_carousel_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    coordinator: Annotated[
        AssetLifecycleCoordinator, Depends(get_lifecycle_coordinator)
    ],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CarouselService:
    """Get the process-wide carousel service."""
    if _CarouselHolder.instance is None:
        _CarouselHolder.instance = CarouselService(
            document_db=factory.get_document_db(),
            coordinator=coordinator,
            collection=settings.document_db.collections.carousel,
        )
    return _CarouselHolder.instance


def get_product_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
    coordinator: Annotated[
        AssetLifecycleCoordinator, Depends(get_lifecycle_coordinator)
    ],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ProductService:
    """Get product service."""
    return ProductService(
        document_db=factory.get_document_db(),
        coordinator=coordinator,
        collection=settings.document_db.collections.products,
    )


def require_admin(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Allow the request only with the configured bearer token.

    With no token configured every request passes.

    Raises:
        APIError: 401 when the token is missing or wrong.
    """
    expected = settings.auth.api_token
    if not expected:
        return

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip().encode(), expected.encode()
    ):
        raise APIError(
            code="UNAUTHORIZED",
            message="A valid bearer token is required",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
FactoryDep = Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)]
BlobStorageDep = Annotated[BlobStoreBase, Depends(get_blob_storage)]
UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]
DownloadServiceDep = Annotated[DownloadService, Depends(get_download_service)]
ProxyServiceDep = Annotated[ImageProxyService, Depends(get_proxy_service)]
CarouselServiceDep = Annotated[CarouselService, Depends(get_carousel_service)]
ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
AdminDep = Depends(require_admin)


async def init_services(settings: Settings) -> None:
    """Initialize all infrastructure services on startup.

    A blob store that cannot connect is left not ready: uploads and
    downloads answer 503 until the readiness check reconnects it.

    Args:
        settings: Application settings.
    """
    factory = get_factory(settings)

    document_db = factory.get_document_db()
    blob_storage = factory.get_blob_storage()
    factory.get_http_client()

    try:
        await blob_storage.connect()
    except Exception:
        logger.exception(
            "Blob store connection failed",
            extra={"provider": settings.blob_storage.provider},
        )

    collections = settings.document_db.collections
    try:
        await document_db.create_index(
            collections.carousel, [("position", 1)], name="position_idx"
        )
        await document_db.create_index(
            collections.products, [("created_at", -1)], name="created_at_idx"
        )
    except Exception:
        logger.warning("Could not create document indexes", exc_info=True)


async def shutdown_services() -> None:
    """Shutdown all infrastructure services."""
    try:
        factory = get_factory()
        await factory.close_all()
    except ValueError:
        pass  # Factory not initialized
    finally:
        reset_factory()
        _CarouselHolder.instance = None
        get_settings.cache_clear()
