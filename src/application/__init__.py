"""Application layer - use cases and orchestration.

This layer contains:
- Services: asset upload/download, image proxy, lifecycle cleanup, catalog
- DTOs: Data transfer objects for API boundaries
"""

from src.application.services import (
    AssetLifecycleCoordinator,
    CarouselService,
    DownloadService,
    ImageProxyService,
    ProductService,
    UploadService,
)

__all__ = [
    "AssetLifecycleCoordinator",
    "CarouselService",
    "DownloadService",
    "ImageProxyService",
    "ProductService",
    "UploadService",
]
