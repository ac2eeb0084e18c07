"""Application services for asset storage, delivery and the catalog."""

from src.application.services.carousel import CarouselPage, CarouselService
from src.application.services.download import AssetDownload, DownloadService
from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.application.services.products import ProductService
from src.application.services.proxy import ImageProxyService, ProxiedImage
from src.application.services.sweep import OrphanBlobSweeper, SweepReport
from src.application.services.upload import UploadResult, UploadService

__all__ = [
    "AssetDownload",
    "AssetLifecycleCoordinator",
    "CarouselPage",
    "CarouselService",
    "DownloadService",
    "ImageProxyService",
    "ProductService",
    "OrphanBlobSweeper",
    "ProxiedImage",
    "SweepReport",
    "UploadResult",
    "UploadService",
]
