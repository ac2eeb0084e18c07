"""Releases blobs that entity records no longer reference."""

from src.commons.infrastructure.blob.base import BlobStoreBase
from src.commons.telemetry import get_logger
from src.domain.value_objects.asset_name import extract_logical_name


class AssetLifecycleCoordinator:
    """Deletes the blob behind an image URL once nothing points at it.

    Cleanup is best effort. A failed delete is logged and swallowed so that
    the entity write that triggered it is never blocked or rolled back;
    ``scripts/sweep_orphan_blobs.py`` collects whatever leaks.
    """

    def __init__(
        self,
        blob_storage: BlobStoreBase,
        proxy_route: str = "/image-proxy",
    ) -> None:
        self._blob = blob_storage
        self._proxy_route = proxy_route
        self._logger = get_logger(__name__)

    async def on_reference_replaced(
        self,
        old_url: str | None,
        new_url: str | None,
    ) -> bool:
        """Release the old image after an entity switched to a new one.

        Returns:
            True if a blob was deleted.
        """
        if not old_url or old_url == new_url:
            return False
        old_name = extract_logical_name(old_url, self._proxy_route)
        if old_name is None:
            return False
        if old_name == extract_logical_name(new_url, self._proxy_route):
            return False
        return await self._release(old_name, reason="replaced")

    async def on_entity_deleted(self, image_url: str | None) -> bool:
        """Release the image of a deleted entity.

        Returns:
            True if a blob was deleted.
        """
        name = extract_logical_name(image_url, self._proxy_route)
        if name is None:
            return False
        return await self._release(name, reason="entity_deleted")

    async def _release(self, logical_name: str, reason: str) -> bool:
        try:
            removed = await self._blob.delete_by_name(logical_name)
        except Exception as e:
            self._logger.warning(
                "Failed to release blob",
                exc_info=True,
                extra={
                    "logical_name": logical_name,
                    "reason": reason,
                    "error": str(e),
                },
            )
            return False

        if removed:
            self._logger.info(
                "Released blob",
                extra={"logical_name": logical_name, "reason": reason},
            )
        else:
            self._logger.debug(
                "No blob to release",
                extra={"logical_name": logical_name, "reason": reason},
            )
        return removed
