"""Blob download pipeline."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from src.commons.infrastructure.blob.base import (
    DEFAULT_CONTENT_TYPE,
    BlobNotFoundError,
    BlobReader,
    BlobRecord,
    BlobStoreBase,
    BlobStoreNotReadyError,
)
from src.commons.settings.models import DeliverySettings
from src.commons.telemetry import get_logger
from src.domain.exceptions import AssetNotFoundError, StorageUnavailableError

logger = get_logger(__name__)


def _check_name(logical_name: str) -> None:
    # Names never contain path separators
    if not logical_name or "/" in logical_name:
        raise AssetNotFoundError(logical_name)


@dataclass
class AssetDownload:
    """An opened blob, ready to be streamed to a client.

    ``body()`` closes the reader when iteration ends, fails or is abandoned;
    ``aclose()`` is safe to call again afterwards.
    """

    record: BlobRecord
    headers: dict[str, str]
    reader: BlobReader
    _closed: bool = field(default=False, repr=False)

    @property
    def media_type(self) -> str:
        return self.headers["Content-Type"]

    async def body(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.reader:
                yield chunk
        except Exception:
            # Headers are already on the wire; the connection gets cut
            logger.exception(
                "Blob stream failed mid-transfer",
                extra={
                    "logical_name": self.record.logical_name,
                    "blob_id": self.record.id,
                },
            )
            raise
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self.reader.aclose()


class DownloadService:
    """Resolves logical names to blob streams with delivery headers."""

    def __init__(
        self,
        blob_storage: BlobStoreBase,
        settings: DeliverySettings,
    ) -> None:
        self._blob = blob_storage
        self._settings = settings

    def headers_for(self, record: BlobRecord) -> dict[str, str]:
        """Response headers for a stored blob.

        The content type is the one recorded at upload, never guessed from
        the file extension.
        """
        return {
            "Content-Type": record.mime_type or DEFAULT_CONTENT_TYPE,
            "Content-Length": str(record.size_bytes),
            "Cache-Control": f"public, max-age={self._settings.cache_max_age_seconds}",
            "ETag": f'"{record.id}"',
        }

    async def stat(self, logical_name: str) -> BlobRecord:
        """Look up blob metadata.

        Raises:
            AssetNotFoundError: No blob has this name.
            StorageUnavailableError: Blob store not initialized.
        """
        _check_name(logical_name)
        try:
            return await self._blob.find_metadata(logical_name)
        except BlobNotFoundError as e:
            raise AssetNotFoundError(logical_name) from e
        except BlobStoreNotReadyError as e:
            raise StorageUnavailableError(e.backend) from e

    async def open(self, logical_name: str) -> AssetDownload:
        """Open a blob for streaming.

        Raises:
            AssetNotFoundError: No blob has this name.
            StorageUnavailableError: Blob store not initialized.
        """
        _check_name(logical_name)
        try:
            reader = await self._blob.open_read(
                logical_name, chunk_size=self._settings.chunk_size_bytes
            )
        except BlobNotFoundError as e:
            raise AssetNotFoundError(logical_name) from e
        except BlobStoreNotReadyError as e:
            raise StorageUnavailableError(e.backend) from e

        logger.debug(
            "Serving blob",
            extra={
                "logical_name": logical_name,
                "size_bytes": reader.record.size_bytes,
            },
        )
        return AssetDownload(
            record=reader.record,
            headers=self.headers_for(reader.record),
            reader=reader,
        )
