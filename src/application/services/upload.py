"""Image upload pipeline: validate, name and stream into the blob store."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from src.commons.infrastructure.blob.base import BlobStoreBase, BlobStoreNotReadyError
from src.commons.settings.models import UploadSettings
from src.commons.telemetry import get_logger, timed
from src.domain.exceptions import (
    AssetStorageError,
    DomainException,
    InvalidMediaTypeError,
    MissingUploadError,
    PayloadTooLargeError,
    StorageUnavailableError,
)
from src.domain.value_objects.asset_name import generate_logical_name


class AsyncReadable(Protocol):
    """Anything with an awaitable ``read(size)``, e.g. FastAPI's ``UploadFile``."""

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a stored upload."""

    logical_name: str
    image_url: str
    size_bytes: int
    mime_type: str


class UploadService:
    """Validates uploads and streams them into the blob store.

    Each successful call leaves exactly one new blob behind; a rejected or
    failed upload leaves none.
    """

    def __init__(
        self,
        blob_storage: BlobStoreBase,
        settings: UploadSettings,
        route_prefix: str = "/api/files",
        accepts: Callable[[str], bool] | None = None,
    ) -> None:
        """Initialize upload service.

        Args:
            blob_storage: Blob store to write into.
            settings: Upload limits and naming configuration.
            route_prefix: Path under which stored assets are downloadable.
            accepts: Predicate on the declared media type. Defaults to a
                prefix check against ``settings.accepted_type_prefix``.
        """
        self._blob = blob_storage
        self._settings = settings
        self._route_prefix = "/" + route_prefix.strip("/")
        self._accepts = accepts or self._has_accepted_prefix
        self._logger = get_logger(__name__)

    @property
    def max_bytes(self) -> int:
        """Size ceiling in bytes."""
        return self._settings.max_bytes

    def _has_accepted_prefix(self, media_type: str) -> bool:
        return media_type.lower().startswith(self._settings.accepted_type_prefix)

    def build_url(self, logical_name: str, base_url: str = "") -> str:
        """Delivery URL for a logical name."""
        return f"{base_url.rstrip('/')}{self._route_prefix}/{logical_name}"

    def validate(self, media_type: str | None, declared_size: int | None) -> str:
        """Check type and declared size before any byte is stored.

        Returns:
            The normalized media type.
        """
        normalized = (media_type or "").split(";", 1)[0].strip().lower()
        if not normalized or not self._accepts(normalized):
            raise InvalidMediaTypeError(media_type)
        if declared_size is not None and declared_size > self.max_bytes:
            raise PayloadTooLargeError(self.max_bytes, declared_size)
        return normalized

    @timed()
    async def upload(
        self,
        source: AsyncReadable | None,
        *,
        media_type: str | None,
        original_filename: str | None = None,
        declared_size: int | None = None,
        base_url: str = "",
    ) -> UploadResult:
        """Validate and store one upload.

        Args:
            source: Payload stream, None when the request carried no file.
            media_type: Content type declared by the client.
            original_filename: Client filename, only its extension is kept.
            declared_size: Size announced ahead of the transfer, if known.
            base_url: Origin prefixed to the returned image URL.

        Returns:
            The stored asset's name and URL.

        Raises:
            MissingUploadError: No file was supplied.
            InvalidMediaTypeError: Media type not accepted.
            PayloadTooLargeError: Size ceiling exceeded, before or during transfer.
            StorageUnavailableError: Blob store not initialized.
            AssetStorageError: The blob store failed while writing.
        """
        if source is None:
            raise MissingUploadError()

        mime_type = self.validate(media_type, declared_size)
        logical_name = generate_logical_name(
            original_filename, prefix=self._settings.name_prefix
        )

        self._logger.debug(
            "Storing upload",
            extra={
                "logical_name": logical_name,
                "mime_type": mime_type,
                "declared_size": declared_size,
            },
        )

        try:
            async with self._blob.open_write(logical_name, mime_type) as writer:
                while chunk := await source.read(self._settings.read_chunk_bytes):
                    received = writer.bytes_written + len(chunk)
                    if received > self.max_bytes:
                        raise PayloadTooLargeError(self.max_bytes, received)
                    await writer.write(chunk)
        except DomainException:
            raise
        except BlobStoreNotReadyError as e:
            raise StorageUnavailableError(e.backend) from e
        except Exception as e:
            self._logger.exception(
                "Blob write failed",
                extra={"logical_name": logical_name},
            )
            raise AssetStorageError(logical_name, str(e)) from e

        size_bytes = writer.record.size_bytes if writer.record else writer.bytes_written

        self._logger.info(
            "Upload stored",
            extra={
                "logical_name": logical_name,
                "size_bytes": size_bytes,
                "mime_type": mime_type,
            },
        )

        return UploadResult(
            logical_name=logical_name,
            image_url=self.build_url(logical_name, base_url),
            size_bytes=size_bytes,
            mime_type=mime_type,
        )
