"""Abstract base classes for chunked blob storage."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Self

from src.commons.telemetry.logger import get_logger

DEFAULT_CONTENT_TYPE = "application/octet-stream"

logger = get_logger(__name__)


@dataclass(frozen=True)
class BlobRecord:
    """Metadata for one stored, fully written blob."""

    id: str
    logical_name: str
    mime_type: str
    size_bytes: int
    created_at: datetime


@dataclass
class HealthStatus:
    """Health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = None


class BlobNotFoundError(Exception):
    """Raised when no blob exists under a logical name or id."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Blob not found: {key}")


class BlobStoreNotReadyError(Exception):
    """Raised when a blob store is used before ``connect()`` succeeded."""

    def __init__(self, backend: str) -> None:
        self.backend = backend
        super().__init__(f"Blob store '{backend}' is not ready")


class BlobWriter(ABC):
    """Write handle returned by ``BlobStoreBase.open_write``.

    The blob only becomes visible to readers once the surrounding
    ``async with`` block exits cleanly. After that, ``record`` holds the
    stored metadata.
    """

    def __init__(self, logical_name: str, mime_type: str) -> None:
        self.logical_name = logical_name
        self.mime_type = mime_type
        self.bytes_written = 0
        self.record: BlobRecord | None = None

    async def write(self, data: bytes) -> None:
        """Append bytes to the pending blob."""
        if not data:
            return
        await self._write(data)
        self.bytes_written += len(data)

    @abstractmethod
    async def _write(self, data: bytes) -> None:
        """Backend-specific append."""

    @abstractmethod
    async def commit(self) -> BlobRecord:
        """Publish the blob. Called once, on clean exit."""

    @abstractmethod
    async def abort(self) -> None:
        """Discard everything written so far."""


class BlobReader(ABC):
    """Read handle returned by ``BlobStoreBase.open_read``.

    Iterate it to receive chunks; always release it with ``aclose()`` or by
    using it as an async context manager.
    """

    def __init__(self, record: BlobRecord, chunk_size: int) -> None:
        self.record = record
        self.chunk_size = chunk_size

    @abstractmethod
    def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the blob content in chunks."""
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying stream."""

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class BlobStoreBase(ABC):
    """Abstract chunked blob store keyed by logical name.

    Implementations:
    - GridFS (MongoDB, default)
    - MinIO / S3
    - In-memory (development and tests)

    A store starts out not ready. Every data operation raises
    ``BlobStoreNotReadyError`` until ``connect()`` has completed.
    """

    backend_name: str = "blob"

    def __init__(self) -> None:
        self._ready = False

    @property
    def ready(self) -> bool:
        """Whether the store has been initialized."""
        return self._ready

    def _ensure_ready(self) -> None:
        if not self._ready:
            raise BlobStoreNotReadyError(self.backend_name)

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend and mark the store ready.

        Must be idempotent.
        """

    async def close(self) -> None:
        """Release backend resources and mark the store not ready."""
        self._ready = False

    @asynccontextmanager
    async def open_write(
        self,
        logical_name: str,
        mime_type: str = DEFAULT_CONTENT_TYPE,
    ) -> AsyncIterator[BlobWriter]:
        """Open a write stream for a new blob.

        Usage:
            async with store.open_write("upload_1.png", "image/png") as w:
                await w.write(data)
            record = w.record

        If the block raises, the partial write is aborted and nothing
        becomes visible.

        Args:
            logical_name: Name the blob will be readable under.
            mime_type: Content type recorded with the blob.

        Yields:
            Write handle.
        """
        self._ensure_ready()
        writer = await self._begin_write(logical_name, mime_type)
        try:
            yield writer
        except BaseException:
            try:
                await writer.abort()
            except Exception:
                logger.warning(
                    "Failed to abort partial blob write",
                    exc_info=True,
                    extra={"logical_name": logical_name},
                )
            raise
        writer.record = await writer.commit()

    @abstractmethod
    async def _begin_write(self, logical_name: str, mime_type: str) -> BlobWriter:
        """Create the backend write handle."""

    @abstractmethod
    async def open_read(
        self,
        logical_name: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader:
        """Open a read stream for a blob.

        Args:
            logical_name: Name of the blob.
            chunk_size: Preferred chunk size in bytes.

        Returns:
            Read handle; the caller must close it.

        Raises:
            BlobNotFoundError: If no blob has this name.
        """

    @abstractmethod
    async def find_metadata(self, logical_name: str) -> BlobRecord:
        """Look up blob metadata without reading content.

        Raises:
            BlobNotFoundError: If no blob has this name.
        """

    @abstractmethod
    async def delete(self, blob_id: str) -> bool:
        """Delete a blob by its store-assigned id.

        Deleting an id that does not exist is not an error.

        Returns:
            True if a blob was removed, False if it was already absent.
        """

    async def delete_by_name(self, logical_name: str) -> bool:
        """Resolve a logical name and delete the blob, if any.

        Returns:
            True if a blob was removed, False if none had this name.
        """
        try:
            record = await self.find_metadata(logical_name)
        except BlobNotFoundError:
            return False
        return await self.delete(record.id)

    @abstractmethod
    async def list_records(self) -> list[BlobRecord]:
        """List metadata of every stored blob."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check backend health."""
