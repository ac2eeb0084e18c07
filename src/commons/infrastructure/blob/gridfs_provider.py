"""MongoDB GridFS implementation of blob storage."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from gridfs.errors import NoFile
from motor.motor_asyncio import (
    AsyncIOMotorDatabase,
    AsyncIOMotorGridFSBucket,
    AsyncIOMotorGridIn,
    AsyncIOMotorGridOut,
)

from src.commons.infrastructure.blob.base import (
    DEFAULT_CONTENT_TYPE,
    BlobNotFoundError,
    BlobReader,
    BlobRecord,
    BlobStoreBase,
    BlobStoreNotReadyError,
    BlobWriter,
    HealthStatus,
)
from src.commons.telemetry.logger import get_logger

logger = get_logger(__name__)


def _to_file_id(blob_id: str) -> ObjectId | str:
    """Convert a string id back to the GridFS ``_id`` it was made from."""
    if ObjectId.is_valid(blob_id):
        return ObjectId(blob_id)
    return blob_id


def _record_from_file_doc(doc: dict[str, Any]) -> BlobRecord:
    """Build a BlobRecord from a ``<bucket>.files`` document.

    The content type is read from ``metadata.contentType`` and, for files
    written by older clients, from the deprecated top-level ``contentType``.
    """
    metadata = doc.get("metadata") or {}
    mime_type = metadata.get("contentType") or doc.get("contentType")
    created_at = doc.get("uploadDate") or datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return BlobRecord(
        id=str(doc["_id"]),
        logical_name=doc.get("filename", ""),
        mime_type=mime_type or DEFAULT_CONTENT_TYPE,
        size_bytes=int(doc.get("length", 0)),
        created_at=created_at,
    )


class _GridFSWriter(BlobWriter):
    """Write handle backed by a GridFS upload stream.

    GridFS inserts the files document only when the stream is closed, so
    readers never observe a partially written blob.
    """

    def __init__(
        self,
        grid_in: AsyncIOMotorGridIn,
        logical_name: str,
        mime_type: str,
    ) -> None:
        super().__init__(logical_name, mime_type)
        self._grid_in = grid_in

    async def _write(self, data: bytes) -> None:
        await self._grid_in.write(data)

    async def commit(self) -> BlobRecord:
        await self._grid_in.close()
        return BlobRecord(
            id=str(self._grid_in._id),
            logical_name=self.logical_name,
            mime_type=self.mime_type,
            size_bytes=self.bytes_written,
            created_at=datetime.now(UTC),
        )

    async def abort(self) -> None:
        # Removes any chunks already flushed to the chunks collection
        await self._grid_in.abort()


class _GridFSReader(BlobReader):
    """Read handle backed by a GridFS download stream."""

    def __init__(
        self,
        record: BlobRecord,
        grid_out: AsyncIOMotorGridOut,
        chunk_size: int,
    ) -> None:
        super().__init__(record, chunk_size)
        self._grid_out = grid_out

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk: bytes = await self._grid_out.read(self.chunk_size)
            if not chunk:
                break
            yield chunk

    async def aclose(self) -> None:
        self._grid_out.close()


class GridFSBlobStorage(BlobStoreBase):
    """GridFS implementation of blob storage.

    Uses Motor for async operations and shares the database handle of the
    document store, so products, carousel items and blobs live in one
    MongoDB database.
    """

    backend_name = "gridfs"

    def __init__(
        self,
        database: AsyncIOMotorDatabase[dict[str, Any]],
        bucket_name: str = "uploads",
        chunk_size_bytes: int = 255 * 1024,
    ) -> None:
        """Initialize GridFS storage.

        Args:
            database: Motor database handle.
            bucket_name: GridFS bucket name (collections ``<name>.files``
                and ``<name>.chunks``).
            chunk_size_bytes: Size of the stored chunks.
        """
        super().__init__()
        self._db = database
        self._bucket_name = bucket_name
        self._chunk_size_bytes = chunk_size_bytes
        self._bucket: AsyncIOMotorGridFSBucket | None = None

    @property
    def _files(self) -> Any:
        return self._db[f"{self._bucket_name}.files"]

    async def connect(self) -> None:
        """Verify the server is reachable and create the bucket handle."""
        if self._ready:
            return
        await self._db.command("ping")
        self._bucket = AsyncIOMotorGridFSBucket(
            self._db,
            bucket_name=self._bucket_name,
            chunk_size_bytes=self._chunk_size_bytes,
        )
        self._ready = True
        logger.info(
            "GridFS bucket initialized",
            extra={"bucket": self._bucket_name},
        )

    async def close(self) -> None:
        """Drop the bucket handle. The Motor client is owned elsewhere."""
        self._bucket = None
        await super().close()

    def _require_bucket(self) -> AsyncIOMotorGridFSBucket:
        self._ensure_ready()
        if self._bucket is None:
            raise BlobStoreNotReadyError(self.backend_name)
        return self._bucket

    async def _begin_write(self, logical_name: str, mime_type: str) -> BlobWriter:
        bucket = self._require_bucket()
        grid_in = bucket.open_upload_stream(
            logical_name,
            metadata={"contentType": mime_type},
        )
        return _GridFSWriter(grid_in, logical_name, mime_type)

    async def _find_file_doc(self, logical_name: str) -> dict[str, Any]:
        self._ensure_ready()
        doc = await self._files.find_one(
            {"filename": logical_name},
            sort=[("uploadDate", -1)],
        )
        if doc is None:
            raise BlobNotFoundError(logical_name)
        return dict(doc)

    async def open_read(
        self,
        logical_name: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader:
        """Open a read stream for the newest blob with this name."""
        bucket = self._require_bucket()
        doc = await self._find_file_doc(logical_name)
        try:
            grid_out = await bucket.open_download_stream(doc["_id"])
        except NoFile as e:
            # Deleted between the metadata lookup and the open
            raise BlobNotFoundError(logical_name) from e
        return _GridFSReader(_record_from_file_doc(doc), grid_out, chunk_size)

    async def find_metadata(self, logical_name: str) -> BlobRecord:
        """Get blob metadata from the files collection."""
        doc = await self._find_file_doc(logical_name)
        return _record_from_file_doc(doc)

    async def delete(self, blob_id: str) -> bool:
        """Delete a file and its chunks. Unknown ids are ignored."""
        bucket = self._require_bucket()
        try:
            await bucket.delete(_to_file_id(blob_id))
        except NoFile:
            logger.debug("Blob already absent", extra={"blob_id": blob_id})
            return False
        return True

    async def list_records(self) -> list[BlobRecord]:
        """List every file in the bucket."""
        self._ensure_ready()
        records: list[BlobRecord] = []
        async for doc in self._files.find({}):
            records.append(_record_from_file_doc(doc))
        return records

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._db.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=self._ready,
                latency_ms=latency_ms,
                message="GridFS is healthy" if self._ready else "GridFS not ready",
                details={"bucket": self._bucket_name},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"GridFS health check failed: {e}",
                details={"bucket": self._bucket_name, "error": str(e)},
            )
