"""In-memory blob storage for development and testing."""

import time
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from src.commons.infrastructure.blob.base import (
    BlobNotFoundError,
    BlobReader,
    BlobRecord,
    BlobStoreBase,
    BlobWriter,
    HealthStatus,
)


class _MemoryWriter(BlobWriter):
    """Buffers bytes and publishes them into the store on commit."""

    def __init__(
        self,
        store: "InMemoryBlobStorage",
        logical_name: str,
        mime_type: str,
    ) -> None:
        super().__init__(logical_name, mime_type)
        self._store = store
        self._buffer = bytearray()

    async def _write(self, data: bytes) -> None:
        self._buffer.extend(data)

    async def commit(self) -> BlobRecord:
        record = BlobRecord(
            id=uuid.uuid4().hex,
            logical_name=self.logical_name,
            mime_type=self.mime_type,
            size_bytes=len(self._buffer),
            created_at=datetime.now(UTC),
        )
        self._store._publish(record, bytes(self._buffer))
        self._buffer.clear()
        return record

    async def abort(self) -> None:
        self._buffer.clear()


class _MemoryReader(BlobReader):
    """Serves a snapshot of the blob content in chunks."""

    def __init__(self, record: BlobRecord, data: bytes, chunk_size: int) -> None:
        super().__init__(record, chunk_size)
        self._data = data
        self.closed = False

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        for offset in range(0, len(self._data), self.chunk_size):
            if self.closed:
                break
            yield self._data[offset : offset + self.chunk_size]

    async def aclose(self) -> None:
        self.closed = True


class InMemoryBlobStorage(BlobStoreBase):
    """Dict-based blob storage.

    Content is lost when the process exits. Useful for local development
    without MongoDB and as the blob store in tests.
    """

    backend_name = "memory"

    def __init__(self, *, ready: bool = True) -> None:
        """Initialize an empty store.

        Args:
            ready: Whether the store accepts operations before ``connect()``.
        """
        super().__init__()
        self._ready = ready
        self._records: dict[str, BlobRecord] = {}
        self._data: dict[str, bytes] = {}
        self._ids_by_name: dict[str, str] = {}

    def _publish(self, record: BlobRecord, data: bytes) -> None:
        self._records[record.id] = record
        self._data[record.id] = data
        self._ids_by_name[record.logical_name] = record.id

    def _lookup(self, logical_name: str) -> BlobRecord:
        self._ensure_ready()
        blob_id = self._ids_by_name.get(logical_name)
        if blob_id is None:
            raise BlobNotFoundError(logical_name)
        return self._records[blob_id]

    async def connect(self) -> None:
        self._ready = True

    async def _begin_write(self, logical_name: str, mime_type: str) -> BlobWriter:
        return _MemoryWriter(self, logical_name, mime_type)

    async def open_read(
        self,
        logical_name: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader:
        record = self._lookup(logical_name)
        return _MemoryReader(record, self._data[record.id], chunk_size)

    async def find_metadata(self, logical_name: str) -> BlobRecord:
        return self._lookup(logical_name)

    async def delete(self, blob_id: str) -> bool:
        self._ensure_ready()
        record = self._records.pop(blob_id, None)
        if record is None:
            return False
        self._data.pop(blob_id, None)
        if self._ids_by_name.get(record.logical_name) == blob_id:
            del self._ids_by_name[record.logical_name]
        return True

    async def list_records(self) -> list[BlobRecord]:
        self._ensure_ready()
        return sorted(self._records.values(), key=lambda r: (r.created_at, r.id))

    async def health_check(self) -> HealthStatus:
        start = time.perf_counter()
        return HealthStatus(
            healthy=self._ready,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="In-memory store",
            details={"blobs": str(len(self._records))},
        )
