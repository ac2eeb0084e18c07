"""MinIO implementation of blob storage."""

import asyncio
import tempfile
import time
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from minio import Minio
from minio.error import S3Error

from src.commons.infrastructure.blob.base import (
    DEFAULT_CONTENT_TYPE,
    BlobNotFoundError,
    BlobReader,
    BlobRecord,
    BlobStoreBase,
    BlobWriter,
    HealthStatus,
)

# Uploads larger than this spill from memory to a temporary file
_SPOOL_MAX_BYTES = 1024 * 1024

_MISSING_CODES = ("NoSuchKey", "NoSuchObject")


class _MinioWriter(BlobWriter):
    """Spools bytes locally and uploads them as one object on commit.

    S3 objects appear atomically when ``put_object`` completes, which gives
    the same visibility rule as GridFS.
    """

    def __init__(
        self,
        client: Minio,
        bucket: str,
        logical_name: str,
        mime_type: str,
    ) -> None:
        super().__init__(logical_name, mime_type)
        self._client = client
        self._bucket = bucket
        self._spool = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)

    async def _write(self, data: bytes) -> None:
        self._spool.write(data)

    async def commit(self) -> BlobRecord:
        loop = asyncio.get_event_loop()
        length = self.bytes_written
        self._spool.seek(0)

        def _upload() -> None:
            self._client.put_object(
                bucket_name=self._bucket,
                object_name=self.logical_name,
                data=self._spool,
                length=length,
                content_type=self.mime_type,
            )

        try:
            await loop.run_in_executor(None, _upload)
        finally:
            self._spool.close()
        return BlobRecord(
            id=self.logical_name,
            logical_name=self.logical_name,
            mime_type=self.mime_type,
            size_bytes=length,
            created_at=datetime.now(UTC),
        )

    async def abort(self) -> None:
        self._spool.close()


class _MinioReader(BlobReader):
    """Streams an object response in chunks."""

    def __init__(self, record: BlobRecord, response: Any, chunk_size: int) -> None:
        super().__init__(record, chunk_size)
        self._response = response
        self._closed = False

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        loop = asyncio.get_event_loop()
        while True:
            chunk: bytes = await loop.run_in_executor(
                None, self._response.read, self.chunk_size
            )
            if not chunk:
                break
            yield chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()
        self._response.release_conn()


class MinioBlobStorage(BlobStoreBase):
    """MinIO implementation of blob storage.

    Works with both MinIO (local development) and AWS S3. The object key is
    the logical name, so the store-assigned id equals the logical name.
    """

    backend_name = "minio"

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str = "uploads",
        secure: bool = False,
        region: str | None = None,
    ) -> None:
        """Initialize MinIO client.

        Args:
            endpoint: MinIO/S3 endpoint (e.g., "localhost:9000").
            access_key: Access key ID.
            secret_key: Secret access key.
            bucket: Bucket holding the uploads.
            secure: Use HTTPS connection.
            region: AWS region (optional, for S3).
        """
        super().__init__()
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self._endpoint = endpoint
        self._bucket = bucket

    async def connect(self) -> None:
        """Create the bucket if needed and mark the store ready."""
        if self._ready:
            return
        loop = asyncio.get_event_loop()

        def _ensure_bucket() -> None:
            if not self._client.bucket_exists(self._bucket):
                self._client.make_bucket(self._bucket)

        await loop.run_in_executor(None, _ensure_bucket)
        self._ready = True

    async def _begin_write(self, logical_name: str, mime_type: str) -> BlobWriter:
        return _MinioWriter(self._client, self._bucket, logical_name, mime_type)

    async def open_read(
        self,
        logical_name: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader:
        """Open a streaming object response."""
        record = await self.find_metadata(logical_name)
        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(
                None, self._client.get_object, self._bucket, logical_name
            )
        except S3Error as e:
            if e.code in _MISSING_CODES:
                raise BlobNotFoundError(logical_name) from e
            raise
        return _MinioReader(record, response, chunk_size)

    async def find_metadata(self, logical_name: str) -> BlobRecord:
        """Get object metadata without downloading."""
        self._ensure_ready()
        loop = asyncio.get_event_loop()

        def _stat() -> BlobRecord:
            try:
                stat = self._client.stat_object(self._bucket, logical_name)
            except S3Error as e:
                if e.code in _MISSING_CODES:
                    raise BlobNotFoundError(logical_name) from e
                raise
            return BlobRecord(
                id=logical_name,
                logical_name=logical_name,
                mime_type=stat.content_type or DEFAULT_CONTENT_TYPE,
                size_bytes=stat.size or 0,
                created_at=stat.last_modified or datetime.now(UTC),
            )

        return await loop.run_in_executor(None, _stat)

    async def delete(self, blob_id: str) -> bool:
        """Delete an object. Missing objects are ignored."""
        try:
            await self.find_metadata(blob_id)
        except BlobNotFoundError:
            return False

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None, self._client.remove_object, self._bucket, blob_id
        )
        return True

    async def list_records(self) -> list[BlobRecord]:
        """List every object in the bucket.

        The listing API does not return content types, so records carry the
        generic binary type.
        """
        self._ensure_ready()
        loop = asyncio.get_event_loop()

        def _list() -> list[BlobRecord]:
            objects = self._client.list_objects(self._bucket, recursive=True)
            return [
                BlobRecord(
                    id=obj.object_name or "",
                    logical_name=obj.object_name or "",
                    mime_type=DEFAULT_CONTENT_TYPE,
                    size_bytes=obj.size or 0,
                    created_at=obj.last_modified or datetime.now(UTC),
                )
                for obj in objects
            ]

        return await loop.run_in_executor(None, _list)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, self._client.list_buckets)
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=self._ready,
                latency_ms=latency_ms,
                message="MinIO is healthy" if self._ready else "MinIO not ready",
                details={"endpoint": self._endpoint, "bucket": self._bucket},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MinIO health check failed: {e}",
                details={"endpoint": self._endpoint, "error": str(e)},
            )
