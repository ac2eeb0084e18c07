"""Blob storage abstractions and implementations."""

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
from src.commons.infrastructure.blob.gridfs_provider import GridFSBlobStorage
from src.commons.infrastructure.blob.memory_provider import InMemoryBlobStorage
from src.commons.infrastructure.blob.minio_provider import MinioBlobStorage

__all__ = [
    # Base classes
    "BlobRecord",
    "BlobReader",
    "BlobStoreBase",
    "BlobWriter",
    "DEFAULT_CONTENT_TYPE",
    "HealthStatus",
    # Implementations
    "GridFSBlobStorage",
    "InMemoryBlobStorage",
    "MinioBlobStorage",
    # Exceptions
    "BlobNotFoundError",
    "BlobStoreNotReadyError",
]
