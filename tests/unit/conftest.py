"""Shared fixtures for unit tests."""

import copy
import time
from typing import Any

import pytest

from src.application.services.lifecycle import AssetLifecycleCoordinator
from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.blob.memory_provider import InMemoryBlobStorage
from src.commons.infrastructure.documentdb.base import DocumentDBBase


class InMemoryDocumentDB(DocumentDBBase):
    """Dict-backed document store supporting the query subset services use."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.indexes: list[tuple[str, str | None]] = []
        self.update_calls: list[tuple[str, str, dict[str, Any]]] = []

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(name, {})

    @staticmethod
    def _matches(doc: dict[str, Any], filters: dict[str, Any]) -> bool:
        return all(doc.get(key) == value for key, value in filters.items())

    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc = copy.deepcopy(document)
        self._collection(collection)[doc["id"]] = doc
        return str(doc["id"])

    async def find_by_id(
        self, collection: str, document_id: str
    ) -> dict[str, Any] | None:
        doc = self._collection(collection).get(document_id)
        return copy.deepcopy(doc) if doc else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int | None = None,
        sort: list[tuple[str, int]] | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        docs = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if self._matches(doc, filters)
        ]
        for key, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        if projection is not None:
            keep = {"id", *projection}
            docs = [{k: v for k, v in doc.items() if k in keep} for doc in docs]
        return docs

    async def update(
        self, collection: str, document_id: str, updates: dict[str, Any]
    ) -> bool:
        doc = self._collection(collection).get(document_id)
        if doc is None:
            return False
        self.update_calls.append((collection, document_id, dict(updates)))
        doc.update(copy.deepcopy(updates))
        return True

    async def delete(
        self, collection: str, document_id: str
    ) -> dict[str, Any] | None:
        return self._collection(collection).pop(document_id, None)

    async def count(
        self, collection: str, filters: dict[str, Any] | None = None
    ) -> int:
        return sum(
            1
            for doc in self._collection(collection).values()
            if self._matches(doc, filters or {})
        )

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        self.indexes.append((collection, name))
        return name or "_".join(f"{f}_{d}" for f, d in fields)

    async def health_check(self) -> HealthStatus:
        start = time.perf_counter()
        return HealthStatus(healthy=True, latency_ms=time.perf_counter() - start)


@pytest.fixture
def document_db() -> InMemoryDocumentDB:
    """Empty in-memory document store."""
    return InMemoryDocumentDB()


@pytest.fixture
def blob_storage() -> InMemoryBlobStorage:
    """Ready in-memory blob store."""
    return InMemoryBlobStorage()


@pytest.fixture
def coordinator(blob_storage) -> AssetLifecycleCoordinator:
    """Lifecycle coordinator over the in-memory blob store."""
    return AssetLifecycleCoordinator(blob_storage, proxy_route="/image-proxy")


async def store_blob(
    store: InMemoryBlobStorage,
    logical_name: str,
    data: bytes = b"\xff\xd8\xff\xe0jpeg",
    mime_type: str = "image/jpeg",
):
    """Write one blob and return its record."""
    async with store.open_write(logical_name, mime_type) as writer:
        await writer.write(data)
    return writer.record


@pytest.fixture
def put_blob(blob_storage):
    """Write blobs into the shared in-memory store."""

    async def _put(logical_name: str, data: bytes = b"\xff\xd8\xff\xe0jpeg", **kw):
        return await store_blob(blob_storage, logical_name, data, **kw)

    return _put
