"""MongoDB implementation of document database."""

from __future__ import annotations

import time
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.documentdb.base import DocumentDBBase


def _id_candidates(document_id: str) -> list[Any]:
    """Return the ``_id`` values a string id may be stored as.

    String UUIDs are tried first; 24-hex ids also match legacy ObjectIds.
    """
    candidates: list[Any] = [document_id]
    if ObjectId.is_valid(document_id):
        candidates.append(ObjectId(document_id))
    return candidates


def _restore_id(doc: dict[str, Any]) -> dict[str, Any]:
    """Move Mongo's ``_id`` back to the domain ``id`` field."""
    doc["id"] = str(doc.pop("_id"))
    return dict(doc)


class MongoDBDocumentDB(DocumentDBBase):
    """MongoDB implementation of document database.

    Uses Motor for async operations. The domain ``id`` is stored as
    ``_id`` so records can be addressed by the same identifier everywhere.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
    ) -> None:
        """Initialize MongoDB client.

        Args:
            connection_string: MongoDB connection URI.
            database_name: Name of the database to use.
        """
        self._client: AsyncIOMotorClient[dict[str, Any]] = AsyncIOMotorClient(
            connection_string, tz_aware=True
        )
        self._db: AsyncIOMotorDatabase[dict[str, Any]] = self._client[database_name]
        self._database_name = database_name

    @property
    def database(self) -> AsyncIOMotorDatabase[dict[str, Any]]:
        """Underlying Motor database, shared with the GridFS blob store."""
        return self._db

    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document, using its 'id' field as MongoDB's '_id'."""
        doc = document.copy()
        if "id" in doc:
            doc["_id"] = doc.pop("id")

        result = await self._db[collection].insert_one(doc)
        return str(result.inserted_id)

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID, with 'id' restored from '_id'."""
        doc = await self._db[collection].find_one(
            {"_id": {"$in": _id_candidates(document_id)}}
        )
        if doc:
            return _restore_id(doc)
        return None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int | None = None,
        sort: list[tuple[str, int]] | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters, with 'id' restored from '_id'."""
        cursor = self._db[collection].find(filters, projection)

        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)

        results: list[dict[str, Any]] = []
        async for doc in cursor:
            results.append(_restore_id(doc))

        return results

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document. The 'id' field itself is never changed."""
        update_doc = {k: v for k, v in updates.items() if k not in ("id", "_id")}
        if not update_doc:
            return await self.find_by_id(collection, document_id) is not None

        result = await self._db[collection].update_one(
            {"_id": {"$in": _id_candidates(document_id)}},
            {"$set": update_doc},
        )
        return bool(result.matched_count > 0)

    async def delete(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Delete a document and return it."""
        doc = await self._db[collection].find_one_and_delete(
            {"_id": {"$in": _id_candidates(document_id)}}
        )
        if doc:
            return _restore_id(doc)
        return None

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters.

        Uses an exact count so carousel append positions are correct.
        """
        count = await self._db[collection].count_documents(filters or {})
        return int(count)

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection."""
        index_name = await self._db[collection].create_index(
            fields,
            unique=unique,
            name=name,
        )
        return str(index_name)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._client.admin.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=True,
                latency_ms=latency_ms,
                message="MongoDB is healthy",
                details={"database": self._database_name},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MongoDB health check failed: {e}",
                details={"database": self._database_name, "error": str(e)},
            )

    async def close(self) -> None:
        """Close the client connection."""
        self._client.close()
