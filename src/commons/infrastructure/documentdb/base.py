"""Abstract base class for document database operations."""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from bson import ObjectId

from src.commons.infrastructure.blob.base import HealthStatus


def is_valid_document_id(document_id: str) -> bool:
    """Check whether an id can name a stored document.

    Documents created by this service use UUID strings; records imported
    from older deployments still carry 24-hex ObjectIds.
    """
    if not document_id:
        return False
    if ObjectId.is_valid(document_id):
        return True
    try:
        UUID(document_id)
    except ValueError:
        return False
    return True


class DocumentDBBase(ABC):
    """Abstract base class for document database operations.

    Documents cross this boundary as plain dicts whose ``id`` key holds the
    document id; implementations map it to their native key.
    """

    @abstractmethod
    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        """Insert a document.

        Args:
            collection: Collection name.
            document: Document to insert.

        Returns:
            Document ID.
        """

    @abstractmethod
    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Find a document by ID.

        Returns:
            Document if found, None otherwise.
        """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int | None = None,
        sort: list[tuple[str, int]] | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters.

        Args:
            collection: Collection name.
            filters: Query filters.
            skip: Number of documents to skip.
            limit: Maximum documents to return, None for no limit.
            sort: Sort specification [(field, direction)].
                  Direction: 1 for ascending, -1 for descending.
            projection: Fields to return besides ``id``; None for all.

        Returns:
            List of matching documents.
        """

    @abstractmethod
    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        """Set fields on a document.

        Returns:
            True if the document exists, False if not found.
        """

    @abstractmethod
    async def delete(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        """Delete a document.

        Returns:
            The removed document, or None if not found.
        """

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count documents matching filters."""

    @abstractmethod
    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection.

        Returns:
            Index name.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""
