"""Document database abstractions and implementations."""

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    is_valid_document_id,
)
from src.commons.infrastructure.documentdb.mongodb_provider import MongoDBDocumentDB

__all__ = [
    # Base classes
    "DocumentDBBase",
    "is_valid_document_id",
    # Implementations
    "MongoDBDocumentDB",
]
