"""Infrastructure factory for creating service instances from configuration."""

from typing import Any, cast

import httpx

from src.commons.infrastructure.blob import (
    BlobStoreBase,
    GridFSBlobStorage,
    InMemoryBlobStorage,
    MinioBlobStorage,
)
from src.commons.infrastructure.documentdb import DocumentDBBase, MongoDBDocumentDB
from src.commons.settings.models import Settings
from src.commons.telemetry import get_logger

logger = get_logger(__name__)


class InfrastructureFactory:
    """Factory for creating infrastructure service instances.

    Creates concrete implementations based on configuration settings. Each
    instance is created once and shared by every caller.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize factory with settings.

        Args:
            settings: Application settings.
        """
        self._settings = settings
        self._instances: dict[str, Any] = {}

    def get_document_db(self) -> DocumentDBBase:
        """Get document database instance.

        Returns:
            Configured document database provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            self._instances["document_db"] = MongoDBDocumentDB(
                connection_string=doc_settings.connection_string,
                database_name=doc_settings.database,
            )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_blob_storage(self) -> BlobStoreBase:
        """Get blob storage instance.

        GridFS shares the document database's client and database.

        Returns:
            Configured blob storage provider (not yet connected).

        Raises:
            ValueError: If provider is not supported.
        """
        if "blob_storage" not in self._instances:
            blob_settings = self._settings.blob_storage
            provider = blob_settings.provider

            if provider == "gridfs":
                document_db = self.get_document_db()
                if not isinstance(document_db, MongoDBDocumentDB):
                    raise ValueError("GridFS blob storage requires the MongoDB provider")
                self._instances["blob_storage"] = GridFSBlobStorage(
                    database=document_db.database,
                    bucket_name=blob_settings.bucket,
                    chunk_size_bytes=blob_settings.chunk_size_bytes,
                )
            elif provider == "minio":
                self._instances["blob_storage"] = MinioBlobStorage(
                    endpoint=blob_settings.endpoint,
                    access_key=blob_settings.access_key,
                    secret_key=blob_settings.secret_key,
                    bucket=blob_settings.bucket,
                    secure=blob_settings.use_ssl,
                    region=blob_settings.region,
                )
            elif provider == "memory":
                self._instances["blob_storage"] = InMemoryBlobStorage(ready=False)
            else:
                raise ValueError(f"Unsupported blob storage provider: {provider}")

        return cast("BlobStoreBase", self._instances["blob_storage"])

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the shared outbound HTTP client used by the image proxy.

        Returns:
            httpx client with the proxy timeout as default.
        """
        if "http_client" not in self._instances:
            proxy_settings = self._settings.proxy
            self._instances["http_client"] = httpx.AsyncClient(
                timeout=httpx.Timeout(proxy_settings.timeout_seconds),
                follow_redirects=True,
                headers={"User-Agent": proxy_settings.user_agent},
            )
        return cast("httpx.AsyncClient", self._instances["http_client"])

    async def close_all(self) -> None:
        """Close all service connections.

        The blob store closes before the document database whose client
        it may share.
        """
        order = ["http_client", "blob_storage", "document_db"]
        for key in order:
            instance = self._instances.get(key)
            if instance is None:
                continue
            close = getattr(instance, "aclose", None) or getattr(instance, "close", None)
            if close is None:
                continue
            try:
                result = close()
                if hasattr(result, "__await__"):
                    await result
            except Exception:
                logger.warning(
                    "Failed to close infrastructure service",
                    exc_info=True,
                    extra={"service": key},
                )

        self._instances.clear()


class _FactoryHolder:
    """Holder for the factory singleton to avoid global statements."""

    instance: InfrastructureFactory | None = None


def get_factory(settings: Settings | None = None) -> InfrastructureFactory:
    """Get or create the infrastructure factory singleton.

    Args:
        settings: Settings to use. Required on first call.

    Returns:
        Infrastructure factory instance.

    Raises:
        ValueError: If settings not provided on first call.
    """
    if _FactoryHolder.instance is None:
        if settings is None:
            raise ValueError("Settings required to initialize factory")
        _FactoryHolder.instance = InfrastructureFactory(settings)

    return _FactoryHolder.instance


def reset_factory() -> None:
    """Reset the factory singleton (for testing)."""
    _FactoryHolder.instance = None
