"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "catalog-asset-server"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class ServerSettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=5000, ge=1, le=65535)
    workers: int = Field(default=1, ge=1, le=32)
    reload: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    api_prefix: str = "/api"
    docs_enabled: bool = True
    # Absolute base for returned asset URLs; empty means the request origin
    public_base_url: str = ""
    # Served only when the directory exists
    static_dir: str = "public"
    static_route: str = "/static"


class BlobStorageSettings(BaseModel):
    """Blob storage settings (GridFS, MinIO or in-memory)."""

    provider: Literal["gridfs", "minio", "memory"] = "gridfs"
    bucket: str = "uploads"
    chunk_size_bytes: int = Field(default=255 * 1024, ge=1024)
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    use_ssl: bool = False
    region: str | None = None


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    products: str = "products"
    carousel: str = "carousel"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb"] = "mongodb"
    uri: str = ""
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "catalog"
    auth_source: str = "admin"
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )

    @property
    def connection_string(self) -> str:
        """MongoDB URI, built from host settings unless ``uri`` is given."""
        if self.uri:
            return self.uri
        if self.username:
            return (
                f"mongodb://{self.username}:{self.password}"
                f"@{self.host}:{self.port}/?authSource={self.auth_source}"
            )
        return f"mongodb://{self.host}:{self.port}"


class UploadSettings(BaseModel):
    """Image upload settings."""

    max_bytes: int = Field(default=5 * 1024 * 1024, ge=1)
    accepted_type_prefix: str = "image/"
    asset_route: str = "/files"
    name_prefix: str = "upload_"
    read_chunk_bytes: int = Field(default=64 * 1024, ge=1024)


class DeliverySettings(BaseModel):
    """Blob download settings."""

    cache_max_age_seconds: int = Field(default=3600, ge=0)
    chunk_size_bytes: int = Field(default=256 * 1024, ge=1024)


class ProxySettings(BaseModel):
    """Remote image proxy settings."""

    route: str = "/image-proxy"
    timeout_seconds: float = Field(default=12.0, gt=0)
    cache_max_age_seconds: int = Field(default=300, ge=0)
    allowed_schemes: list[str] = Field(default_factory=lambda: ["http", "https"])
    user_agent: str = "catalog-image-proxy/1.0"
    # 0 disables the ceiling
    max_bytes: int = Field(default=0, ge=0)


class AuthSettings(BaseModel):
    """Admin authentication settings."""

    # Empty disables the bearer token check
    api_token: str = ""


class TelemetrySettings(BaseModel):
    """Telemetry and logging settings."""

    enabled: bool = True
    log_format: Literal["json", "text"] = "json"
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    blob_storage: BlobStorageSettings = Field(default_factory=BlobStorageSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CATALOG__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
