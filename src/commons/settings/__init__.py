"""Settings management module."""

from src.commons.settings.loader import SettingsLoader, get_settings, reset_settings
from src.commons.settings.models import (
    AppSettings,
    AuthSettings,
    BlobStorageSettings,
    DeliverySettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    ProxySettings,
    ServerSettings,
    Settings,
    TelemetrySettings,
    UploadSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    "ServerSettings",
    "AuthSettings",
    # Storage
    "BlobStorageSettings",
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Assets
    "UploadSettings",
    "DeliverySettings",
    "ProxySettings",
    # Telemetry
    "TelemetrySettings",
]
