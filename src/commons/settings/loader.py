"""Settings loader with layered JSON and environment configuration."""

import json
import os
from pathlib import Path
from typing import Any

from src.commons.settings.models import Settings


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class SettingsLoader:
    """Loads and merges configuration from multiple sources.

    Later sources win:
    1. Base config (appsettings.json)
    2. Environment-specific config (appsettings.{env}.json)
    3. Environment variables prefixed with ``CATALOG__``
    """

    ENV_PREFIX = "CATALOG__"
    ENVIRONMENT_VAR = "CATALOG__APP__ENVIRONMENT"

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        """Initialize the settings loader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to 'config' in current working directory.
            environment: Environment name (dev, staging, prod).
                        Defaults to CATALOG__APP__ENVIRONMENT or 'dev'.
        """
        self.config_dir = config_dir or Path("config")
        self.environment = environment or os.getenv(self.ENVIRONMENT_VAR, "dev")

    def load(self) -> Settings:
        """Load settings with proper precedence."""
        layers = [
            self._load_json("appsettings.json"),
            self._load_json(f"appsettings.{self.environment}.json"),
            self._load_env_vars(),
        ]
        config: dict[str, Any] = {}
        for layer in layers:
            config = deep_merge(config, layer)
        return Settings(**config)

    def _load_env_vars(self) -> dict[str, Any]:
        """Turn ``CATALOG__SECTION__KEY=value`` variables into nested dicts.

        ``CATALOG__BLOB_STORAGE__PROVIDER=memory`` becomes
        ``{"blob_storage": {"provider": "memory"}}``.
        """
        result: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.upper().startswith(self.ENV_PREFIX):
                continue

            *sections, field = key[len(self.ENV_PREFIX) :].lower().split("__")
            if not field:
                continue

            target = result
            for section in sections:
                target = target.setdefault(section, {})
            target[field] = self._parse_value(value)

        return result

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Decode JSON lists and objects; leave scalars to pydantic.

        Scalars stay strings so a numeric-looking token is not turned into an
        int; pydantic still converts "true" or "8000" for bool and int fields.
        """
        if value.startswith(("[", "{")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value

    def _load_json(self, filename: str) -> dict[str, Any]:
        """Load a JSON config file, or an empty dict if it doesn't exist."""
        path = self.config_dir / filename
        if not path.is_file():
            return {}
        with path.open(encoding="utf-8") as f:
            return dict(json.load(f))


# Global settings instance
_settings: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the global settings instance.

    Args:
        config_dir: Optional config directory override.
        environment: Optional environment override.
        reload: Force reload settings from files.

    Returns:
        Settings instance.
    """
    global _settings  # noqa: PLW0603
    if _settings is None or reload:
        _settings = SettingsLoader(config_dir=config_dir, environment=environment).load()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance. Useful for testing."""
    global _settings  # noqa: PLW0603
    _settings = None
