"""Domain value objects."""

from src.domain.value_objects.asset_name import (
    DEFAULT_NAME_PREFIX,
    extract_logical_name,
    generate_logical_name,
    safe_extension,
    to_same_origin,
)

__all__ = [
    "DEFAULT_NAME_PREFIX",
    "extract_logical_name",
    "generate_logical_name",
    "safe_extension",
    "to_same_origin",
]
