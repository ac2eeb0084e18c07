"""Logical asset names and their extraction from delivery URLs."""

from __future__ import annotations

import re
import time
import uuid
from pathlib import PurePosixPath
from urllib.parse import quote, unquote, urljoin, urlsplit

# Extensions are kept only when short and alphanumeric
_EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,10}$")

# Characters that never appear in a generated logical name
_UNSAFE_NAME_PATTERN = re.compile(r"[\\/\x00-\x1f]")

DEFAULT_NAME_PREFIX = "upload_"


def safe_extension(original_filename: str | None) -> str:
    """Return the lower-cased extension of a client filename, or ''.

    Anything that does not look like a plain extension (``.jpg``, ``.webp``)
    is dropped so that client input cannot inject path segments or query
    characters into a logical name.
    """
    if not original_filename:
        return ""
    suffix = PurePosixPath(original_filename.replace("\\", "/")).suffix.lower()
    if _EXTENSION_PATTERN.match(suffix):
        return suffix
    return ""


def generate_logical_name(
    original_filename: str | None,
    prefix: str = DEFAULT_NAME_PREFIX,
) -> str:
    """Build a new logical name for an upload.

    Format: ``<prefix><unix millis>_<uuid4 hex><extension>``. The timestamp
    keeps names roughly sortable by upload time; the 122 random bits of the
    uuid make a collision between two live names negligible.

    Examples:
        >>> name = generate_logical_name("photo.JPG")
        >>> name.startswith("upload_") and name.endswith(".jpg")
        True
    """
    millis = time.time_ns() // 1_000_000
    return f"{prefix}{millis}_{uuid.uuid4().hex}{safe_extension(original_filename)}"


def extract_logical_name(
    url: str | None,
    proxy_route: str = "/image-proxy",
) -> str | None:
    """Extract the logical name embedded in an entity's image URL.

    The logical name is the final path segment of the URL. Query strings
    and fragments are ignored and percent-encoding is decoded. Proxied
    images (URLs pointing at the image proxy) never name a local blob, so
    ``None`` is returned for them, as it is for empty or malformed input.

    This function never raises.

    Examples:
        >>> extract_logical_name("https://shop.test/api/files/upload_1_ab.png")
        'upload_1_ab.png'
        >>> extract_logical_name("https://shop.test/api/image-proxy?url=x") is None
        True
    """
    if not url or not isinstance(url, str):
        return None

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    path = parts.path.rstrip("/")
    if not path:
        return None
    if proxy_route and path.endswith(proxy_route.rstrip("/")):
        return None

    segment = unquote(path.rsplit("/", 1)[-1]).strip()
    if not segment or segment in (".", ".."):
        return None
    if _UNSAFE_NAME_PATTERN.search(segment):
        return None
    return segment


def to_same_origin(url: str | None, origin: str, proxy_path: str) -> str | None:
    """Make an image URL loadable from ``origin``.

    Relative and same-origin URLs are resolved against ``origin``; anything
    else is routed through the image proxy at ``proxy_path``. Unparsable
    input is returned unchanged.

    Examples:
        >>> to_same_origin("/api/files/a.png", "http://shop.test", "/api/image-proxy")
        'http://shop.test/api/files/a.png'
        >>> to_same_origin("https://cdn.test/a.png", "http://shop.test", "/p")
        'http://shop.test/p?url=https%3A%2F%2Fcdn.test%2Fa.png'
    """
    if not url:
        return url
    origin = origin.rstrip("/")
    try:
        absolute = urljoin(origin + "/", url.strip())
        parts = urlsplit(absolute)
    except ValueError:
        return url

    if f"{parts.scheme}://{parts.netloc}".lower() == origin.lower():
        return absolute
    return f"{origin}{proxy_path}?url={quote(absolute, safe='')}"
