"""Same-origin proxy for third-party images."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from urllib.parse import urlsplit

import httpx

from src.commons.settings.models import ProxySettings
from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    BadGatewayError,
    InvalidProxyUrlError,
    UnsupportedMediaTypeError,
    UpstreamTimeoutError,
)

logger = get_logger(__name__)


@dataclass
class ProxiedImage:
    """An upstream image response whose body has not been read yet.

    The upstream response is closed once ``body()`` finishes or fails, and
    by ``aclose()`` when the body is never consumed. ``deadline`` is the
    event loop time by which the whole fetch, body included, must be done.
    """

    url: str
    content_type: str
    headers: dict[str, str]
    response: httpx.Response
    max_bytes: int = 0
    deadline: float | None = None
    timeout_seconds: float = 0.0
    _closed: bool = field(default=False, repr=False)

    async def body(self) -> AsyncIterator[bytes]:
        received = 0
        chunks = self.response.aiter_bytes()
        try:
            while True:
                try:
                    async with asyncio.timeout_at(self.deadline):
                        chunk = await anext(chunks)
                except StopAsyncIteration:
                    break
                except (TimeoutError, httpx.TimeoutException) as e:
                    raise UpstreamTimeoutError(self.url, self.timeout_seconds) from e
                received += len(chunk)
                if self.max_bytes and received > self.max_bytes:
                    raise BadGatewayError(
                        self.url, f"upstream image exceeds {self.max_bytes} bytes"
                    )
                yield chunk
        except Exception:
            logger.warning(
                "Proxy stream aborted",
                exc_info=True,
                extra={"url": self.url, "bytes_forwarded": received},
            )
            raise
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self.response.aclose()


class ImageProxyService:
    """Fetches remote images and hands them back for same-origin delivery.

    Enforces:
    - a scheme allow-list (http/https by default)
    - an upstream timeout
    - an ``image/*`` content type, checked before any byte is forwarded
    """

    def __init__(self, client: httpx.AsyncClient, settings: ProxySettings) -> None:
        self._client = client
        self._settings = settings

    def validate_url(self, url: str | None) -> str:
        """Check that a URL can be proxied.

        Returns:
            The stripped URL.

        Raises:
            InvalidProxyUrlError: Unparsable, missing host or scheme not allowed.
        """
        candidate = (url or "").strip()
        if not candidate:
            raise InvalidProxyUrlError("", "URL is required")
        try:
            parts = urlsplit(candidate)
            hostname = parts.hostname
        except ValueError as e:
            raise InvalidProxyUrlError(candidate, "URL could not be parsed") from e

        allowed = {s.lower() for s in self._settings.allowed_schemes}
        if parts.scheme.lower() not in allowed:
            raise InvalidProxyUrlError(
                candidate, f"scheme '{parts.scheme}' is not allowed"
            )
        if not hostname:
            raise InvalidProxyUrlError(candidate, "URL has no host")
        return candidate

    def response_headers(
        self, content_type: str, content_length: str | None
    ) -> dict[str, str]:
        headers = {
            "Content-Type": content_type,
            "Cache-Control": f"public, max-age={self._settings.cache_max_age_seconds}",
            "Access-Control-Allow-Origin": "*",
            "Cross-Origin-Resource-Policy": "cross-origin",
        }
        if content_length is not None:
            headers["Content-Length"] = content_length
        return headers

    async def fetch(self, url: str | None) -> ProxiedImage:
        """Open an upstream image.

        The caller must consume ``body()`` or call ``aclose()``.

        Raises:
            InvalidProxyUrlError: The URL cannot be proxied.
            UpstreamTimeoutError: The upstream did not answer in time.
            BadGatewayError: Network error or non-2xx upstream status.
            UnsupportedMediaTypeError: The upstream body is not an image.
        """
        target = self.validate_url(url)
        timeout = self._settings.timeout_seconds

        try:
            request = self._client.build_request(
                "GET",
                target,
                headers={"User-Agent": self._settings.user_agent, "Accept": "image/*"},
                timeout=timeout,
            )
        except httpx.InvalidURL as e:
            raise InvalidProxyUrlError(target, str(e)) from e

        # httpx timeouts bound each network step; this bounds the whole fetch
        deadline = asyncio.get_running_loop().time() + timeout
        try:
            async with asyncio.timeout_at(deadline):
                response = await self._client.send(request, stream=True)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Upstream image timed out", extra={"url": target})
            raise UpstreamTimeoutError(target, timeout) from e
        except httpx.HTTPError as e:
            logger.warning(
                "Upstream image fetch failed",
                extra={"url": target, "error": str(e)},
            )
            raise BadGatewayError(target, type(e).__name__) from e

        try:
            return self._accept(target, response, deadline)
        except BaseException:
            await response.aclose()
            raise

    def _accept(
        self, target: str, response: httpx.Response, deadline: float | None = None
    ) -> ProxiedImage:
        if not response.is_success:
            logger.info(
                "Upstream image returned error status",
                extra={"url": target, "status_code": response.status_code},
            )
            raise BadGatewayError(
                target, f"upstream responded with status {response.status_code}"
            )

        raw_type = response.headers.get("content-type", "")
        content_type = raw_type.split(";", 1)[0].strip().lower()
        if not content_type.startswith("image/"):
            raise UnsupportedMediaTypeError(target, raw_type)

        content_length = response.headers.get("content-length")
        max_bytes = self._settings.max_bytes
        if max_bytes and content_length and content_length.isdigit():
            if int(content_length) > max_bytes:
                raise BadGatewayError(
                    target, f"upstream image exceeds {max_bytes} bytes"
                )

        # Decoded bodies differ in length from an encoded Content-Length
        if response.headers.get("content-encoding"):
            content_length = None

        return ProxiedImage(
            url=target,
            content_type=raw_type.strip(),
            headers=self.response_headers(raw_type.strip(), content_length),
            response=response,
            max_bytes=max_bytes,
            deadline=deadline,
            timeout_seconds=self._settings.timeout_seconds,
        )
