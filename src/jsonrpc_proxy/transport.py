"""HTTP transport: one POST per call, full response body read into memory.

Every exchange opens its own aiohttp session over a non-pooling connector
and closes it before returning, whatever the outcome. Connect and read
timeouts come from the proxy configuration at the time of the call.

Response body routing (kept compatible with existing servers):

1. HTTP 200: read the success body.
2. Any other status, when the response MIME type equals the codec's and an
   error body is present: read the error body.
3. Otherwise: fall back to the primary body anyway.

The status code alone never fails a call; whatever body arrives goes to the
codec and the resolver. aiohttp exposes a single body stream, so steps 2 and
3 read the same stream and differ only in how they are reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import aiohttp

from jsonrpc_proxy.config import ProxyConfig, timeout_seconds
from jsonrpc_proxy.error import InternalError

logger = logging.getLogger(__name__)

HTTP_OK = 200


class Transport(Protocol):
    """Protocol for request/response transports used by the proxy."""

    async def exchange_async(self, body: bytes) -> bytes:
        """Send one encoded request and return the encoded response.

        Raises:
            InternalError: On any I/O failure
        """
        ...


class BodyStream(Protocol):
    """The part of ``aiohttp.StreamReader`` the body reader needs."""

    async def read(self, n: int = -1) -> bytes: ...


async def read_body(stream: BodyStream, length: int | None, url: str) -> bytes:
    """Read up to ``length`` bytes from ``stream``.

    A short read (the stream ends before ``length`` bytes) returns whatever
    arrived.

    Raises:
        InternalError: If no length was declared, or nothing was read
    """
    if length is None or length <= 0:
        raise InternalError("no response to get.")

    buffer = bytearray()
    while len(buffer) < length:
        try:
            chunk = await stream.read(length - len(buffer))
        except aiohttp.ClientPayloadError as e:
            logger.debug("Response from %s ended early after %d bytes: %s", url, len(buffer), e)
            break
        if not chunk:
            break
        buffer.extend(chunk)

    if not buffer:
        raise InternalError(f"there is no service to {url}")

    if len(buffer) < length:
        logger.debug("Short read from %s: %d of %d bytes", url, len(buffer), length)
    return bytes(buffer)


class HttpTransport:
    """Blocking-per-call HTTP POST transport.

    Args:
        config: Proxy configuration, read at every call so timeout changes
            apply to subsequent calls
        content_type: The codec's MIME type
    """

    __slots__ = ("_config", "_content_type")

    def __init__(self, config: ProxyConfig, content_type: str) -> None:
        self._config = config
        self._content_type = content_type

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def content_type(self) -> str:
        return self._content_type

    def request_headers(self, body: bytes) -> dict[str, str]:
        """Headers for a request carrying ``body``."""
        return {
            "Content-Type": f"{self._content_type};charset={self._config.encoding}",
            "Content-Length": str(len(body)),
        }

    def client_timeout(self) -> aiohttp.ClientTimeout:
        """Build the aiohttp timeout from the current configuration."""
        return aiohttp.ClientTimeout(
            total=None,
            sock_connect=timeout_seconds(self._config.connect_timeout),
            sock_read=timeout_seconds(self._config.read_timeout),
        )

    def select_body(self, response: aiohttp.ClientResponse) -> tuple[str, aiohttp.StreamReader]:
        """Pick the body stream to read, labelled for logging."""
        if response.status == HTTP_OK:
            return "success", response.content

        has_error_body = bool(response.content_length)
        if response.content_type.lower() == self._content_type.lower() and has_error_body:
            logger.warning(
                "HTTP %d from %s, reading error body", response.status, self._config.url
            )
            return "error", response.content

        logger.warning(
            "HTTP %d from %s with content type %r, falling back to primary body",
            response.status,
            self._config.url,
            response.content_type,
        )
        return "primary", response.content

    def exchange(self, body: bytes) -> bytes:
        """Blocking variant of ``exchange_async`` for use outside an event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.exchange_async(body))
        raise RuntimeError(
            "exchange() cannot block inside a running event loop, use exchange_async()"
        )

    async def exchange_async(self, body: bytes) -> bytes:
        """POST ``body`` to the configured URL and return the response body.

        Raises:
            InternalError: On connect/write/read/close failures, timeouts, or
                a response without a usable body
        """
        url = self._config.url
        headers = self.request_headers(body)
        connector = aiohttp.TCPConnector(force_close=True)

        try:
            async with aiohttp.ClientSession(
                connector=connector,
                timeout=self.client_timeout(),
                auto_decompress=False,
                skip_auto_headers=("Accept-Encoding",),
            ) as session:
                async with session.post(url, data=body, headers=headers) as response:
                    label, stream = self.select_body(response)
                    logger.debug(
                        "Reading %s body from %s (HTTP %d, %s bytes declared)",
                        label,
                        url,
                        response.status,
                        response.content_length,
                    )
                    return await read_body(stream, response.content_length, url)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise InternalError(f"HTTP exchange with {url} failed: {e}") from e

    def __repr__(self) -> str:
        return f"HttpTransport(url={self._config.url!r}, content_type={self._content_type!r})"
