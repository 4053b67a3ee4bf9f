"""Tests for the HTTP transport.

These tests run real HTTP exchanges against aiohttp servers (hosted on a
background thread for blocking calls, or by the aiohttp_server fixture for
async ones), and exercise body reading with in-memory streams.
"""

import asyncio
import json
import socket

import aiohttp
import pytest
from aiohttp import web

from jsonrpc_proxy.config import ProxyConfig
from jsonrpc_proxy.error import InternalError
from jsonrpc_proxy.transport import HttpTransport, read_body


class ChunkStream:
    """In-memory stand-in for aiohttp.StreamReader."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.reads: list[int] = []

    async def read(self, n: int = -1) -> bytes:
        self.reads.append(n)
        if self.chunks:
            return self.chunks.pop(0)[:n]
        if self.error is not None:
            raise self.error
        return b""


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def transport_for(url: str, **config) -> HttpTransport:
    return HttpTransport(ProxyConfig(url=url, **config), "application/json")


def raw_app(handler, path: str = "/rpc") -> web.Application:
    app = web.Application()
    app.router.add_post(path, handler)
    return app


class TestReadBody:
    """Tests for read_body."""

    @pytest.mark.asyncio
    async def test_reads_declared_length_in_chunks(self) -> None:
        """Test the declared length is read across chunks."""
        stream = ChunkStream([b"abc", b"def"])
        assert await read_body(stream, 6, "http://h/rpc") == b"abcdef"
        assert stream.reads == [6, 3]

    @pytest.mark.asyncio
    async def test_short_read_returns_partial_body(self) -> None:
        """Test a short read returns what arrived."""
        stream = ChunkStream([b"abc"])
        assert await read_body(stream, 10, "http://h/rpc") == b"abc"

    @pytest.mark.asyncio
    async def test_payload_error_after_partial_read(self) -> None:
        """Test a payload error after a partial read."""
        stream = ChunkStream([b"abc"], error=aiohttp.ClientPayloadError("cut off"))
        assert await read_body(stream, 10, "http://h/rpc") == b"abc"

    @pytest.mark.asyncio
    async def test_nothing_read(self) -> None:
        """Test reading nothing raises InternalError."""
        with pytest.raises(InternalError, match="there is no service to http://h/rpc"):
            await read_body(ChunkStream([]), 10, "http://h/rpc")

    @pytest.mark.asyncio
    async def test_unknown_length(self) -> None:
        """Test an unknown length raises InternalError."""
        with pytest.raises(InternalError, match="no response to get"):
            await read_body(ChunkStream([b"abc"]), None, "http://h/rpc")

    @pytest.mark.asyncio
    async def test_zero_length(self) -> None:
        """Test a zero length raises InternalError."""
        stream = ChunkStream([b"abc"])
        with pytest.raises(InternalError, match="no response to get"):
            await read_body(stream, 0, "http://h/rpc")
        assert stream.reads == []


class TestHttpTransportSetup:
    """Tests for headers and timeouts derived from configuration."""

    def test_request_headers(self) -> None:
        """Test request headers."""
        transport = HttpTransport(
            ProxyConfig(url="http://h/rpc", encoding="GBK"), "application/json"
        )
        assert transport.request_headers(b"12345") == {
            "Content-Type": "application/json;charset=GBK",
            "Content-Length": "5",
        }

    def test_default_timeouts_are_unbounded(self) -> None:
        """Test unset timeouts are unbounded."""
        timeout = transport_for("http://h/rpc").client_timeout()
        assert timeout.total is None
        assert timeout.sock_connect is None
        assert timeout.sock_read is None

    def test_timeouts_follow_config_changes(self) -> None:
        """Test timeouts follow config changes."""
        config = ProxyConfig(url="http://h/rpc")
        transport = HttpTransport(config, "application/json")
        config.connect_timeout = 2000
        config.read_timeout = 500
        timeout = transport.client_timeout()
        assert timeout.sock_connect == 2.0
        assert timeout.sock_read == 0.5


class TestHttpExchange:
    """Tests for HttpTransport.exchange against real servers."""

    def test_success_body(self, serve) -> None:
        """Test reading a success body."""
        seen = {}

        async def handler(request: web.Request) -> web.Response:
            seen["content_type"] = request.headers["Content-Type"]
            seen["content_length"] = request.headers["Content-Length"]
            seen["method"] = request.method
            seen["body"] = await request.read()
            return web.Response(body=b'{"ok":true}', content_type="application/json")

        server = serve(raw_app(handler))
        body = b'{"jsonrpc":"2.0"}'
        assert transport_for(server.url()).exchange(body) == b'{"ok":true}'
        assert seen == {
            "content_type": "application/json;charset=UTF-8",
            "content_length": str(len(body)),
            "method": "POST",
            "body": body,
        }

    async def test_exchange_async(self, aiohttp_server) -> None:
        """Test the coroutine form of exchange."""
        async def handler(request: web.Request) -> web.Response:
            return web.Response(body=await request.read(), content_type="application/json")

        server = await aiohttp_server(raw_app(handler))
        transport = transport_for(str(server.make_url("/rpc")))
        assert await transport.exchange_async(b"[1,2,3]") == b"[1,2,3]"

    def test_error_body_with_matching_content_type(self, serve) -> None:
        """Test an error body with a matching content type."""
        payload = b'{"jsonrpc":"2.0","error":{"code":-32603,"message":"boom"}}'

        async def handler(request: web.Request) -> web.Response:
            return web.Response(status=500, body=payload, content_type="application/json")

        server = serve(raw_app(handler))
        assert transport_for(server.url()).exchange(b"{}") == payload

    def test_non_200_other_content_type_still_reads_body(self, serve) -> None:
        """Test a non-200 body of another type is still read."""
        async def handler(request: web.Request) -> web.Response:
            return web.Response(status=502, text="<html>bad gateway</html>", content_type="text/html")

        server = serve(raw_app(handler))
        assert transport_for(server.url()).exchange(b"{}") == b"<html>bad gateway</html>"

    def test_empty_success_body(self, serve) -> None:
        """Test an empty success body."""
        async def handler(request: web.Request) -> web.Response:
            return web.Response(status=200, body=b"", content_type="application/json")

        server = serve(raw_app(handler))
        with pytest.raises(InternalError, match="no response to get"):
            transport_for(server.url()).exchange(b"{}")

    def test_chunked_response_is_rejected(self, serve) -> None:
        """Test a chunked response without a length is rejected."""
        async def handler(request: web.Request) -> web.StreamResponse:
            response = web.StreamResponse(headers={"Content-Type": "application/json"})
            response.enable_chunked_encoding()
            await response.prepare(request)
            await response.write(b'{"ok":')
            await response.write(b"true}")
            await response.write_eof()
            return response

        server = serve(raw_app(handler))
        with pytest.raises(InternalError, match="no response to get"):
            transport_for(server.url()).exchange(b"{}")

    def test_unknown_path_reads_404_body(self, serve) -> None:
        """Test a 404 body is read."""
        async def handler(request: web.Request) -> web.Response:
            return web.Response(text="unused")

        server = serve(raw_app(handler))
        assert b"404" in transport_for(server.url("/missing")).exchange(b"{}")

    def test_connection_refused(self) -> None:
        """Test a refused connection raises InternalError."""
        transport = transport_for(f"http://127.0.0.1:{free_port()}/rpc")
        with pytest.raises(InternalError, match="HTTP exchange with") as exc_info:
            transport.exchange(b"{}")
        assert isinstance(exc_info.value.__cause__, (aiohttp.ClientError, OSError))

    def test_read_timeout(self, serve) -> None:
        """Test a read timeout raises InternalError."""
        async def handler(request: web.Request) -> web.Response:
            await asyncio.sleep(2)
            return web.Response(body=b"{}", content_type="application/json")

        server = serve(raw_app(handler))
        transport = transport_for(server.url(), read_timeout=200)
        with pytest.raises(InternalError):
            transport.exchange(b"{}")

    def test_one_connection_per_call(self, serve) -> None:
        """Test each call uses its own connection."""
        peers = []

        async def handler(request: web.Request) -> web.Response:
            peers.append(request.transport.get_extra_info("peername"))
            return web.Response(body=json.dumps(len(peers)).encode(), content_type="application/json")

        server = serve(raw_app(handler))
        transport = transport_for(server.url())
        assert transport.exchange(b"{}") == b"1"
        assert transport.exchange(b"{}") == b"2"
        assert peers[0] != peers[1]
