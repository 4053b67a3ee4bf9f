"""Pytest configuration for all tests."""

import asyncio
import json
import threading
from typing import Any, Callable

import pytest
from aiohttp import web

from jsonrpc_proxy.codec import JsonCodec
from jsonrpc_proxy.error import ErrorClassifier, MethodNotFoundError

# aiohttp_server fixture for the async HTTP tests
pytest_plugins = ["aiohttp.pytest_plugin"]


class MockTransport:
    """In-memory transport for testing.

    Decodes each request with ``codec``, hands the request tree to
    ``handler`` and encodes whatever it returns. A handler returning
    ``bytes`` bypasses the codec.
    """

    def __init__(self, handler: Callable[[dict], Any], codec: Any = None) -> None:
        self.handler = handler
        self.codec = codec or JsonCodec()
        self.requests: list[dict] = []
        self.raw_requests: list[bytes] = []
        self._lock = threading.Lock()

    async def exchange_async(self, body: bytes) -> bytes:
        request = self.codec.decode(body)
        with self._lock:
            self.raw_requests.append(body)
            self.requests.append(request)
        response = self.handler(request)
        if isinstance(response, bytes):
            return response
        return self.codec.encode(response)


class FailingTransport:
    """Transport whose exchange always raises ``error``."""

    def __init__(self, error: BaseException) -> None:
        self.error = error
        self.calls = 0

    async def exchange_async(self, body: bytes) -> bytes:
        self.calls += 1
        raise self.error


def dispatch(methods: dict[str, Callable[..., Any]], request: dict) -> dict:
    """Minimal JSON-RPC dispatch used by the test servers."""
    classifier = ErrorClassifier()
    response: dict[str, Any] = {"jsonrpc": "2.0", "id": request.get("id")}
    func = methods.get(request.get("method"))
    if func is None:
        response["error"] = classifier.to_payload(
            MethodNotFoundError(f"Method not found: {request.get('method')}")
        )
        return response
    try:
        response["result"] = func(*request.get("params", []))
    except Exception as e:
        response["error"] = classifier.to_payload(e)
    return response


def rpc_app(methods: dict[str, Callable[..., Any]], path: str = "/rpc") -> web.Application:
    """aiohttp application serving ``methods`` over JSON-RPC at ``path``.

    Every request's headers are recorded in ``app["seen_headers"]``.
    """
    app = web.Application()
    app["seen_headers"] = []

    async def handle(request: web.Request) -> web.Response:
        app["seen_headers"].append(dict(request.headers))
        body = await request.read()
        response = dispatch(methods, json.loads(body.decode("utf-8")))
        return web.Response(body=json.dumps(response).encode("utf-8"), content_type="application/json")

    app.router.add_post(path, handle)
    return app


class ThreadedServer:
    """Runs an aiohttp application on its own event loop thread.

    Lets blocking proxy calls (which drive their own event loop) talk to a
    real HTTP server.
    """

    def __init__(self, app: web.Application) -> None:
        self.app = app
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._runner: web.AppRunner | None = None
        self.port: int | None = None

    def start(self) -> "ThreadedServer":
        self._thread.start()
        asyncio.run_coroutine_threadsafe(self._start(), self._loop).result(timeout=10)
        return self

    async def _start(self) -> None:
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        self.port = self._runner.addresses[0][1]

    def url(self, path: str = "/rpc") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def stop(self) -> None:
        if self._runner is not None:
            asyncio.run_coroutine_threadsafe(self._runner.cleanup(), self._loop).result(timeout=10)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=10)
        self._loop.close()


@pytest.fixture
def serve():
    """Factory fixture: ``serve(app)`` starts a server and returns it."""
    servers: list[ThreadedServer] = []

    def start(app: web.Application) -> ThreadedServer:
        server = ThreadedServer(app).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


@pytest.fixture
def calculator_server(serve):
    """A JSON-RPC server exposing a few arithmetic methods."""

    class QuotaExceededException(Exception):
        pass

    def divide(a, b):
        return a / b

    def spend(amount):
        if amount > 10:
            raise QuotaExceededException("over budget")
        return 10 - amount

    methods = {
        "add": lambda a, b: a + b,
        "echo": lambda value: value,
        "divide": divide,
        "spend": spend,
        "ping": lambda: "pong",
    }
    return serve(rpc_app(methods))
