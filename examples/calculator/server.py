"""Simple calculator server speaking JSON-RPC over HTTP.

Run:
    python examples/calculator/server.py
"""

import asyncio
import json
from typing import Any

from aiohttp import web

from jsonrpc_proxy import ErrorClassifier, InvalidParamsError, MethodNotFoundError


class QuotaExceededException(Exception):
    """Raised when a caller asks for too much work."""


def handle_call(method: str, args: list[Any]) -> Any:
    """Dispatch one call."""
    match method:
        case "add":
            return args[0] + args[1]
        case "subtract":
            return args[0] - args[1]
        case "multiply":
            return args[0] * args[1]
        case "divide":
            if args[1] == 0:
                raise InvalidParamsError("Division by zero")
            return args[0] / args[1]
        case "factorial":
            if args[0] > 100:
                raise QuotaExceededException()
            result = 1
            for i in range(2, args[0] + 1):
                result *= i
            return result
        case _:
            raise MethodNotFoundError(f"Method '{method}' not found")


async def main() -> None:
    """Run the calculator server."""
    classifier = ErrorClassifier()

    async def rpc_handler(request: web.Request) -> web.Response:
        call = json.loads(await request.read())
        response: dict[str, Any] = {"jsonrpc": "2.0", "id": call.get("id")}
        try:
            response["result"] = handle_call(call["method"], call.get("params", []))
        except Exception as e:
            response["error"] = classifier.to_payload(e)
        return web.json_response(response)

    app = web.Application()
    app.router.add_post("/rpc", rpc_handler)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, "127.0.0.1", 8080)
    await site.start()

    print("🧮 Calculator server running on http://127.0.0.1:8080")
    print("   Endpoint: http://127.0.0.1:8080/rpc")
    print()
    print("Run client with: python examples/calculator/client.py")
    print("Press Ctrl+C to stop")

    try:
        await asyncio.Event().wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    asyncio.run(main())
