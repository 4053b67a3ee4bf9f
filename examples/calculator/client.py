"""Simple calculator client using a JSON-RPC proxy.

Run (after starting server):
    python examples/calculator/client.py
"""

from typing import Protocol

from jsonrpc_proxy import InvalidParamsError, ProxyConfig, create_proxy, throws


class QuotaExceededException(Exception):
    """Raised by the server when a caller asks for too much work."""


class Calculator(Protocol):
    def add(self, a: int, b: int) -> int: ...

    def subtract(self, a: int, b: int) -> int: ...

    def multiply(self, a: int, b: int) -> int: ...

    def divide(self, a: float, b: float) -> float: ...

    @throws(QuotaExceededException)
    def factorial(self, n: int) -> int: ...


def main() -> None:
    """Run the calculator client."""
    print("🧮 Calculator Client")
    print("=" * 40)

    config = ProxyConfig(url="http://127.0.0.1:8080/rpc", connect_timeout=3000, read_timeout=5000)
    calc = create_proxy(Calculator, config)

    print("\nTesting add(5, 3)...")
    print(f"  5 + 3 = {calc.add(5, 3)}")

    print("\nTesting subtract(10, 4)...")
    print(f"  10 - 4 = {calc.subtract(10, 4)}")

    print("\nTesting multiply(7, 6)...")
    print(f"  7 × 6 = {calc.multiply(7, 6)}")

    print("\nTesting divide(20, 4)...")
    print(f"  20 ÷ 4 = {calc.divide(20, 4)}")

    print("\nTesting divide(10, 0) - should fail...")
    try:
        result = calc.divide(10, 0)
        print(f"  Unexpected success: {result}")
    except InvalidParamsError as e:
        print(f"  Expected error: {e} (code {e.code})")

    print("\nTesting factorial(1000) - should raise the declared exception...")
    try:
        calc.factorial(1000)
    except QuotaExceededException:
        print("  Expected error: QuotaExceededException")

    print("\n" + "=" * 40)
    print("✅ All tests completed!")


if __name__ == "__main__":
    main()
