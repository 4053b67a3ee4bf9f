"""Request envelope construction."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from jsonrpc_proxy.constants import ID, JSONRPC, METHOD, PARAMS, PROTOCOL_VERSION


@dataclass(frozen=True, slots=True)
class RequestEnvelope:
    """A single call: ``{"jsonrpc", "method", "params", "id"}``.

    The correlation id travels as its decimal string form.
    """

    correlation_id: int
    method: str
    params: tuple[Any, ...] = ()

    def to_json(self) -> dict[str, Any]:
        """Convert to the structured tree handed to the codec."""
        return {
            JSONRPC: PROTOCOL_VERSION,
            METHOD: self.method,
            PARAMS: list(self.params),
            ID: str(self.correlation_id),
        }


def build_request(
    correlation_id: int,
    method_name: str,
    arguments: Sequence[Any] | None = None,
) -> RequestEnvelope:
    """Build the envelope for one call.

    Args:
        correlation_id: Id that the response must echo back
        method_name: Remote method name (non-empty)
        arguments: Positional arguments in call-site order; ``None`` means none

    Returns:
        The immutable request envelope
    """
    if not method_name:
        raise ValueError("Method name cannot be empty")
    params = tuple(arguments) if arguments is not None else ()
    return RequestEnvelope(correlation_id, method_name, params)


def parse_id(value: Any) -> int | None:
    """Read a correlation id sent as an integer, a whole-number float or a decimal string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
