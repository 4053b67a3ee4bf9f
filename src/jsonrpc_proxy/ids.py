"""Correlation id allocation."""

from __future__ import annotations

import random
import threading

from jsonrpc_proxy.constants import ID_MAX, ID_MIN

_ID_SPAN = ID_MAX - ID_MIN + 1


def wrap_id(value: int) -> int:
    """Wrap an integer into the signed 32-bit id space."""
    return (value - ID_MIN) % _ID_SPAN + ID_MIN


class CorrelationCounter:
    """Thread-safe fetch-and-increment counter for correlation ids.

    Starts from a random seed so ids from different proxies rarely collide,
    and wraps from ``ID_MAX`` to ``ID_MIN``.
    """

    __slots__ = ("_lock", "_next")

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = random.randint(ID_MIN, ID_MAX)
        self._lock = threading.Lock()
        self._next = wrap_id(seed)

    def next_id(self) -> int:
        """Return the current id and advance the counter."""
        with self._lock:
            current = self._next
            self._next = wrap_id(current + 1)
        return current

    def peek(self) -> int:
        """Return the id the next call will receive."""
        with self._lock:
            return self._next

    def __repr__(self) -> str:
        return f"CorrelationCounter(next={self.peek()})"
