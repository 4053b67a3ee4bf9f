"""Method signature metadata for remote interfaces.

A remote interface is an ordinary class (a ``Protocol`` or ABC works well)
whose public methods describe the remote API. Python has no checked
exceptions, so the exceptions a method may raise are declared with
``@throws``::

    class QuotaExceededException(Exception):
        pass

    class Storage(Protocol):
        @throws(QuotaExceededException)
        def put(self, key: str, value: bytes) -> int: ...

        async def get(self, key: str) -> bytes: ...

``InterfaceDescriptor`` turns such a class into ``MethodSignature`` objects
once, at proxy setup time.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar, get_type_hints

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

THROWS_ATTR = "__rpc_throws__"


def throws(*exceptions: type[BaseException]) -> Callable[[F], F]:
    """Declare the application exceptions a remote method may raise.

    When the server reports a server error whose message is exactly the
    ``__name__`` of one of these types, the proxy raises a fresh instance
    of that type instead of ``ServerError``. Declared types must be
    constructible without arguments.
    """
    for exc_type in exceptions:
        if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
            raise TypeError(f"Expected an exception type, got {exc_type!r}")

    def decorate(func: F) -> F:
        setattr(func, THROWS_ATTR, tuple(exceptions))
        return func

    return decorate


@dataclass(frozen=True, slots=True)
class MethodSignature:
    """What the proxy needs to know about one remote method.

    Attributes:
        name: Remote method name
        return_type: Type the result is converted into (``Any`` = as decoded)
        exceptions: Declared application exception types, in order
        is_async: Whether stub calls return a coroutine
    """

    name: str
    return_type: Any = Any
    exceptions: tuple[type[BaseException], ...] = ()
    is_async: bool = False

    def exception_for(self, message: str) -> type[BaseException] | None:
        """Return the declared exception type whose simple name is ``message``."""
        for exc_type in self.exceptions:
            if exc_type.__name__ == message:
                return exc_type
        return None

    @classmethod
    def from_function(cls, func: Callable[..., Any], name: str | None = None) -> MethodSignature:
        """Build a signature from a function's annotations and ``@throws``."""
        try:
            hints = get_type_hints(func)
        except (NameError, TypeError) as e:
            logger.debug("Cannot resolve type hints for %s: %s", func.__qualname__, e)
            hints = {}

        return_type = hints.get("return", Any)
        if return_type is None:
            return_type = type(None)

        return cls(
            name=name or func.__name__,
            return_type=return_type,
            exceptions=getattr(func, THROWS_ATTR, ()),
            is_async=inspect.iscoroutinefunction(func),
        )


def as_signature(method: MethodSignature | str) -> MethodSignature:
    """Accept either a full signature or a bare method name."""
    if isinstance(method, MethodSignature):
        return method
    return MethodSignature(method)


class InterfaceDescriptor:
    """The remote methods of an interface class, keyed by name.

    Public functions defined on the class (and its bases) become remote
    methods; names starting with ``_`` are skipped.
    """

    __slots__ = ("interface", "methods")

    def __init__(self, interface: type) -> None:
        if not isinstance(interface, type):
            raise TypeError(f"Expected an interface class, got {type(interface).__name__}")
        self.interface = interface
        self.methods: dict[str, MethodSignature] = {
            name: MethodSignature.from_function(func, name)
            for name, func in inspect.getmembers(interface, inspect.isfunction)
            if not name.startswith("_")
        }

    def signature(self, name: str) -> MethodSignature:
        """Return the signature for ``name``.

        Raises:
            AttributeError: If the interface declares no such method
        """
        try:
            return self.methods[name]
        except KeyError:
            raise AttributeError(
                f"{self.interface.__name__} has no remote method '{name}'"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self.methods

    def __repr__(self) -> str:
        return f"InterfaceDescriptor({self.interface.__name__}, methods={sorted(self.methods)})"
