"""Client-side RPC proxies.

``RpcProxy`` runs the call pipeline::

    id -> build envelope -> encode -> HTTP exchange -> decode -> resolve

``ServiceStub`` puts an interface class in front of a proxy so remote
methods read like local ones.

Example:
    ```python
    class Calculator(Protocol):
        def add(self, a: int, b: int) -> int: ...

    calc = create_proxy(Calculator, "http://localhost:8080/rpc")
    assert calc.add(2, 3) == 5
    ```
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from jsonrpc_proxy.codec import JsonCodec, MsgpackCodec, WireCodec
from jsonrpc_proxy.config import ProxyConfig
from jsonrpc_proxy.envelope import build_request
from jsonrpc_proxy.error import ErrorClassifier, InternalError, ParseError, RpcError
from jsonrpc_proxy.ids import CorrelationCounter
from jsonrpc_proxy.resolver import ResponseResolver
from jsonrpc_proxy.signature import InterfaceDescriptor, MethodSignature, as_signature
from jsonrpc_proxy.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RpcProxy:
    """Invokes remote methods over HTTP, one blocking exchange per call.

    A proxy may be shared between threads; the correlation counter is the
    only state calls share.

    Args:
        config: Configuration, or just the endpoint URL
        codec: Wire codec; defaults to ``codec_class`` in the configured encoding
        classifier: Error classifier used by the resolver
        transport: Transport override (mainly for tests); defaults to
            ``HttpTransport`` bound to this proxy's configuration
        seed: Initial correlation id; random when omitted
    """

    codec_class: type = JsonCodec

    def __init__(
        self,
        config: ProxyConfig | str,
        *,
        codec: WireCodec | None = None,
        classifier: ErrorClassifier | None = None,
        transport: Transport | None = None,
        seed: int | None = None,
    ) -> None:
        if isinstance(config, str):
            config = ProxyConfig(url=config)
        self._config = config
        self._codec: WireCodec = codec or self.codec_class(config.encoding)
        self._resolver = ResponseResolver(classifier)
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpTransport(config, self._codec.content_type)
        self._counter = CorrelationCounter(seed)

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def encoding(self) -> str:
        return self._config.encoding

    @property
    def codec(self) -> WireCodec:
        return self._codec

    @property
    def classifier(self) -> ErrorClassifier:
        return self._resolver.classifier

    @property
    def connect_timeout(self) -> int:
        """Connect timeout in milliseconds (non-positive: transport default)."""
        return self._config.connect_timeout

    @connect_timeout.setter
    def connect_timeout(self, value: int) -> None:
        self._config.connect_timeout = value

    @property
    def read_timeout(self) -> int:
        """Read timeout in milliseconds (non-positive: transport default)."""
        return self._config.read_timeout

    @read_timeout.setter
    def read_timeout(self, value: int) -> None:
        self._config.read_timeout = value

    def invoke(self, method: MethodSignature | str, args: Sequence[Any] | None = None) -> Any:
        """Call a remote method and block until its result arrives.

        Must not be called from a thread that is running an event loop; use
        ``invoke_async`` there.

        Args:
            method: The method's signature, or just its name
            args: Positional arguments

        Returns:
            The result converted to the signature's return type

        Raises:
            ParseError: Request or response bytes could not be (de)coded
            InternalError: Transport failure or protocol violation
            RpcError: Error reported by the server
            BaseException: A declared exception of the method
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.invoke_async(method, args))
        raise RuntimeError("invoke() cannot block inside a running event loop, use invoke_async()")

    async def invoke_async(
        self, method: MethodSignature | str, args: Sequence[Any] | None = None
    ) -> Any:
        """Coroutine form of ``invoke``."""
        signature = as_signature(method)
        correlation_id = self._counter.next_id()
        request = build_request(correlation_id, signature.name, args)

        try:
            request_bytes = self._codec.encode(request.to_json())
        except RpcError:
            raise
        except Exception as e:
            raise ParseError(f"Cannot encode request for {signature.name}: {e}") from e

        logger.debug(
            "Calling %s on %s (id=%d, %d bytes)",
            signature.name,
            self._config.url,
            correlation_id,
            len(request_bytes),
        )

        try:
            response_bytes = await self._transport.exchange_async(request_bytes)
        except RpcError:
            raise
        except Exception as e:
            raise InternalError(f"Transport failure calling {signature.name}: {e}") from e

        try:
            response = self._codec.decode(response_bytes)
        except RpcError:
            raise
        except Exception as e:
            raise ParseError(f"Cannot decode response for {signature.name}: {e}") from e

        logger.debug(
            "Received %d bytes for %s (id=%d)", len(response_bytes), signature.name, correlation_id
        )
        return self._resolver.resolve(correlation_id, response, signature)

    def copy(self) -> RpcProxy:
        """Return a proxy with its own configuration copy.

        The copy shares codec, classifier and correlation counter; timeout
        changes on one do not affect the other.
        """
        clone = copy.copy(self)
        clone._config = self._config.model_copy()
        if self._owns_transport:
            clone._transport = HttpTransport(clone._config, self._codec.content_type)
        return clone

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self._config.url!r}, codec={self._codec!r})"


class JsonRpcProxy(RpcProxy):
    """``RpcProxy`` speaking JSON on the wire."""

    codec_class = JsonCodec


class MsgpackRpcProxy(RpcProxy):
    """``RpcProxy`` speaking MessagePack on the wire."""

    codec_class = MsgpackCodec


class ServiceStub(Generic[T]):
    """Attribute-access front end for an interface class.

    Each public method of the interface becomes a callable attribute. Methods
    declared ``async def`` on the interface return coroutines.
    """

    __slots__ = ("_proxy", "_descriptor")

    def __init__(self, proxy: RpcProxy, interface: type[T] | InterfaceDescriptor) -> None:
        if not isinstance(interface, InterfaceDescriptor):
            interface = InterfaceDescriptor(interface)
        object.__setattr__(self, "_proxy", proxy)
        object.__setattr__(self, "_descriptor", interface)

    @property
    def rpc_proxy(self) -> RpcProxy:
        return self._proxy

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            msg = f"'{type(self).__name__}' object has no attribute '{name}'"
            raise AttributeError(msg)

        signature = self._descriptor.signature(name)
        proxy = self._proxy

        if signature.is_async:
            async def call_async(*args: Any, **kwargs: Any) -> Any:
                if kwargs:
                    raise NotImplementedError("Keyword arguments not supported in RPC calls")
                return await proxy.invoke_async(signature, args)

            call_async.__name__ = name
            return call_async

        def call(*args: Any, **kwargs: Any) -> Any:
            if kwargs:
                raise NotImplementedError("Keyword arguments not supported in RPC calls")
            return proxy.invoke(signature, args)

        call.__name__ = name
        return call

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"'{type(self).__name__}' object is read-only")

    def __dir__(self) -> list[str]:
        return sorted(self._descriptor.methods)

    def __repr__(self) -> str:
        return f"ServiceStub({self._descriptor.interface.__name__}, url={self._proxy.url!r})"


def create_proxy(
    interface: type[T],
    config: ProxyConfig | str,
    *,
    proxy_class: type[RpcProxy] = RpcProxy,
    **kwargs: Any,
) -> ServiceStub[T]:
    """Create a stub for ``interface`` backed by a new proxy.

    Args:
        interface: Class whose public methods describe the remote API
        config: Configuration, or just the endpoint URL
        proxy_class: ``RpcProxy`` or a subclass such as ``MsgpackRpcProxy``
        **kwargs: Passed to the proxy constructor

    Returns:
        A ``ServiceStub`` exposing the interface's methods
    """
    descriptor = InterfaceDescriptor(interface)
    return ServiceStub(proxy_class(config, **kwargs), descriptor)
