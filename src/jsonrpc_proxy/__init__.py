"""jsonrpc-proxy - client-side JSON-RPC bindings over HTTP.

Describe a remote API as a Python interface class, get a proxy whose method
calls are marshalled into JSON-RPC requests, POSTed over HTTP, and turned
back into typed results or typed errors.
"""

from jsonrpc_proxy.codec import JsonCodec, MsgpackCodec, WireCodec
from jsonrpc_proxy.config import ProxyConfig
from jsonrpc_proxy.envelope import RequestEnvelope, build_request
from jsonrpc_proxy.error import (
    ErrorClassifier,
    ErrorCode,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    ParseError,
    RemoteCause,
    RpcError,
    ServerError,
)
from jsonrpc_proxy.ids import CorrelationCounter
from jsonrpc_proxy.proxy import (
    JsonRpcProxy,
    MsgpackRpcProxy,
    RpcProxy,
    ServiceStub,
    create_proxy,
)
from jsonrpc_proxy.resolver import ResponseResolver
from jsonrpc_proxy.signature import InterfaceDescriptor, MethodSignature, throws
from jsonrpc_proxy.transport import HttpTransport, Transport

__version__ = "0.1.0"

__all__ = [
    # Proxies
    "RpcProxy",
    "JsonRpcProxy",
    "MsgpackRpcProxy",
    "ServiceStub",
    "create_proxy",
    # Interface metadata
    "MethodSignature",
    "InterfaceDescriptor",
    "throws",
    # Configuration (Pydantic model)
    "ProxyConfig",
    # Errors
    "RpcError",
    "ErrorCode",
    "ErrorClassifier",
    "RemoteCause",
    "ParseError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "InvalidParamsError",
    "InternalError",
    "ServerError",
    # Pipeline pieces
    "WireCodec",
    "JsonCodec",
    "MsgpackCodec",
    "RequestEnvelope",
    "build_request",
    "ResponseResolver",
    "CorrelationCounter",
    "Transport",
    "HttpTransport",
]
