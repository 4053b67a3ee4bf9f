"""Error taxonomy and the classifier that maps wire error payloads onto it.

Every failure the proxy reports is an ``RpcError`` subclass, except for
application exceptions declared by the called method (see ``resolver``).

Wire error payload::

    {"code": -32603, "message": "boom",
     "cause": {"type": "IOError", "message": "disk full"},   # optional
     "type": "InternalError",                                 # optional
     "data": {...}}                                           # optional
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any

from jsonrpc_proxy.constants import (
    ERROR_CAUSE,
    ERROR_CODE,
    ERROR_DATA,
    ERROR_MESSAGE,
    ERROR_TYPE,
)

logger = logging.getLogger(__name__)

# Codes reserved for implementation-defined server errors
SERVER_ERROR_MIN = -32099
SERVER_ERROR_MAX = -32000


class ErrorCode(IntEnum):
    """Stable numeric error codes (JSON-RPC 2.0 numbering)."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000


class RemoteCause(Exception):
    """The underlying cause reported by the remote peer.

    Attached as ``__cause__`` of classified errors so tracebacks show what
    went wrong on the other side.
    """

    def __init__(self, message: str = "", type_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.type_name = type_name

    def __str__(self) -> str:
        if self.type_name:
            return f"{self.type_name}: {self.message}" if self.message else self.type_name
        return self.message

    def __repr__(self) -> str:
        return f"RemoteCause(type_name={self.type_name!r}, message={self.message!r})"


class RpcError(Exception):
    """Base class for every RPC failure.

    Attributes:
        code: Numeric wire code. Defaults to the class code; a classified
            error keeps the code the peer actually sent.
        message: Human-readable message.
        data: Optional structured details sent by the peer.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str = "",
        *,
        code: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = int(self.default_code if code is None else code)
        self.data = data

    @property
    def kind(self) -> ErrorCode:
        """The taxonomy entry this error belongs to."""
        return self.default_code

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, message={self.message!r})"

    @classmethod
    def parse_error(cls, message: str = "", data: Any = None) -> ParseError:
        return ParseError(message, data=data)

    @classmethod
    def invalid_request(cls, message: str = "", data: Any = None) -> InvalidRequestError:
        return InvalidRequestError(message, data=data)

    @classmethod
    def method_not_found(cls, message: str = "", data: Any = None) -> MethodNotFoundError:
        return MethodNotFoundError(message, data=data)

    @classmethod
    def invalid_params(cls, message: str = "", data: Any = None) -> InvalidParamsError:
        return InvalidParamsError(message, data=data)

    @classmethod
    def internal(cls, message: str = "", data: Any = None) -> InternalError:
        return InternalError(message, data=data)

    @classmethod
    def server(cls, message: str = "", data: Any = None) -> ServerError:
        return ServerError(message, data=data)


class ParseError(RpcError):
    """Malformed wire bytes in either direction."""

    default_code = ErrorCode.PARSE_ERROR


class InvalidRequestError(RpcError):
    """The peer rejected the request envelope."""

    default_code = ErrorCode.INVALID_REQUEST


class MethodNotFoundError(RpcError):
    """The peer has no such method."""

    default_code = ErrorCode.METHOD_NOT_FOUND


class InvalidParamsError(RpcError):
    """The peer rejected the call's arguments."""

    default_code = ErrorCode.INVALID_PARAMS


class InternalError(RpcError):
    """Transport faults, protocol violations and anything unclassified."""

    default_code = ErrorCode.INTERNAL_ERROR


class ServerError(RpcError):
    """Application code on the remote side raised an exception."""

    default_code = ErrorCode.SERVER_ERROR


ERROR_CLASSES: dict[ErrorCode, type[RpcError]] = {
    cls.default_code: cls
    for cls in (
        ParseError,
        InvalidRequestError,
        MethodNotFoundError,
        InvalidParamsError,
        InternalError,
        ServerError,
    )
}


def _normalize_name(name: str) -> str:
    """Reduce ``ServerErrorException``, ``SERVER_ERROR`` and ``server-error`` to one key."""
    key = name.strip().lower().replace("_", "").replace("-", "")
    for suffix in ("exception", "error"):
        if key.endswith(suffix) and key != suffix:
            key = key[: -len(suffix)]
    return key


_CLASSES_BY_NAME: dict[str, type[RpcError]] = {}
for _code, _cls in ERROR_CLASSES.items():
    _CLASSES_BY_NAME[_normalize_name(_code.name)] = _cls
    _CLASSES_BY_NAME[_normalize_name(_cls.__name__)] = _cls
del _code, _cls


def error_class_for_code(code: int) -> type[RpcError]:
    """Return the error class for a numeric code; unknown codes are internal."""
    try:
        return ERROR_CLASSES[ErrorCode(code)]
    except ValueError:
        if SERVER_ERROR_MIN <= code <= SERVER_ERROR_MAX:
            return ServerError
        return InternalError


def error_class_for_name(name: str) -> type[RpcError] | None:
    """Return the error class named by a code name or type tag, if any."""
    return _CLASSES_BY_NAME.get(_normalize_name(name))


def _as_int(value: object) -> int | None:
    """Return ``value`` as an int if it is an integer or a whole-number float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class ErrorClassifier:
    """Maps wire error payloads to ``RpcError`` instances and back.

    Classification is driven by the ``code`` field, which may be an integer,
    a numeric string or a code name such as ``"SERVER_ERROR"``. When no code
    is present the optional ``type`` tag is consulted. Anything unrecognized
    classifies as ``InternalError``.
    """

    def classify(self, payload: Any) -> RpcError:
        """Build the error described by ``payload``.

        Args:
            payload: The value of the response's ``error`` field

        Returns:
            An ``RpcError`` subclass instance with message, code, data and
            (when reported) a ``RemoteCause`` chained as ``__cause__``
        """
        if not isinstance(payload, dict):
            message = "" if payload is None else str(payload)
            return InternalError(message)

        error_cls, wire_code = self._resolve_kind(payload)

        message = payload.get(ERROR_MESSAGE)
        if message is None:
            message = ""
        elif not isinstance(message, str):
            message = str(message)

        error = error_cls(message, code=wire_code, data=payload.get(ERROR_DATA))
        cause = self._parse_cause(payload.get(ERROR_CAUSE))
        if cause is not None:
            error.__cause__ = cause
        return error

    def _resolve_kind(self, payload: dict[str, Any]) -> tuple[type[RpcError], int | None]:
        raw_code = payload.get(ERROR_CODE)

        numeric_code = _as_int(raw_code)
        if numeric_code is not None:
            return error_class_for_code(numeric_code), numeric_code

        if isinstance(raw_code, str) and raw_code.strip():
            text = raw_code.strip()
            try:
                numeric = int(text)
            except ValueError:
                named = error_class_for_name(text)
                if named is not None:
                    return named, None
                logger.debug("Unrecognized error code %r, classifying as internal", raw_code)
                return InternalError, None
            return error_class_for_code(numeric), numeric

        type_tag = payload.get(ERROR_TYPE)
        if isinstance(type_tag, str):
            named = error_class_for_name(type_tag)
            if named is not None:
                return named, None

        return InternalError, None

    @staticmethod
    def _parse_cause(raw: Any) -> RemoteCause | None:
        match raw:
            case None:
                return None
            case str():
                return RemoteCause(raw)
            case dict():
                type_name = raw.get(ERROR_TYPE)
                message = raw.get(ERROR_MESSAGE)
                return RemoteCause(
                    "" if message is None else str(message),
                    type_name if isinstance(type_name, str) else None,
                )
            case _:
                return RemoteCause(str(raw))

    def to_payload(self, error: BaseException) -> dict[str, Any]:
        """Build the wire payload for ``error``.

        ``RpcError`` instances keep their code and class name. Any other
        exception is reported as a server error whose message is the
        exception's class name, which is what lets the caller re-raise its
        own declared exception type.
        """
        if isinstance(error, RpcError):
            payload: dict[str, Any] = {
                ERROR_CODE: error.code,
                ERROR_MESSAGE: error.message,
                ERROR_TYPE: type(error).__name__,
            }
            if error.data is not None:
                payload[ERROR_DATA] = error.data
            cause = error.__cause__
        else:
            payload = {
                ERROR_CODE: int(ErrorCode.SERVER_ERROR),
                ERROR_MESSAGE: type(error).__name__,
                ERROR_TYPE: ServerError.__name__,
            }
            cause = error

        if isinstance(cause, RemoteCause):
            payload[ERROR_CAUSE] = {ERROR_TYPE: cause.type_name, ERROR_MESSAGE: cause.message}
        elif cause is not None:
            payload[ERROR_CAUSE] = {ERROR_TYPE: type(cause).__name__, ERROR_MESSAGE: str(cause)}
        return payload
