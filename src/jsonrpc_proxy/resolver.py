"""Response resolution: decoded response tree -> typed result or raised error."""

from __future__ import annotations

import functools
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from jsonrpc_proxy.constants import ERROR, ID, JSONRPC, PROTOCOL_VERSION, RESULT
from jsonrpc_proxy.envelope import parse_id
from jsonrpc_proxy.error import ErrorClassifier, InternalError, ParseError, ServerError
from jsonrpc_proxy.signature import MethodSignature

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)


@functools.lru_cache(maxsize=256)
def _cached_adapter(return_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(return_type)


def _adapter_for(return_type: Any) -> TypeAdapter[Any]:
    try:
        return _cached_adapter(return_type)
    except TypeError:
        # Unhashable annotations (e.g. Annotated with list metadata)
        return TypeAdapter(return_type)


def convert_result(value: Any, return_type: Any) -> Any:
    """Convert a decoded result into ``return_type``.

    ``Any`` returns the value as decoded; ``None`` discards it. A number
    asked for as ``str`` becomes its decimal text.

    Raises:
        ParseError: If the value does not fit the type
    """
    if return_type is Any:
        return value
    if return_type is None or return_type is _NONE_TYPE:
        return None
    if return_type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    try:
        return _adapter_for(return_type).validate_python(value)
    except ValidationError as e:
        raise ParseError(f"Cannot convert result to {return_type!r}: {e}") from e


class ResponseResolver:
    """Turns a decoded response envelope into the call's outcome.

    Args:
        classifier: Maps the response's error payload to an ``RpcError``
    """

    __slots__ = ("classifier",)

    def __init__(self, classifier: ErrorClassifier | None = None) -> None:
        self.classifier = classifier or ErrorClassifier()

    def resolve(self, correlation_id: int, response: Any, signature: MethodSignature) -> Any:
        """Return the typed result, or raise the failure the response describes.

        Args:
            correlation_id: Id of the request this response answers
            response: Decoded response tree
            signature: The called method's signature

        Raises:
            InternalError: Version mismatch, id mismatch, or neither result
                nor error present
            ParseError: The result does not convert to the return type
            RpcError: The classified error payload
            BaseException: A declared exception type of ``signature``
        """
        if not isinstance(response, dict):
            raise InternalError(
                f"Malformed response: expected an object, got {type(response).__name__}"
            )

        version = response.get(JSONRPC)
        if version != PROTOCOL_VERSION:
            raise InternalError(
                f"Incompatible protocol version {version!r}, expected {PROTOCOL_VERSION!r}"
            )

        if RESULT in response:
            if parse_id(response.get(ID)) != correlation_id:
                raise InternalError("no id in response")
            return convert_result(response[RESULT], signature.return_type)

        if ERROR in response:
            raise self._to_exception(response[ERROR], signature)

        raise InternalError("no error or result returned")

    def _to_exception(self, payload: Any, signature: MethodSignature) -> BaseException:
        error = self.classifier.classify(payload)
        if not isinstance(error, ServerError):
            return error

        exc_type = signature.exception_for(error.message)
        if exc_type is None:
            return error

        try:
            declared = exc_type()
        except TypeError as e:
            logger.warning(
                "Declared exception %s of %s needs constructor arguments (%s), "
                "raising ServerError instead",
                exc_type.__name__,
                signature.name,
                e,
            )
            return error

        declared.__cause__ = error.__cause__
        return declared
