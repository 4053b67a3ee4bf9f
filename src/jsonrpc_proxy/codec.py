"""Wire codecs: structured value trees <-> raw bytes.

A codec is a pure, synchronous converter for one encoding. It declares the
MIME type it handles; the transport uses it both for the request
``Content-Type`` header and to decide which response body to read.

Two codecs ship with the package:

- ``JsonCodec``: plain JSON text in the configured character encoding
- ``MsgpackCodec``: MessagePack, a compact binary JSON variant

Values that JSON cannot represent natively (dataclasses, pydantic models,
datetimes, UUIDs, sets, ...) are converted with pydantic's
``to_jsonable_python`` before encoding.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

import msgpack
from pydantic_core import PydanticSerializationError, to_jsonable_python

from jsonrpc_proxy.constants import DEFAULT_ENCODING, JSON_CONTENT_TYPE, MSGPACK_CONTENT_TYPE
from jsonrpc_proxy.error import ParseError


@runtime_checkable
class WireCodec(Protocol):
    """Protocol for wire codecs."""

    @property
    def content_type(self) -> str:
        """The MIME type this codec reads and writes."""
        ...

    def encode(self, tree: Any) -> bytes:
        """Encode a structured value tree.

        Raises:
            ParseError: If the tree cannot be represented
        """
        ...

    def decode(self, data: bytes) -> Any:
        """Decode raw bytes into a structured value tree.

        Raises:
            ParseError: If the bytes are malformed
        """
        ...


class JsonCodec:
    """JSON text codec."""

    __slots__ = ("encoding",)

    def __init__(self, encoding: str = DEFAULT_ENCODING) -> None:
        self.encoding = encoding

    @property
    def content_type(self) -> str:
        return JSON_CONTENT_TYPE

    def encode(self, tree: Any) -> bytes:
        try:
            text = json.dumps(
                tree,
                default=to_jsonable_python,
                ensure_ascii=False,
                separators=(",", ":"),
            )
            return text.encode(self.encoding)
        except (TypeError, ValueError, PydanticSerializationError) as e:
            raise ParseError(f"Cannot encode JSON: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode(self.encoding))
        except ValueError as e:
            raise ParseError(f"Malformed JSON: {e}") from e

    def __repr__(self) -> str:
        return f"JsonCodec(encoding={self.encoding!r})"


class MsgpackCodec:
    """MessagePack codec.

    The character encoding is irrelevant to the binary framing itself but is
    still advertised in the ``Content-Type`` header for string payloads.
    """

    __slots__ = ("encoding",)

    def __init__(self, encoding: str = DEFAULT_ENCODING) -> None:
        self.encoding = encoding

    @property
    def content_type(self) -> str:
        return MSGPACK_CONTENT_TYPE

    def encode(self, tree: Any) -> bytes:
        try:
            return msgpack.packb(tree, use_bin_type=True, default=to_jsonable_python)
        except (TypeError, ValueError, OverflowError, PydanticSerializationError) as e:
            raise ParseError(f"Cannot encode MessagePack: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(data, raw=False)
        except (ValueError, msgpack.exceptions.UnpackException) as e:
            raise ParseError(f"Malformed MessagePack: {e}") from e

    def __repr__(self) -> str:
        return f"MsgpackCodec(encoding={self.encoding!r})"
