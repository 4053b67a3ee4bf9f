"""Protocol constants shared by the client and any compatible server.

Field names are wire-visible and must match the peer exactly.
"""

from __future__ import annotations

from typing import Final

# Envelope fields
JSONRPC: Final[str] = "jsonrpc"
METHOD: Final[str] = "method"
PARAMS: Final[str] = "params"
ID: Final[str] = "id"
RESULT: Final[str] = "result"
ERROR: Final[str] = "error"

PROTOCOL_VERSION: Final[str] = "2.0"

# Error payload fields
ERROR_CODE: Final[str] = "code"
ERROR_MESSAGE: Final[str] = "message"
ERROR_CAUSE: Final[str] = "cause"
ERROR_TYPE: Final[str] = "type"
ERROR_DATA: Final[str] = "data"

# Content types
JSON_CONTENT_TYPE: Final[str] = "application/json"
MSGPACK_CONTENT_TYPE: Final[str] = "application/x-msgpack"

DEFAULT_ENCODING: Final[str] = "UTF-8"

# Correlation ids are signed 32-bit integers
ID_MIN: Final[int] = -(2**31)
ID_MAX: Final[int] = 2**31 - 1
