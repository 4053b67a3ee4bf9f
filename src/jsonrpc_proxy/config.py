"""Pydantic configuration model for RPC proxies.

Configuration is validated once at construction and again on every
assignment, so timeouts changed on a live proxy are checked the same way.
"""

from __future__ import annotations

import codecs

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jsonrpc_proxy.constants import DEFAULT_ENCODING


def timeout_seconds(milliseconds: int) -> float | None:
    """Convert a millisecond timeout to seconds; non-positive means unset."""
    if milliseconds <= 0:
        return None
    return milliseconds / 1000.0


class ProxyConfig(BaseModel):
    """Configuration for an RPC proxy.

    Attributes:
        url: Absolute endpoint URL (http:// or https://)
        encoding: Character encoding advertised in ``Content-Type``
        connect_timeout: Connect timeout in milliseconds; non-positive uses
            the transport default (no limit)
        read_timeout: Read timeout in milliseconds; non-positive uses the
            transport default (no limit)
    """

    model_config = ConfigDict(validate_assignment=True)

    url: str = Field(..., description="RPC endpoint URL")
    encoding: str = Field(default=DEFAULT_ENCODING, description="Character encoding")
    connect_timeout: int = Field(default=-1, description="Connect timeout (ms)")
    read_timeout: int = Field(default=-1, description="Read timeout (ms)")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format (HTTP only)."""
        if not v:
            raise ValueError("URL cannot be empty")

        valid_schemes = ("http://", "https://")
        if not v.lower().startswith(valid_schemes):
            raise ValueError(
                f"URL must start with one of: {', '.join(valid_schemes)}"
            )
        return v

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Reject encodings Python does not know."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v
