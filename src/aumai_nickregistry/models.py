"""Pydantic models for aumai-nickregistry."""

from __future__ import annotations

import base64
import binascii
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Length in bytes of an identity (a SHA-256 digest of a public key).
IDENTITY_LENGTH = 32

# The unset timestamp. Claims carrying it are never valid.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


class NickClaim(BaseModel):
    """A signed assertion that an identity claims a nickname at a given time.

    The JSON form uses the keys ``id``, ``nick``, ``time``, ``publicKey`` and
    ``signature``.  The identity is hex encoded, the public key and the
    signature are base64 encoded.

    Every field has an empty default so that incomplete claims can be built
    and then rejected by :class:`aumai_nickregistry.core.ClaimValidator`.
    """

    model_config = ConfigDict(populate_by_name=True)

    identity: bytes = Field(default=b"", alias="id")
    nickname: str = Field(default="", alias="nick")
    timestamp: datetime = Field(default=ZERO_TIME, alias="time")
    public_key: bytes = Field(default=b"", alias="publicKey")
    signature: bytes = b""

    @field_validator("identity", mode="before")
    @classmethod
    def _decode_identity(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return bytes.fromhex(value)
            except ValueError as exc:
                raise ValueError(f"id is not valid hex: {exc}") from exc
        return value

    @field_validator("public_key", "signature", mode="before")
    @classmethod
    def _decode_base64(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as exc:
                raise ValueError(f"not valid base64: {exc}") from exc
        return value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_serializer("identity", when_used="json")
    def _encode_identity(self, value: bytes) -> str:
        return value.hex()

    @field_serializer("public_key", "signature", when_used="json")
    def _encode_base64(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    @property
    def identity_hex(self) -> str:
        """The identity as lowercase hex, as used in lookups."""
        return self.identity.hex()

    def to_json(self, indent: int | None = None) -> str:
        """Serialise using the wire keys (``id``, ``nick``, ...)."""
        return self.model_dump_json(by_alias=True, indent=indent)


class RegistryConfig(BaseModel):
    """Process configuration for a nick registry deployment."""

    serve_address: str = "127.0.0.1:8118"
    database_path: str = "path/to/database.db"


__all__ = [
    "IDENTITY_LENGTH",
    "NickClaim",
    "RegistryConfig",
    "ZERO_TIME",
]
