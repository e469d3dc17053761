"""Exception taxonomy for aumai-nickregistry.

Client-attributable failures (an invalid claim, a malformed identity, a
nickname held by someone else, an outdated claim) never change stored state.
Storage failures abort the current operation only; the registry keeps its
previous contents and may be used again.
"""

from __future__ import annotations


class NickRegistryError(Exception):
    """Base class for every error raised by aumai-nickregistry."""


# ---------------------------------------------------------------------------
# Claim validation
# ---------------------------------------------------------------------------


class InvalidClaimError(NickRegistryError, ValueError):
    """The claim failed structural or cryptographic validation."""


class BadPublicKeyError(InvalidClaimError):
    """The public key is missing or could not be decoded."""


class BadIdentityError(InvalidClaimError):
    """The identity does not have the expected format."""


class IdentityMismatchError(InvalidClaimError):
    """The identity is not the hash of the claim's public key."""


class BadNicknameError(InvalidClaimError):
    """The nickname violates the length or character rules."""


class BadTimestampError(InvalidClaimError):
    """The timestamp is unset."""


class BadSignatureError(InvalidClaimError):
    """The signature is missing or does not verify."""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class InvalidIdentityError(NickRegistryError, ValueError):
    """A malformed identity was passed to a lookup."""


class NicknameConflictError(NickRegistryError):
    """The nickname is already held by a different identity."""

    def __init__(self, nickname: str) -> None:
        super().__init__(f"nick is already taken: {nickname!r}")
        self.nickname = nickname


class StaleClaimError(NickRegistryError):
    """A newer claim is already stored for this identity."""

    def __init__(self, identity: bytes) -> None:
        super().__init__(f"newer nick data is available for {identity.hex()}")
        self.identity = identity


class StorageError(NickRegistryError):
    """The underlying store failed while serving a request."""


class StorageUnavailableError(StorageError):
    """The underlying store could not be opened or has been closed."""


_CLIENT_ERRORS = (
    InvalidClaimError,
    InvalidIdentityError,
    NicknameConflictError,
    StaleClaimError,
)


def is_client_error(exc: BaseException) -> bool:
    """Return True if *exc* was caused by the caller's input."""
    return isinstance(exc, _CLIENT_ERRORS)


def http_status_for(exc: BaseException) -> int:
    """Map *exc* to the status code a transport layer should report."""
    if is_client_error(exc):
        return 400
    return 500


__all__ = [
    "BadIdentityError",
    "BadNicknameError",
    "BadPublicKeyError",
    "BadSignatureError",
    "BadTimestampError",
    "IdentityMismatchError",
    "InvalidClaimError",
    "InvalidIdentityError",
    "NickRegistryError",
    "NicknameConflictError",
    "StaleClaimError",
    "StorageError",
    "StorageUnavailableError",
    "http_status_for",
    "is_client_error",
]
