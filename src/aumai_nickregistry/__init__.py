"""aumai-nickregistry: Signed nickname claims for peer-to-peer identities."""

from aumai_nickregistry.core import (
    ClaimSigner,
    ClaimValidator,
    RSAVerifier,
    SignatureVerifier,
    signing_payload,
    validate_identity,
    validate_nickname,
)
from aumai_nickregistry.errors import (
    BadIdentityError,
    BadNicknameError,
    BadPublicKeyError,
    BadSignatureError,
    BadTimestampError,
    IdentityMismatchError,
    InvalidClaimError,
    InvalidIdentityError,
    NickRegistryError,
    NicknameConflictError,
    StaleClaimError,
    StorageError,
    StorageUnavailableError,
)
from aumai_nickregistry.models import NickClaim, RegistryConfig
from aumai_nickregistry.registry import NickRegistry

__version__ = "0.1.0"

__all__ = [
    "BadIdentityError",
    "BadNicknameError",
    "BadPublicKeyError",
    "BadSignatureError",
    "BadTimestampError",
    "ClaimSigner",
    "ClaimValidator",
    "IdentityMismatchError",
    "InvalidClaimError",
    "InvalidIdentityError",
    "NickClaim",
    "NickRegistry",
    "NickRegistryError",
    "NicknameConflictError",
    "RSAVerifier",
    "RegistryConfig",
    "SignatureVerifier",
    "StaleClaimError",
    "StorageError",
    "StorageUnavailableError",
    "signing_payload",
    "validate_identity",
    "validate_nickname",
]
