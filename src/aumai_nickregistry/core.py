"""Claim validation and signing for aumai-nickregistry."""

from __future__ import annotations

import calendar
import hashlib
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from aumai_nickregistry.errors import (
    BadIdentityError,
    BadNicknameError,
    BadPublicKeyError,
    BadSignatureError,
    BadTimestampError,
    IdentityMismatchError,
    InvalidClaimError,
)
from aumai_nickregistry.models import IDENTITY_LENGTH, ZERO_TIME, NickClaim

MIN_NICK_LENGTH = 3
MAX_NICK_LENGTH = 20

_NICK_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9_\-\[\]]+")

# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def validate_nickname(nickname: str) -> None:
    """Check the length and character rules for *nickname*.

    Raises:
        BadNicknameError: if the nickname is too short, too long, or contains
            characters outside ``[A-Za-z0-9_-[]]`` (or does not start with a
            letter).
    """
    if len(nickname) < MIN_NICK_LENGTH:
        raise BadNicknameError(
            f"nick needs to be at least {MIN_NICK_LENGTH} characters long"
        )
    if len(nickname) > MAX_NICK_LENGTH:
        raise BadNicknameError(
            f"nick needs to be at most {MAX_NICK_LENGTH} characters long"
        )
    if _NICK_PATTERN.fullmatch(nickname) is None:
        raise BadNicknameError("nick does not match the regular expression")


def validate_identity(identity: bytes) -> bool:
    """Return True if *identity* has the format of an identity."""
    return isinstance(identity, bytes) and len(identity) == IDENTITY_LENGTH


def signing_payload(claim: NickClaim) -> bytes:
    """Return the bytes covered by the claim's signature.

    The payload is the decimal Unix time in seconds, followed by the raw
    identity bytes, followed by the UTF-8 nickname.
    """
    unix_seconds = calendar.timegm(claim.timestamp.utctimetuple())
    return (
        str(unix_seconds).encode("ascii")
        + claim.identity
        + claim.nickname.encode("utf-8")
    )


def _public_key_der(public_key: RSAPublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


# ---------------------------------------------------------------------------
# Signature verification capability
# ---------------------------------------------------------------------------


class SignatureVerifier(Protocol):
    """The cryptographic operations a :class:`ClaimValidator` depends on."""

    def load_public_key(self, raw: bytes) -> object:
        """Decode *raw*; raise ``ValueError`` if it is not a usable key."""
        ...

    def hash_public_key(self, raw: bytes) -> bytes:
        """Return the identity derived from the encoded public key *raw*."""
        ...

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        """Return True if *signature* over *message* verifies with *public_key*."""
        ...


class RSAVerifier:
    """RSA PKCS#1 v1.5 / SHA-512 signatures over DER encoded public keys.

    Identities are the SHA-256 digest of the DER SubjectPublicKeyInfo bytes.
    """

    def load_public_key(self, raw: bytes) -> RSAPublicKey:
        if not raw:
            raise ValueError("public key is empty")
        try:
            key = serialization.load_der_public_key(raw)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ValueError(f"malformed public key: {exc}") from exc
        if not isinstance(key, RSAPublicKey):
            raise ValueError(f"unsupported public key type: {type(key).__name__}")
        return key

    def hash_public_key(self, raw: bytes) -> bytes:
        key = self.load_public_key(raw)
        return hashlib.sha256(_public_key_der(key)).digest()

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        key = self.load_public_key(public_key)
        try:
            key.verify(signature, message, padding.PKCS1v15(), hashes.SHA512())
        except InvalidSignature:
            return False
        return True


# ---------------------------------------------------------------------------
# ClaimValidator
# ---------------------------------------------------------------------------


class ClaimValidator:
    """Decide whether a :class:`NickClaim` is well-formed and authentic.

    Validation depends only on the claim itself, so one instance can be
    shared by any number of threads.
    """

    def __init__(self, verifier: SignatureVerifier | None = None) -> None:
        self._verifier: SignatureVerifier = verifier or RSAVerifier()

    def validate(self, claim: NickClaim) -> None:
        """Raise an :class:`InvalidClaimError` subclass if *claim* is invalid.

        Checks run in this order: public key, identity format, identity
        against the key, nickname, timestamp, signature.
        """
        try:
            self._verifier.load_public_key(claim.public_key)
        except ValueError as exc:
            raise BadPublicKeyError(f"could not read the public key: {exc}") from exc

        if not validate_identity(claim.identity):
            raise BadIdentityError("id is invalid")
        if self._verifier.hash_public_key(claim.public_key) != claim.identity:
            raise IdentityMismatchError("id does not match the public key")

        try:
            validate_nickname(claim.nickname)
        except BadNicknameError as exc:
            raise BadNicknameError(f"invalid nick: {exc}") from exc

        if claim.timestamp == ZERO_TIME:
            raise BadTimestampError("time is zero")
        try:
            payload = signing_payload(claim)
        except (OverflowError, ValueError) as exc:
            raise BadTimestampError("time is out of range") from exc

        if not claim.signature:
            raise BadSignatureError("signature is missing")
        if not self._verifier.verify(payload, claim.signature, claim.public_key):
            raise BadSignatureError("could not validate the signature")

    def is_valid(self, claim: NickClaim) -> bool:
        """Boolean form of :meth:`validate`."""
        try:
            self.validate(claim)
        except InvalidClaimError:
            return False
        return True


# ---------------------------------------------------------------------------
# ClaimSigner
# ---------------------------------------------------------------------------


def _load_rsa_private_key(pem: bytes, password: bytes | None) -> RSAPrivateKey:
    key = serialization.load_pem_private_key(pem, password=password)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError(
            f"Unsupported key type: {type(key).__name__}. Only RSA keys are supported."
        )
    return key


def load_private_key(path: str, password: bytes | None = None) -> bytes:
    """Read a PEM encoded RSA private key from *path* and return its bytes.

    The key is parsed once so that a wrong password or key type is reported
    here rather than at signing time.
    """
    pem_bytes = Path(path).read_bytes()
    _load_rsa_private_key(pem_bytes, password)
    return pem_bytes


class ClaimSigner:
    """Produce signed claims from an RSA private key.

    Args:
        verifier: Used to derive the identity from the public key.  Defaults
            to :class:`RSAVerifier`.
    """

    def __init__(self, verifier: SignatureVerifier | None = None) -> None:
        self._verifier: SignatureVerifier = verifier or RSAVerifier()

    def create_claim(
        self,
        private_key_pem: bytes,
        nickname: str,
        timestamp: datetime | None = None,
        password: bytes | None = None,
    ) -> NickClaim:
        """Build and sign a claim binding the key's identity to *nickname*.

        Args:
            private_key_pem: PEM encoded RSA private key.
            nickname: The nickname to claim.  It is not validated here.
            timestamp: Claim time; defaults to now, truncated to seconds.
            password: Optional passphrase for *private_key_pem*.

        Returns:
            A signed :class:`NickClaim`.
        """
        private_key = _load_rsa_private_key(private_key_pem, password)
        public_der = _public_key_der(private_key.public_key())
        claim = NickClaim(
            identity=self._verifier.hash_public_key(public_der),
            nickname=nickname,
            timestamp=timestamp or datetime.now(tz=UTC).replace(microsecond=0),
            public_key=public_der,
        )
        return self._sign_with(claim, private_key)

    def sign(
        self,
        claim: NickClaim,
        private_key_pem: bytes,
        password: bytes | None = None,
    ) -> NickClaim:
        """Return a copy of *claim* with a signature over its current fields."""
        return self._sign_with(claim, _load_rsa_private_key(private_key_pem, password))

    def _sign_with(self, claim: NickClaim, private_key: RSAPrivateKey) -> NickClaim:
        raw_sig = private_key.sign(
            signing_payload(claim), padding.PKCS1v15(), hashes.SHA512()
        )
        return claim.model_copy(update={"signature": raw_sig})


__all__ = [
    "MAX_NICK_LENGTH",
    "MIN_NICK_LENGTH",
    "ClaimSigner",
    "ClaimValidator",
    "RSAVerifier",
    "SignatureVerifier",
    "load_private_key",
    "signing_payload",
    "validate_identity",
    "validate_nickname",
]
