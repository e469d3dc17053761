"""Shared test fixtures for aumai-nickregistry."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from aumai_nickregistry.core import ClaimSigner, ClaimValidator
from aumai_nickregistry.models import NickClaim
from aumai_nickregistry.registry import NickRegistry

CLAIM_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


def _generate_private_pem() -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


# ---------------------------------------------------------------------------
# Key fixtures: two independent identities
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def alice_key() -> bytes:
    """PEM encoded RSA private key for the first identity."""
    return _generate_private_pem()


@pytest.fixture(scope="session")
def bob_key() -> bytes:
    """PEM encoded RSA private key for a second, unrelated identity."""
    return _generate_private_pem()


@pytest.fixture(scope="session")
def signer() -> ClaimSigner:
    return ClaimSigner()


@pytest.fixture(scope="session")
def validator() -> ClaimValidator:
    return ClaimValidator()


# ---------------------------------------------------------------------------
# Claim fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def valid_claim(signer: ClaimSigner, alice_key: bytes) -> NickClaim:
    """A correctly signed claim for the nick 'nick'."""
    return signer.create_claim(alice_key, "nick", timestamp=CLAIM_TIME)


@pytest.fixture()
def bob_claim(signer: ClaimSigner, bob_key: bytes) -> NickClaim:
    """A correctly signed claim for 'bob' from the second identity."""
    return signer.create_claim(bob_key, "bob", timestamp=CLAIM_TIME)


# ---------------------------------------------------------------------------
# Registry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "database.db"


@pytest.fixture()
def registry(db_path: Path) -> Iterator[NickRegistry]:
    """An empty registry backed by a temporary file."""
    reg = NickRegistry.open(db_path)
    yield reg
    reg.close()
