"""aumai-nickregistry quickstart: working demonstrations of the main features.

Run this file directly to verify your installation:

    python examples/quickstart.py

Each demo is self-contained and uses a temporary directory that is removed
afterwards.  The RSA keys are generated here only for demonstration; the
library itself consumes keys, it does not create them.
"""

from __future__ import annotations

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from aumai_nickregistry import (
    ClaimSigner,
    ClaimValidator,
    InvalidClaimError,
    NicknameConflictError,
    NickRegistry,
    StaleClaimError,
)


def _demo_key() -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


# ---------------------------------------------------------------------------
# Demo 1: sign and validate a claim
# ---------------------------------------------------------------------------


def demo_sign_and_validate() -> None:
    print("\n=== Demo 1: Sign & Validate ===")

    signer = ClaimSigner()
    claim = signer.create_claim(_demo_key(), "alice")
    print(f"  Identity : {claim.identity_hex}")
    print(f"  Nick     : {claim.nickname}")

    validator = ClaimValidator()
    validator.validate(claim)
    print("  Claim is valid.")

    tampered = claim.model_copy(update={"nickname": "mallory"})
    try:
        validator.validate(tampered)
    except InvalidClaimError as exc:
        print(f"  Tampered claim rejected: {exc}")


# ---------------------------------------------------------------------------
# Demo 2: registry rules
# ---------------------------------------------------------------------------


def demo_registry_rules() -> None:
    print("\n=== Demo 2: Registry Rules ===")

    signer = ClaimSigner()
    alice_key, bob_key = _demo_key(), _demo_key()
    now = datetime.now(tz=UTC).replace(microsecond=0)

    with tempfile.TemporaryDirectory() as tmpdir:
        with NickRegistry.open(Path(tmpdir) / "nicks.db") as registry:
            alice = signer.create_claim(alice_key, "alice", timestamp=now)
            registry.put(alice)
            registry.put(alice)
            print("  Same claim stored twice (idempotent).")

            squatter = signer.create_claim(bob_key, "alice", timestamp=now)
            try:
                registry.put(squatter)
            except NicknameConflictError as exc:
                print(f"  Bob cannot take the nick: {exc}")

            older = signer.create_claim(alice_key, "alice2", timestamp=now - timedelta(days=1))
            try:
                registry.put(older)
            except StaleClaimError as exc:
                print(f"  Older claim rejected: {exc}")

            renamed = signer.create_claim(alice_key, "alice2", timestamp=now + timedelta(seconds=1))
            registry.put(renamed)
            print(f"  Alice renamed; 'alice' now free: {registry.resolve('alice') is None}")

            for claim in registry.list():
                print(f"  {claim.identity_hex[:16]}...  {claim.nickname}")


def main() -> None:
    demo_sign_and_validate()
    demo_registry_rules()


if __name__ == "__main__":
    main()
