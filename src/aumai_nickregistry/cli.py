"""CLI entry point for aumai-nickregistry."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, NoReturn

import click
from pydantic import ValidationError

from aumai_nickregistry.config import default_config, load_config
from aumai_nickregistry.core import ClaimSigner, ClaimValidator, load_private_key
from aumai_nickregistry.errors import (
    InvalidClaimError,
    InvalidIdentityError,
    NickRegistryError,
    is_client_error,
)
from aumai_nickregistry.models import NickClaim
from aumai_nickregistry.registry import NickRegistry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_claim(path: str) -> NickClaim:
    raw = Path(path).read_text(encoding="utf-8")
    return NickClaim.model_validate_json(raw)


def _open_registry(config_path: str | None, db_path: str | None) -> NickRegistry:
    if db_path is None:
        if config_path is None:
            raise click.UsageError("Either --config or --db is required.")
        try:
            db_path = load_config(config_path).database_path
        except (OSError, ValidationError) as exc:
            raise click.ClickException(f"could not load the config: {exc}") from exc
    return NickRegistry.open(db_path)


def _fail(exc: NickRegistryError) -> NoReturn:
    if is_client_error(exc):
        click.echo(f"Rejected: {exc}", err=True)
        sys.exit(2)
    logger.error("registry operation failed: %s", exc)
    click.echo("Error: internal storage failure.", err=True)
    sys.exit(1)


def _parse_identity(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise InvalidIdentityError("Invalid node ID.") from exc


def store_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the ``--config``/``--db`` pair used by every registry command."""
    func = click.option(
        "--db",
        "db_path",
        default=None,
        metavar="PATH",
        help="Database file (overrides --config).",
    )(func)
    return click.option(
        "--config",
        "config_path",
        default=None,
        metavar="PATH",
        help="JSON config file naming the database path.",
    )(func)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumai-nickregistry")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """AumAI NickRegistry: human-readable nicknames for cryptographic identities.

    Each node can insert a claim linking a nickname with its identity and
    other nodes can look it up later.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("default-config")
def default_config_command() -> None:
    """Print the default configuration as JSON."""
    click.echo(default_config().model_dump_json(indent=4))


@main.command("sign")
@click.option(
    "--key",
    required=True,
    metavar="PATH",
    help="Path to the PEM encoded RSA private key.",
)
@click.option("--nick", required=True, help="Nickname to claim.")
@click.option(
    "--time",
    "time_str",
    default=None,
    metavar="RFC3339",
    help="Claim time (default: now).",
)
@click.option(
    "--output",
    default=None,
    metavar="PATH",
    help="Write the claim here instead of stdout.",
)
def sign_command(key: str, nick: str, time_str: str | None, output: str | None) -> None:
    """Create a signed nickname claim."""
    timestamp = None
    if time_str is not None:
        try:
            timestamp = datetime.fromisoformat(time_str)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--time") from exc

    try:
        private_key = load_private_key(key)
        claim = ClaimSigner().create_claim(private_key, nick, timestamp=timestamp)
    except (OSError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if output is None:
        click.echo(claim.to_json(indent=2))
        return
    Path(output).write_text(claim.to_json(indent=2), encoding="utf-8")
    click.echo(f"Claim written to: {output}")
    click.echo(f"  Identity : {claim.identity_hex}")
    click.echo(f"  Nick     : {claim.nickname}")


@main.command("validate")
@click.option("--claim", "claim_path", required=True, metavar="PATH")
def validate_command(claim_path: str) -> None:
    """Check a claim file without storing it."""
    try:
        claim = _load_claim(claim_path)
    except (OSError, ValidationError) as exc:
        click.echo(f"Error loading claim: {exc}", err=True)
        sys.exit(1)

    try:
        ClaimValidator().validate(claim)
    except InvalidClaimError as exc:
        click.echo(f"Claim: INVALID ({exc})")
        sys.exit(2)
    click.echo("Claim: VALID")
    click.echo(f"  Identity : {claim.identity_hex}")
    click.echo(f"  Nick     : {claim.nickname}")


@main.command("put")
@click.option("--claim", "claim_path", required=True, metavar="PATH")
@store_options
def put_command(claim_path: str, config_path: str | None, db_path: str | None) -> None:
    """Insert a claim into the registry."""
    try:
        claim = _load_claim(claim_path)
    except (OSError, ValidationError) as exc:
        click.echo(f"Error loading claim: {exc}", err=True)
        sys.exit(1)

    try:
        with _open_registry(config_path, db_path) as registry:
            registry.put(claim)
    except NickRegistryError as exc:
        _fail(exc)
    click.echo(f"Stored nick {claim.nickname!r} for {claim.identity_hex}")


@main.command("get")
@click.argument("identity")
@store_options
def get_command(identity: str, config_path: str | None, db_path: str | None) -> None:
    """Print the claim stored for IDENTITY (lowercase hex)."""
    try:
        with _open_registry(config_path, db_path) as registry:
            claim = registry.get(_parse_identity(identity))
    except NickRegistryError as exc:
        _fail(exc)
    if claim is None:
        click.echo("Not found.", err=True)
        sys.exit(2)
    click.echo(claim.to_json(indent=2))


@main.command("resolve")
@click.argument("nick")
@store_options
def resolve_command(nick: str, config_path: str | None, db_path: str | None) -> None:
    """Print the claim of the identity holding NICK."""
    try:
        with _open_registry(config_path, db_path) as registry:
            claim = registry.resolve(nick)
    except NickRegistryError as exc:
        _fail(exc)
    if claim is None:
        click.echo("Not found.", err=True)
        sys.exit(2)
    click.echo(claim.to_json(indent=2))


@main.command("list")
@store_options
def list_command(config_path: str | None, db_path: str | None) -> None:
    """Print every stored claim as a JSON array."""
    try:
        with _open_registry(config_path, db_path) as registry:
            claims = registry.list()
    except NickRegistryError as exc:
        _fail(exc)
    payload = [claim.model_dump(mode="json", by_alias=True) for claim in claims]
    click.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
