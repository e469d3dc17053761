"""Transactional nickname registry for aumai-nickregistry."""

from __future__ import annotations

import logging
import sqlite3
import threading
import weakref
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from aumai_nickregistry.core import ClaimValidator, validate_identity
from aumai_nickregistry.errors import (
    InvalidClaimError,
    InvalidIdentityError,
    NicknameConflictError,
    StaleClaimError,
    StorageError,
    StorageUnavailableError,
)
from aumai_nickregistry.models import NickClaim

logger = logging.getLogger(__name__)

_BUSY_TIMEOUT_SECONDS = 5.0

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS claims (
        identity BLOB PRIMARY KEY,
        data     TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS nicks (
        nick     TEXT PRIMARY KEY,
        identity BLOB NOT NULL
    )
    """,
)


class _ThreadConnection:
    """Per-thread owner of one sqlite connection."""

    __slots__ = ("conn", "__weakref__")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn


def _release(
    connections: set[sqlite3.Connection],
    lock: threading.RLock,
    conn: sqlite3.Connection,
) -> None:
    with lock:
        connections.discard(conn)
    conn.close()


class NickRegistry:
    """Durable mapping of identities to claims and of nicknames to identities.

    Both mappings live in one sqlite file and are only ever updated together
    inside a single ``BEGIN IMMEDIATE`` transaction, so concurrent writers
    (threads or processes) are serialized while readers keep seeing a
    consistent snapshot.  Each thread gets its own connection, which is closed
    when the thread exits.

    Rules enforced by :meth:`put`:

    * a nickname is held by at most one identity;
    * a claim older than the stored claim for its identity is rejected, while
      a claim with the same timestamp replaces it.
    """

    def __init__(self, path: str | Path, validator: ClaimValidator | None = None) -> None:
        self._path = Path(path)
        self._validator = validator or ClaimValidator()
        self._local = threading.local()
        self._connections: set[sqlite3.Connection] = set()
        self._connections_lock = threading.RLock()
        self._closed = False

        try:
            with self._transaction() as conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as exc:
            self.close()
            raise StorageUnavailableError(
                f"could not open the database at {self._path}: {exc}"
            ) from exc
        logger.debug("opened nick registry at %s", self._path)

    @classmethod
    def open(cls, path: str | Path) -> NickRegistry:
        """Open or create the registry stored at *path*."""
        return cls(path)

    def __enter__(self) -> NickRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, identity: bytes) -> NickClaim | None:
        """Return the claim stored for *identity*, or None.

        Raises:
            InvalidIdentityError: if *identity* is malformed.
            StorageError: if the store fails.
        """
        if not validate_identity(identity):
            raise InvalidIdentityError("invalid node id")
        try:
            row = (
                self._connection()
                .execute("SELECT data FROM claims WHERE identity = ?", (identity,))
                .fetchone()
            )
        except sqlite3.Error as exc:
            raise StorageError(f"get failed: {exc}") from exc
        return None if row is None else self._decode(row[0])

    def resolve(self, nickname: str) -> NickClaim | None:
        """Return the claim of the identity currently holding *nickname*."""
        try:
            row = (
                self._connection()
                .execute(
                    "SELECT c.data FROM nicks AS n "
                    "JOIN claims AS c ON c.identity = n.identity "
                    "WHERE n.nick = ?",
                    (nickname,),
                )
                .fetchone()
            )
        except sqlite3.Error as exc:
            raise StorageError(f"resolve failed: {exc}") from exc
        return None if row is None else self._decode(row[0])

    def list(self) -> list[NickClaim]:
        """Return every stored claim, in no particular order."""
        try:
            rows = self._connection().execute("SELECT data FROM claims").fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"list failed: {exc}") from exc
        return [self._decode(row[0]) for row in rows]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def put(self, claim: NickClaim) -> None:
        """Store *claim* as the current claim of its identity.

        Raises:
            InvalidClaimError: if the claim fails validation.
            NicknameConflictError: if a different identity holds the nickname.
            StaleClaimError: if a newer claim is stored for the identity.
            StorageError: if the store fails; nothing is written.
        """
        try:
            self._validator.validate(claim)
        except InvalidClaimError as exc:
            logger.debug("rejected invalid claim: %s", exc)
            raise

        value = claim.to_json()
        try:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT identity FROM nicks WHERE nick = ?", (claim.nickname,)
                ).fetchone()
                if row is not None and bytes(row[0]) != claim.identity:
                    raise NicknameConflictError(claim.nickname)

                previous = self._select_claim(conn, claim.identity)
                if previous is not None:
                    if previous.timestamp > claim.timestamp:
                        raise StaleClaimError(claim.identity)
                    if previous.nickname != claim.nickname:
                        conn.execute(
                            "DELETE FROM nicks WHERE nick = ?", (previous.nickname,)
                        )

                conn.execute(
                    "INSERT OR REPLACE INTO nicks (nick, identity) VALUES (?, ?)",
                    (claim.nickname, claim.identity),
                )
                conn.execute(
                    "INSERT OR REPLACE INTO claims (identity, data) VALUES (?, ?)",
                    (claim.identity, value),
                )
        except (NicknameConflictError, StaleClaimError) as exc:
            logger.debug("rejected claim for %s: %s", claim.identity_hex, exc)
            raise
        except sqlite3.Error as exc:
            raise StorageError(f"update failed: {exc}") from exc

        logger.debug("stored nick %r for %s", claim.nickname, claim.identity_hex)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close every connection.  Further operations raise StorageUnavailableError."""
        with self._connections_lock:
            self._closed = True
            connections = list(self._connections)
            self._connections.clear()
        for conn in connections:
            conn.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _connection(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageUnavailableError("the registry is closed")
        holder: _ThreadConnection | None = getattr(self._local, "holder", None)
        if holder is None:
            conn = self._connect()
            with self._connections_lock:
                if self._closed:
                    conn.close()
                    raise StorageUnavailableError("the registry is closed")
                self._connections.add(conn)
            holder = _ThreadConnection(conn)
            # The holder dies with the thread's locals; close its connection then.
            finalizer = weakref.finalize(
                holder, _release, self._connections, self._connections_lock, conn
            )
            finalizer.atexit = False
            self._local.holder = holder
        return holder.conn

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._path),
            timeout=_BUSY_TIMEOUT_SECONDS,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        conn = self._connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def _select_claim(self, conn: sqlite3.Connection, identity: bytes) -> NickClaim | None:
        row = conn.execute(
            "SELECT data FROM claims WHERE identity = ?", (identity,)
        ).fetchone()
        return None if row is None else self._decode(row[0])

    @staticmethod
    def _decode(data: str) -> NickClaim:
        try:
            return NickClaim.model_validate_json(data)
        except ValidationError as exc:
            raise StorageError(f"stored claim is corrupt: {exc}") from exc


__all__ = ["NickRegistry"]
