"""SQLite-backed set of leaked password hashes."""

from __future__ import annotations

import hashlib
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Iterator, List

from ..exceptions import SchemaError, StoreContentionError, StoreError

CREATE_TABLE_QUERY = """
    CREATE TABLE IF NOT EXISTS passwords (
        sha1 TEXT PRIMARY KEY
    )
"""
INSERT_QUERY = "INSERT OR IGNORE INTO passwords (sha1) VALUES (?)"
EXISTS_QUERY = "SELECT EXISTS(SELECT 1 FROM passwords WHERE sha1 = ?)"

_CONTENTION_MARKERS = ("locked", "busy")


def hash_password(password: str) -> str:
    """Uppercase SHA-1 hex digest, the format stored in ``passwords.sha1``."""

    return hashlib.sha1(password.encode("utf-8")).hexdigest().upper()


def classify_error(exc: sqlite3.Error) -> StoreError:
    """Map a sqlite3 error onto the store taxonomy."""

    message = str(exc)
    if isinstance(exc, sqlite3.OperationalError) and any(
        marker in message.lower() for marker in _CONTENTION_MARKERS
    ):
        return StoreContentionError(message)
    return StoreError(message)


class StoreTransaction:
    """An open write transaction on one connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, value: str) -> None:
        try:
            self._conn.execute(INSERT_QUERY, (value,))
        except sqlite3.Error as exc:
            raise classify_error(exc) from exc

    def commit(self) -> None:
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as exc:
            self.rollback()
            raise classify_error(exc) from exc

    def rollback(self) -> None:
        try:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            raise classify_error(exc) from exc


class PasswordStore:
    """Thread-safe store handle: one SQLite connection per calling thread.

    Connections run in autocommit mode; grouping happens only through
    :meth:`transaction`, which takes the write lock up front with
    ``BEGIN IMMEDIATE``.
    """

    def __init__(self, path: Path, busy_timeout_ms: int = 5000) -> None:
        self.path = path
        self.busy_timeout_ms = busy_timeout_ms
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._lock = Lock()

    @classmethod
    def open(cls, path: Path, busy_timeout_ms: int = 5000) -> "PasswordStore":
        store = cls(path, busy_timeout_ms=busy_timeout_ms)
        store.ensure_schema()
        return store

    # ------------------------------------------------------------------
    def connect(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.path,
                timeout=self.busy_timeout_ms / 1000,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Failed to open database {self.path}: {exc}") from exc
        with self._lock:
            self._connections.append(conn)
        self._local.conn = conn
        return conn

    def ensure_schema(self) -> None:
        try:
            self.connect().execute(CREATE_TABLE_QUERY)
        except (StoreError, sqlite3.Error) as exc:
            raise SchemaError(f"Failed to set up database schema: {exc}") from exc

    def begin(self) -> StoreTransaction:
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise classify_error(exc) from exc
        return StoreTransaction(conn)

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Commit on normal exit, roll back when the block raises."""

        tx = self.begin()
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        tx.commit()

    def insert(self, value: str) -> None:
        with self.transaction() as tx:
            tx.insert(value.upper())

    def contains(self, value: str) -> bool:
        try:
            row = self.connect().execute(EXISTS_QUERY, (value.strip().upper(),)).fetchone()
        except sqlite3.Error as exc:
            raise classify_error(exc) from exc
        return bool(row[0])

    def count(self) -> int:
        try:
            row = self.connect().execute("SELECT COUNT(*) FROM passwords").fetchone()
        except sqlite3.Error as exc:
            raise classify_error(exc) from exc
        return int(row[0])

    def release(self) -> None:
        """Close the calling thread's connection; the next call reconnects."""

        conn = getattr(self._local, "conn", None)
        if conn is None:
            return
        self._local.conn = None
        with self._lock:
            if conn in self._connections:
                self._connections.remove(conn)
        conn.close()

    def close(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

    def __enter__(self) -> "PasswordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "CREATE_TABLE_QUERY",
    "PasswordStore",
    "StoreTransaction",
    "classify_error",
    "hash_password",
]
