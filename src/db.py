"""Shared SQLite helpers: WAL mode, connection scopes, write transactions."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path), timeout=30)
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def connection(db_path: str | Path, conn: sqlite3.Connection | None = None) -> Iterator[sqlite3.Connection]:
    """Reuse `conn` when a caller already holds one, else open, commit and close.

    Stores take an optional connection so several writes can share one transaction.
    """
    if conn is not None:
        yield conn
        return

    own = wal_connect(db_path, row_factory=True)
    try:
        with own:
            yield own
    finally:
        own.close()


@contextmanager
def immediate_transaction(db_path: str | Path) -> Iterator[sqlite3.Connection]:
    """`BEGIN IMMEDIATE` transaction: takes the write lock up front.

    Reads done inside see the latest committed state and no other writer can
    interleave until COMMIT, which serializes read-modify-write sequences.
    """
    conn = sqlite3.connect(str(db_path), timeout=30, isolation_level=None)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()
