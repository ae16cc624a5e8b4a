"""Shared SQLite helpers: WAL connections scoped to one transaction."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def wal_connect(
    db_path: str | Path, row_factory: bool = False, timeout: float = 10.0
) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        timeout: Seconds to wait on a locked database before raising.
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(db_path: str | Path, row_factory: bool = False) -> Iterator[sqlite3.Connection]:
    """Commit on success, roll back on error, always close."""
    conn = wal_connect(db_path, row_factory=row_factory)
    try:
        with conn:
            yield conn
    finally:
        conn.close()
