"""Shared SQLite connection used by every adapter in a process."""

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass
class StatementResult:
    """Column names, fetched rows and affected row count of one statement."""

    columns: list[str] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)
    rowcount: int = -1


class SharedConnection:
    """
    A sqlite3 connection that serialises all access through one lock.

    Each statement runs and has its rows fetched while the lock is held, so
    adapters on different threads that share this object never interleave
    inside a statement. Writes are committed as soon as they run; there is
    no multi-statement transaction.

    Example:
        conn = connect("app.db")
        users = SqliteAdapter(conn, "users", UserSchema())
        sessions = SqliteAdapter(conn, "sessions", SessionSchema())
    """

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return "SharedConnection(...)"

    def execute(
        self,
        sql: str,
        params: Sequence[Any] | Mapping[str, Any] = (),
        commit: bool = False,
    ) -> StatementResult:
        """
        Run one statement and fetch all of its rows.

        Args:
            sql: The statement
            params: Positional or named parameters
            commit: Commit after the statement has run

        A failed statement rolls back any open transaction before the
        error is re-raised.

        Returns:
            StatementResult for the statement
        """
        with self._lock:
            try:
                cursor = self.connection.execute(sql, params)
                try:
                    rows = cursor.fetchall()
                    columns = [d[0] for d in cursor.description or ()]
                    rowcount = cursor.rowcount
                finally:
                    cursor.close()
                if commit:
                    self.connection.commit()
            except sqlite3.Error:
                # A plain connection opens a transaction implicitly; release its lock
                if self.connection.in_transaction:
                    self.connection.rollback()
                raise
        return StatementResult(columns=columns, rows=rows, rowcount=rowcount)

    def close(self):
        """Close the underlying connection."""
        with self._lock:
            self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def connect(db_path: str | Path, timeout: float = 5.0, wal: bool = True) -> SharedConnection:
    """
    Open a SQLite database for sharing across adapters and threads.

    Args:
        db_path: Path to the SQLite database file (created if it doesn't
            exist), or ":memory:"
        timeout: Seconds to wait for a lock held by another process
        wal: Enable WAL journaling for file databases

    Returns:
        The SharedConnection
    """
    db_path = str(db_path)
    connection = sqlite3.connect(
        db_path,
        timeout=timeout,
        check_same_thread=False,  # Access is serialised by SharedConnection
        isolation_level=None,
    )
    if wal and db_path != ":memory:":
        connection.execute("PRAGMA journal_mode=WAL")
    logger.debug("Opened SQLite database %s", db_path)
    return SharedConnection(connection)
