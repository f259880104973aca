"""SQLite database utilities."""

from __future__ import annotations

import sqlite3
from pathlib import Path


class DatabaseManager:
    """Owns the SQLite connection backing the response cache.

    Supports context manager protocol for automatic connection cleanup.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (and create if needed) the database at ``db_path``.

        Args:
            db_path: Absolute path or project-relative path to database file.
        """
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = ensure_db(db_path)
        init_schema(self.conn)

    def get_connection(self) -> sqlite3.Connection:
        """Get the shared database connection.

        Raises:
            RuntimeError: If the manager has been closed.
        """
        if self.conn is None:
            raise RuntimeError(f"Database {self.db_path} is closed")
        return self.conn

    def close(self) -> None:
        """Close the database connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> DatabaseManager:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def ensure_db(db_path: Path) -> sqlite3.Connection:
    """Ensure database file exists and return connection.

    Raises:
        OSError: If directory creation fails.
        sqlite3.Error: If database connection fails.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(db_path))


def init_schema(conn: sqlite3.Connection) -> None:
    """Initialize the response cache schema."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS response_cache (
          cache_key TEXT PRIMARY KEY,
          body TEXT NOT NULL,
          stored_at INTEGER NOT NULL DEFAULT (
            CAST(strftime('%s','now') AS INTEGER)
          )
        );

        CREATE INDEX IF NOT EXISTS idx_response_cache_stored
          ON response_cache(stored_at);
    """)
    conn.commit()
