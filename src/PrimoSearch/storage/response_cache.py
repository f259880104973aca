"""SQLite-backed storage for cached Primo responses."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

from PrimoSearch.utils.log import log

if TYPE_CHECKING:
    from PrimoSearch.storage.db import DatabaseManager


class SqliteCacheStorage:
    """`CacheStorage` keeping response bodies in SQLite.

    Entries older than ``ttl`` seconds are ignored and purged on read
    (0 = no expiry).
    """

    def __init__(self, db_manager: DatabaseManager, ttl: int = 0) -> None:
        log.debug("Initializing SqliteCacheStorage")
        self.conn = db_manager.get_connection()
        self.ttl = ttl

    def get(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT body, stored_at FROM response_cache WHERE cache_key = ?",
            (key,),
        ).fetchone()
        if row is None:
            return None
        body, stored_at = row
        if self.ttl and int(time.time()) - int(stored_at) > self.ttl:
            self.conn.execute("DELETE FROM response_cache WHERE cache_key = ?", (key,))
            self.conn.commit()
            return None
        return body

    def put(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO response_cache (cache_key, body, stored_at) VALUES (?, ?, ?)",
            (key, value, int(time.time())),
        )
        self.conn.commit()

    def purge_expired(self) -> int:
        """Delete expired entries and return how many were removed."""
        if not self.ttl:
            return 0
        cursor = self.conn.execute(
            "DELETE FROM response_cache WHERE stored_at < ?",
            (int(time.time()) - self.ttl,),
        )
        self.conn.commit()
        log.debug("Purged %d expired cache entries", cursor.rowcount)
        return cursor.rowcount
