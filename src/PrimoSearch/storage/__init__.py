"""Storage layer for PrimoSearch.

Provides the SQLite database manager and response cache storage.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from PrimoSearch.connectors.cache import MemoryCacheStorage, ResponseCache
from PrimoSearch.storage.db import DatabaseManager
from PrimoSearch.storage.response_cache import SqliteCacheStorage
from PrimoSearch.utils.log import log

if TYPE_CHECKING:
    from PrimoSearch.config import AppConfig


def create_response_cache(config: AppConfig) -> tuple[DatabaseManager | None, ResponseCache | None]:
    """Create the response cache described by ``config.cache``.

    Returns:
        Tuple of (db_manager, response_cache). The manager is None unless
        the SQLite backend is used; both are None when caching is disabled.
    """
    cache_config = config.cache
    if not cache_config.enabled:
        return None, None

    if cache_config.backend == "sqlite":
        db_path = Path(cache_config.db_path)
        db_manager = DatabaseManager(db_path)
        log.info("Response cache enabled: %s", db_path)
        return db_manager, ResponseCache(SqliteCacheStorage(db_manager, ttl=cache_config.ttl))

    log.info("Response cache enabled: memory")
    return None, ResponseCache(MemoryCacheStorage(ttl=cache_config.ttl))


__all__ = [
    "DatabaseManager",
    "SqliteCacheStorage",
    "create_response_cache",
]
