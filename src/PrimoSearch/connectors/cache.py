"""Response caching shared by the Primo connectors."""

from __future__ import annotations

import hashlib
import time
from typing import TYPE_CHECKING, Optional, Protocol

from PrimoSearch.utils.log import log

if TYPE_CHECKING:
    from PrimoSearch.connectors.http import HttpClient


class CacheStorage(Protocol):
    """Key/value store holding raw response bodies."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None when absent or expired."""
        raise NotImplementedError

    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        raise NotImplementedError


class MemoryCacheStorage:
    """In-process cache with an optional TTL in seconds (0 = no expiry)."""

    def __init__(self, ttl: int = 0) -> None:
        self.ttl = ttl
        self._entries: dict[str, tuple[float, str]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.ttl and time.time() - stored_at > self.ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: str) -> None:
        self._entries[key] = (time.time(), value)


class ResponseCache:
    """Cache helper composed into connectors.

    Keys are derived from the outbound request so identical requests share
    one entry.
    """

    def __init__(self, storage: CacheStorage) -> None:
        self.storage = storage

    @staticmethod
    def get_cache_key(client: HttpClient) -> str:
        """Build a deterministic key from the client's method and URL."""
        signature = f"{client.method} {client.uri}"
        return "primo_" + hashlib.md5(signature.encode("utf-8")).hexdigest()

    def get_cached_data(self, key: str) -> Optional[str]:
        value = self.storage.get(key)
        if value is not None:
            log.debug("Returning cached response for %s", key)
        return value

    def put_cached_data(self, key: str, body: str) -> None:
        self.storage.put(key, body)
