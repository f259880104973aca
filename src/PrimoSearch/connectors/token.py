"""Session-scoped JWT storage for the REST connector."""

from __future__ import annotations

import time
from typing import Optional, Protocol


class TokenCache(Protocol):
    """Per-institution token store."""

    def get(self, institution: str) -> Optional[str]:
        """Return a live token or None."""
        raise NotImplementedError

    def set(self, institution: str, token: str) -> None:  # noqa: A003 - cache verb
        raise NotImplementedError

    def clear(self, institution: str) -> None:
        raise NotImplementedError


class MemoryTokenCache:
    """Token cache kept for the lifetime of one session object.

    Tokens older than ``ttl`` seconds are treated as expired (0 = never).
    """

    def __init__(self, ttl: int = 0) -> None:
        self.ttl = ttl
        self._tokens: dict[str, tuple[float, str]] = {}

    def get(self, institution: str) -> Optional[str]:
        entry = self._tokens.get(institution)
        if entry is None:
            return None
        issued_at, token = entry
        if self.ttl and time.time() - issued_at > self.ttl:
            self.clear(institution)
            return None
        return token

    def set(self, institution: str, token: str) -> None:  # noqa: A003 - cache verb
        self._tokens[institution] = (time.time(), token)

    def clear(self, institution: str) -> None:
        self._tokens.pop(institution, None)
