"""Response cache configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from PrimoSearch.config.common import expect_bool, expect_int, expect_str, get_section

_ALLOWED_BACKENDS = {"memory", "sqlite"}


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Response cache settings. ``ttl`` is in seconds, 0 means no expiry."""

    enabled: bool
    backend: str
    db_path: str
    ttl: int


def load_cache(raw: Mapping[str, Any]) -> CacheConfig:
    """Load the optional ``cache`` section."""
    section = get_section(raw, "cache", required=False)
    return CacheConfig(
        enabled=expect_bool(section.get("enabled", False), "cache.enabled"),
        backend=expect_str(section.get("backend", "memory"), "cache.backend").strip().lower(),
        db_path=expect_str(section.get("db_path", "database/primo_cache.db"), "cache.db_path"),
        ttl=expect_int(section.get("ttl", 0), "cache.ttl"),
    )


def check_cache(config: CacheConfig) -> None:
    """Validate cache domain constraints."""
    if config.backend not in _ALLOWED_BACKENDS:
        raise ValueError(f"cache.backend must be one of {sorted(_ALLOWED_BACKENDS)}")
    if config.ttl < 0:
        raise ValueError("cache.ttl must not be negative")
    if config.enabled and config.backend == "sqlite" and not config.db_path.strip():
        raise ValueError("cache.db_path must not be empty")
