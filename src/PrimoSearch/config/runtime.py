"""Logging settings read from the ``log`` section.

Every key is optional: a missing section logs INFO to the console only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from PrimoSearch.config.common import expect_bool, expect_str, get_section

# accepted spellings -> logging level name
_LEVEL_NAMES = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Console level and optional per-command log file location."""

    level: str = "INFO"
    to_file: bool = False
    dir: str = "log"


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    """Read the ``log`` section, filling in defaults for absent keys.

    Raises:
        TypeError: If a value has the wrong type.
    """
    section = get_section(raw, "log", required=False)
    defaults = RuntimeConfig()
    level = expect_str(section.get("level", defaults.level), "log.level").strip().upper()
    return RuntimeConfig(
        level=_LEVEL_NAMES.get(level, level),
        to_file=expect_bool(section.get("to_file", defaults.to_file), "log.to_file"),
        dir=expect_str(section.get("dir", defaults.dir), "log.dir"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    """Reject unknown levels, and an empty directory when writing log files.

    Raises:
        ValueError: If values violate runtime constraints.
    """
    if config.level not in _LEVEL_NAMES.values():
        raise ValueError(f"log.level must be one of {', '.join(sorted(_LEVEL_NAMES))}, got {config.level!r}")
    if config.to_file and not config.dir.strip():
        raise ValueError("log.dir must not be empty when log.to_file is set")
