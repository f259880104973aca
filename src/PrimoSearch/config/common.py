from __future__ import annotations

"""Shared helpers for configuration loading and validation."""

from typing import Any, Mapping


def get_section(raw: Mapping[str, Any], key: str, *, required: bool, parent: str = "") -> Mapping[str, Any]:
    """Return a mapping section from a config mapping.

    Args:
        raw: Configuration mapping holding the section.
        key: Section name.
        required: Whether the section must exist.
        parent: Key path of ``raw`` used in error messages.

    Returns:
        Section mapping, or empty mapping for optional missing sections.

    Raises:
        ValueError: If section is required but missing.
        TypeError: If section is not a mapping.
    """
    config_key = f"{parent}.{key}" if parent else key
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {config_key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{config_key} must be an object")
    return section


def get_required_value(section: Mapping[str, Any], field: str, config_key: str) -> Any:
    """Return a required field value from a section.

    Raises:
        ValueError: If field is missing.
    """
    if field not in section:
        raise ValueError(f"Missing required config: {config_key}")
    return section[field]


def expect_str(value: Any, config_key: str) -> str:
    """Validate and return string value."""
    if not isinstance(value, str):
        raise TypeError(f"{config_key} must be a string")
    return value


def expect_optional_str(value: Any, config_key: str) -> str:
    """Validate a string that may be null; null becomes an empty string."""
    if value is None:
        return ""
    return expect_str(value, config_key)


def expect_bool(value: Any, config_key: str) -> bool:
    """Validate and return boolean value."""
    if not isinstance(value, bool):
        raise TypeError(f"{config_key} must be a boolean")
    return value


def expect_int(value: Any, config_key: str) -> int:
    """Validate and return integer value (excluding bool)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{config_key} must be an integer")
    return value


def expect_float(value: Any, config_key: str) -> float:
    """Validate and return float value from numeric input."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{config_key} must be a number")
    return float(value)
