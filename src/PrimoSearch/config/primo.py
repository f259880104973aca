"""Primo connection configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from PrimoSearch.config.common import (
    expect_bool,
    expect_float,
    expect_int,
    expect_optional_str,
    expect_str,
    get_required_value,
    get_section,
)

_ALLOWED_APIS = {"rest", "legacy"}


@dataclass(frozen=True, slots=True)
class PrimoConfig:
    """Store validated Primo API settings.

    Attributes:
        api: ``rest`` for the REST API, ``legacy`` for brief search XML.
        inst_code: Institution code; replaces ``{{INSTCODE}}`` in REST URLs.
        search_url: REST search URL.
        jwt_url: REST JWT URL; empty disables authentication.
        api_id: Hosted brief search API id.
        port: Hosted brief search port.
        url: Explicit brief search URL, overriding ``api_id``/``port``.
    """

    api: str
    inst_code: str
    timeout: float
    on_campus: bool
    search_url: str
    jwt_url: str
    api_id: str
    port: int
    url: str
    highlighting: bool
    highlight_start: str
    highlight_end: str


def load_primo(raw: Mapping[str, Any]) -> PrimoConfig:
    """Load the ``primo`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "primo", required=True)
    rest = get_section(section, "rest", required=False, parent="primo")
    legacy = get_section(section, "legacy", required=False, parent="primo")
    highlighting = get_section(section, "highlighting", required=False, parent="primo")
    return PrimoConfig(
        api=expect_str(section.get("api", "rest"), "primo.api").strip().lower(),
        inst_code=expect_str(get_required_value(section, "inst_code", "primo.inst_code"), "primo.inst_code"),
        timeout=expect_float(section.get("timeout", 30), "primo.timeout"),
        on_campus=expect_bool(section.get("on_campus", False), "primo.on_campus"),
        search_url=expect_optional_str(rest.get("search_url"), "primo.rest.search_url"),
        jwt_url=expect_optional_str(rest.get("jwt_url"), "primo.rest.jwt_url"),
        api_id=expect_optional_str(legacy.get("api_id"), "primo.legacy.api_id"),
        port=expect_int(legacy.get("port", 1701), "primo.legacy.port"),
        url=expect_optional_str(legacy.get("url"), "primo.legacy.url"),
        highlighting=expect_bool(highlighting.get("enabled", False), "primo.highlighting.enabled"),
        highlight_start=expect_optional_str(highlighting.get("start"), "primo.highlighting.start"),
        highlight_end=expect_optional_str(highlighting.get("end"), "primo.highlighting.end"),
    )


def check_primo(config: PrimoConfig) -> None:
    """Validate Primo domain constraints.

    Raises:
        ValueError: If values violate Primo constraints.
    """
    if config.api not in _ALLOWED_APIS:
        raise ValueError(f"primo.api must be one of {sorted(_ALLOWED_APIS)}")
    if not config.inst_code.strip():
        raise ValueError("primo.inst_code must not be empty")
    if config.timeout <= 0:
        raise ValueError("primo.timeout must be positive")
    if config.api == "rest" and not config.search_url.strip():
        raise ValueError("primo.rest.search_url is required when primo.api=rest")
    if config.api == "legacy" and not (config.url.strip() or config.api_id.strip()):
        raise ValueError("primo.legacy.url or primo.legacy.api_id is required when primo.api=legacy")
    if config.port <= 0:
        raise ValueError("primo.legacy.port must be positive")
    if config.highlighting and not (config.highlight_start and config.highlight_end):
        raise ValueError("primo.highlighting.start and .end are required when highlighting is enabled")
