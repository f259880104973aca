from __future__ import annotations

"""Public configuration API for PrimoSearch."""

from PrimoSearch.config.app import (
    AppConfig,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
)
from PrimoSearch.config.cache import CacheConfig
from PrimoSearch.config.primo import PrimoConfig
from PrimoSearch.config.runtime import RuntimeConfig

__all__ = [
    "AppConfig",
    "CacheConfig",
    "PrimoConfig",
    "RuntimeConfig",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
]
