"""Registry and builders for Primo connectors and the backend."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from PrimoSearch.backend.backend import Backend
from PrimoSearch.connectors.http import HttpClient, default_client_factory
from PrimoSearch.connectors.legacy import Connector
from PrimoSearch.connectors.rest import RestConnector
from PrimoSearch.connectors.token import MemoryTokenCache, TokenCache

if TYPE_CHECKING:
    from PrimoSearch.config import AppConfig
    from PrimoSearch.connectors.base import ConnectorInterface
    from PrimoSearch.connectors.cache import ResponseCache

ConnectorBuilder = Callable[["AppConfig", "ResponseCache | None", "TokenCache | None"], "ConnectorInterface"]


def build_connector(
    config: AppConfig,
    *,
    cache: ResponseCache | None = None,
    token_cache: TokenCache | None = None,
) -> ConnectorInterface:
    """Build the connector for the configured API.

    Raises:
        ValueError: If ``config.primo.api`` is not registered.
    """
    builder = _connector_builders().get(config.primo.api)
    if builder is None:
        raise ValueError(f"Unsupported Primo API in config.primo.api: {config.primo.api}")
    return builder(config, cache, token_cache)


def build_backend(
    config: AppConfig,
    *,
    cache: ResponseCache | None = None,
    token_cache: TokenCache | None = None,
) -> Backend:
    """Build a `Backend` wired to the configured connector."""
    return Backend(build_connector(config, cache=cache, token_cache=token_cache))


def supported_api_names() -> tuple[str, ...]:
    return tuple(_connector_builders().keys())


def _connector_builders() -> dict[str, ConnectorBuilder]:
    return {
        "rest": _build_rest_connector,
        "legacy": _build_legacy_connector,
    }


def _build_rest_connector(
    config: AppConfig, cache: ResponseCache | None, token_cache: TokenCache | None
) -> ConnectorInterface:
    primo = config.primo
    return RestConnector(
        primo.jwt_url,
        primo.search_url,
        primo.inst_code,
        default_client_factory(timeout=primo.timeout),
        token_cache=token_cache or MemoryTokenCache(),
        cache=cache,
    )


def _build_legacy_connector(
    config: AppConfig, cache: ResponseCache | None, token_cache: TokenCache | None
) -> ConnectorInterface:
    del token_cache
    primo = config.primo
    return Connector(
        primo.inst_code,
        HttpClient(timeout=primo.timeout),
        api_id=primo.api_id or None,
        port=primo.port,
        url=primo.url or None,
        cache=cache,
    )
