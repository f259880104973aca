"""Primo Central connectors.

`Connector` speaks the brief search XML API, `RestConnector` the REST JSON
API. Both satisfy `ConnectorInterface`.
"""

from __future__ import annotations

from PrimoSearch.connectors.base import ConnectorInterface
from PrimoSearch.connectors.cache import CacheStorage, MemoryCacheStorage, ResponseCache
from PrimoSearch.connectors.http import HttpClient, HttpResponse, default_client_factory
from PrimoSearch.connectors.legacy import Connector
from PrimoSearch.connectors.rest import RestConnector, RetryState
from PrimoSearch.connectors.token import MemoryTokenCache, TokenCache

__all__ = [
    "CacheStorage",
    "Connector",
    "ConnectorInterface",
    "HttpClient",
    "HttpResponse",
    "MemoryCacheStorage",
    "MemoryTokenCache",
    "ResponseCache",
    "RestConnector",
    "RetryState",
    "TokenCache",
    "default_client_factory",
]
