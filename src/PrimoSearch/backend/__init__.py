"""Primo search backend: query building, orchestration and record collections."""

from __future__ import annotations

from PrimoSearch.backend.backend import Backend
from PrimoSearch.backend.query_builder import QueryBuilder
from PrimoSearch.backend.records import PrimoRecord, RecordCollection, RecordCollectionFactory

__all__ = [
    "Backend",
    "PrimoRecord",
    "QueryBuilder",
    "RecordCollection",
    "RecordCollectionFactory",
]
