"""Connector contract and protocol constants shared by both Primo APIs."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from PrimoSearch.core.models import NormalizedResult
from PrimoSearch.core.query import QueryTerm

# Search handler -> Primo index
INDEX_MAPPINGS: dict[str, str] = {
    "AllFields": "any",
    "Title": "title",
    "Author": "creator",
    "Subject": "sub",
    "Abstract": "desc",
    "ISSN": "issn",
}

# Brief search sort fields understood by the REST API under other names
SORT_MAPPINGS: dict[str, str] = {
    "scdate": "date",
    "screator": "author",
    "stitle": "title",
}


class ConnectorInterface(Protocol):
    """Contract shared by the brief search (XML) and REST (JSON) connectors."""

    def query(
        self,
        institution: str,
        terms: Sequence[QueryTerm | Mapping[str, Any]],
        params: Mapping[str, Any] | None = None,
    ) -> NormalizedResult:
        """Run a search and return the normalized result."""
        raise NotImplementedError

    def get_record(
        self,
        record_id: str,
        inst_code: Optional[str] = None,
        on_campus: bool = False,
    ) -> NormalizedResult:
        """Fetch one record by id."""
        raise NotImplementedError

    def get_institution_code(self) -> str:
        raise NotImplementedError


def precision_for(term: QueryTerm, *, phrase: bool) -> str:
    """Return the match precision: exact for phrases, else the term operator or contains."""
    if phrase:
        return "exact"
    return term.operator or "contains"
