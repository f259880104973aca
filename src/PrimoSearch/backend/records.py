"""Record objects and collections returned by the Primo backend."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional, Sequence

from PrimoSearch.core.models import DocumentItem, NormalizedResult


@dataclass(slots=True)
class PrimoRecord:
    """A Primo Central record."""

    fields: DocumentItem
    source_identifier: str = ""

    def get_unique_id(self) -> str:
        return self.fields.recordid

    def get_title(self) -> str:
        return self.fields.title

    def get_highlighted_details(self) -> Mapping[str, Sequence[str]]:
        return self.fields.highlight_details


RecordFactory = Callable[[DocumentItem], PrimoRecord]


@dataclass(slots=True)
class RecordCollection:
    """One page of search results plus facets and suggestions."""

    total: int = 0
    records: list[PrimoRecord] = field(default_factory=list)
    facets: Mapping[str, Mapping[str, Optional[int]]] = field(default_factory=dict)
    did_you_mean: Sequence[str] = ()
    error: Optional[str] = None
    source_identifier: str = ""

    def set_source_identifier(self, identifier: str) -> None:
        """Tag the collection and each of its records with ``identifier``."""
        self.source_identifier = identifier
        for record in self.records:
            record.source_identifier = identifier

    def first(self) -> Optional[PrimoRecord]:
        return self.records[0] if self.records else None

    def __iter__(self) -> Iterator[PrimoRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


class RecordCollectionFactory:
    """Build a `RecordCollection` from a connector result."""

    def __init__(self, record_factory: Optional[RecordFactory] = None) -> None:
        self.record_factory: RecordFactory = record_factory or PrimoRecord

    def factory(self, result: NormalizedResult) -> RecordCollection:
        return RecordCollection(
            total=result.record_count,
            records=[self.record_factory(document) for document in result.documents],
            facets=result.facets,
            did_you_mean=tuple(result.did_you_mean),
            error=result.error,
        )
