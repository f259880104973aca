from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional, Sequence

EMPTY_SEARCH_DISALLOWED = "empty_search_disallowed"

_TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """One facet filter.

    Attributes:
        field: Facet field name without the ``facet_`` prefix.
        facet_op: ``OR``, ``NOT`` or anything else for an implicit AND.
        values: Filter values.
    """

    field: str
    facet_op: str = "AND"
    values: Sequence[str] = ()

    def __post_init__(self) -> None:
        values = self.values
        if isinstance(values, str):
            values = (values,)
        object.__setattr__(self, "values", tuple(str(value) for value in values))

    @classmethod
    def from_value(cls, value: Any) -> FilterSpec:
        """Build from a `FilterSpec` or a ``{field, facetOp, values}`` mapping."""
        if isinstance(value, FilterSpec):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Unsupported filter entry: {value!r}")
        facet_op = value.get("facetOp", value.get("facet_op")) or "AND"
        return cls(
            field=str(value.get("field", "")),
            facet_op=str(facet_op).upper(),
            values=value.get("values") or (),
        )


@dataclass(frozen=True, slots=True)
class SearchArgs:
    """Normalized per-request search options merged over defaults."""

    phrase: bool = False
    on_campus: bool = True
    did_you_mean: bool = False
    filter_list: Sequence[FilterSpec] = ()
    pc_availability: bool = False
    page_number: int = 1
    limit: int = 20
    sort: Optional[str] = None
    highlight: bool = False
    highlight_start: str = ""
    highlight_end: str = ""

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any] | None, *, min_limit: int = 0) -> SearchArgs:
        """Merge caller ``params`` over the defaults.

        Accepts both the wire names (``pageNumber``) and the field names
        (``page_number``). Unknown keys are ignored.

        Args:
            params: Caller-supplied options.
            min_limit: Lower bound applied to ``limit``.

        Returns:
            Normalized search arguments.
        """
        args = cls()
        if not params:
            return replace(args, limit=max(min_limit, args.limit))

        values: dict[str, Any] = {}
        for key, value in params.items():
            name = _ARG_ALIASES.get(key, key)
            if name in _ARG_FIELDS:
                values[name] = value

        converted: dict[str, Any] = {}
        for name, value in values.items():
            if name in _BOOL_FIELDS:
                converted[name] = as_bool(value)
            elif name in ("page_number", "limit"):
                converted[name] = int(value) if value not in (None, "") else getattr(args, name)
            elif name == "filter_list":
                converted[name] = tuple(FilterSpec.from_value(item) for item in (value or ()))
            elif name == "sort":
                converted[name] = str(value) if value not in (None, "") else None
            else:
                converted[name] = "" if value is None else str(value)

        args = replace(args, **converted)
        return replace(
            args,
            page_number=max(1, args.page_number),
            limit=max(min_limit, args.limit, 0),
        )


_ARG_ALIASES = {
    "onCampus": "on_campus",
    "didYouMean": "did_you_mean",
    "filterList": "filter_list",
    "pcAvailability": "pc_availability",
    "pageNumber": "page_number",
    "highlightStart": "highlight_start",
    "highlightEnd": "highlight_end",
}
_ARG_FIELDS = {f.name for f in fields(SearchArgs)}
_BOOL_FIELDS = {"phrase", "on_campus", "did_you_mean", "pc_availability", "highlight"}


def as_bool(value: Any) -> bool:
    """Interpret booleans and "true"/"1"/"yes"/"on" strings."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass(frozen=True, slots=True)
class DocumentItem:
    """One normalized Primo document.

    Attributes:
        recordid: Record id with the 3-character source prefix removed.
        issn: ISSNs from search and addata; dash-less duplicates of dashed
            entries are removed.
        cites: Cited record ids, ``cdi_`` prefixed.
        cited_by: Citing record ids, ``cdi_`` prefixed.
        highlight_details: Highlighted copies of title/author/description.
        fullrecord: Source record (XML text for the brief search API, a dict
            for the REST API).
    """

    recordid: str
    title: str = ""
    format: Sequence[str] = ()
    creator: Sequence[str] = ()
    subjects: Sequence[str] = ()
    ispartof: str = ""
    description: str = ""
    language: str = ""
    source: str = ""
    identifier: str = ""
    fulltext: str = ""
    issn: Sequence[str] = ()
    publisher: Sequence[str] = ()
    peer_reviewed: bool = False
    url: str = ""
    cites: Sequence[str] = ()
    cited_by: Sequence[str] = ()
    container_title: str = ""
    container_volume: str = ""
    container_issue: str = ""
    container_start_page: str = ""
    container_end_page: str = ""
    doi_str_mv: Sequence[str] = ()
    highlight_details: Mapping[str, Sequence[str]] = field(default_factory=dict)
    fullrecord: Any = None

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(
            self,
            "highlight_details",
            {key: tuple(values) for key, values in self.highlight_details.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the flat wire-style mapping of this document."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "highlight_details":
                data["highlightDetails"] = {key: list(values) for key, values in value.items()}
            elif f.name in _LIST_FIELDS:
                data[f.name] = list(value)
            else:
                data[f.name] = value
        return data


_LIST_FIELDS = (
    "format",
    "creator",
    "subjects",
    "issn",
    "publisher",
    "cites",
    "cited_by",
    "doi_str_mv",
)


@dataclass(frozen=True, slots=True)
class NormalizedResult:
    """Parsed search response.

    Attributes:
        record_count: Total hits reported by Primo.
        documents: Documents on the requested page.
        facets: Facet field -> value -> count. A None count marks a value
            selected by an active filter.
        did_you_mean: Spelling suggestions.
        error: Error code or message reported alongside the result.
    """

    record_count: int = 0
    documents: Sequence[DocumentItem] = ()
    facets: Mapping[str, Mapping[str, Optional[int]]] = field(default_factory=dict)
    did_you_mean: Sequence[str] = ()
    error: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "documents", tuple(self.documents))
        object.__setattr__(self, "did_you_mean", tuple(self.did_you_mean))

    @classmethod
    def empty_query(cls) -> NormalizedResult:
        """Return the canned response for a search without usable terms."""
        return cls(record_count=0, documents=(), facets={}, error=EMPTY_SEARCH_DISALLOWED)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "recordCount": self.record_count,
            "documents": [doc.to_dict() for doc in self.documents],
            "facets": {name: dict(values) for name, values in self.facets.items()},
            "didYouMean": list(self.did_you_mean),
        }
        if self.error is not None:
            data["error"] = self.error
        return data
