from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Sequence, Union


@dataclass(frozen=True, slots=True)
class Query:
    """A single search: one handler (index), one lookfor string.

    Attributes:
        handler: Search handler name, e.g. ``AllFields``, ``Title``.
        string: Raw lookfor text. Passed through without validation.
        operator: Optional precision operator (``contains``, ``exact``,
            ``begins_with``) overriding the connector default.
    """

    handler: str = "AllFields"
    string: str = ""
    operator: str | None = None


@dataclass(frozen=True, slots=True)
class QueryGroup:
    """Boolean group of queries and/or nested groups.

    Attributes:
        operator: Boolean operator joining the members (AND/OR/NOT).
        queries: Members; each is a `Query` or a nested `QueryGroup`.
    """

    operator: str = "AND"
    queries: Sequence[Union[Query, "QueryGroup"]] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "queries", tuple(self.queries))


AbstractQuery = Union[Query, QueryGroup]


class ParamBag:
    """Ordered multi-valued mapping of backend-specific request parameters.

    Every name maps to a list of values. Insertion order of names is kept.
    """

    def __init__(self, params: Mapping[str, Any] | None = None) -> None:
        self._params: dict[str, list[Any]] = {}
        for name, value in (params or {}).items():
            self.set(name, value)

    def get(self, name: str) -> list[Any] | None:
        """Return the values stored under ``name`` or None."""
        values = self._params.get(name)
        return list(values) if values is not None else None

    def has(self, name: str) -> bool:
        return name in self._params

    def set(self, name: str, value: Any) -> None:
        """Replace all values of ``name``. Lists and tuples are stored as-is."""
        self._params[name] = _as_values(value)

    def add(self, name: str, value: Any) -> None:
        """Append one value (or each item of a list) to ``name``."""
        self._params.setdefault(name, []).extend(_as_values(value))

    def remove(self, name: str) -> None:
        self._params.pop(name, None)

    def merge_with(self, other: ParamBag) -> None:
        """Append every value of ``other`` to this bag."""
        for name, values in other.params().items():
            self._params.setdefault(name, []).extend(values)

    def params(self) -> dict[str, list[Any]]:
        """Return a copy of the underlying mapping."""
        return {name: list(values) for name, values in self._params.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._params))

    def __len__(self) -> int:
        return len(self._params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParamBag):
            return NotImplemented
        return self._params == other._params

    def __repr__(self) -> str:
        return f"ParamBag({self._params!r})"


def _as_values(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def iter_queries(group: QueryGroup) -> Iterable[Query]:
    """Yield the `Query` members of ``group``, skipping nested groups."""
    for member in group.queries:
        if isinstance(member, Query):
            yield member


@dataclass(frozen=True, slots=True)
class QueryTerm:
    """Flat ``{index, operator, term}`` triple handed to a connector."""

    index: str
    term: str
    operator: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> QueryTerm:
        """Build from a `QueryTerm` or a mapping (``lookfor``/``op`` accepted)."""
        if isinstance(value, QueryTerm):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Unsupported query term: {value!r}")
        term = value.get("term", value.get("lookfor", ""))
        operator = value.get("operator", value.get("op")) or None
        return cls(index=str(value.get("index", "")), term="" if term is None else str(term), operator=operator)
