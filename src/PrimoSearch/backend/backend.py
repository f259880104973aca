"""Primo search backend."""

from __future__ import annotations

from typing import Any, Optional

from PrimoSearch.backend.query_builder import QueryBuilder
from PrimoSearch.backend.records import RecordCollection, RecordCollectionFactory
from PrimoSearch.connectors.base import ConnectorInterface
from PrimoSearch.core.exceptions import BackendException
from PrimoSearch.core.models import FilterSpec, NormalizedResult, as_bool
from PrimoSearch.core.query import AbstractQuery, ParamBag
from PrimoSearch.utils.log import log

DEFAULT_IDENTIFIER = "Primo"

# ParamBag keys handed to the connector as lists; all others are flattened
ARRAY_SETTINGS = frozenset({"query", "facets", "filterList", "groupFilters", "rangeFilters"})

PC_AVAILABILITY_FIELD = "pcAvailability"
_FALSE_VALUES = ("0", "false")


class Backend:
    """Search backend that runs queries through a Primo connector."""

    def __init__(
        self,
        connector: ConnectorInterface,
        factory: Optional[RecordCollectionFactory] = None,
        *,
        query_builder: Optional[QueryBuilder] = None,
        identifier: str = DEFAULT_IDENTIFIER,
    ) -> None:
        self.connector = connector
        self.collection_factory = factory
        self.query_builder = query_builder
        self.identifier = identifier

    def get_identifier(self) -> str:
        return self.identifier

    def set_identifier(self, identifier: str) -> None:
        self.identifier = identifier

    def get_connector(self) -> ConnectorInterface:
        return self.connector

    def get_query_builder(self) -> QueryBuilder:
        if self.query_builder is None:
            self.query_builder = QueryBuilder()
        return self.query_builder

    def set_query_builder(self, query_builder: QueryBuilder) -> None:
        self.query_builder = query_builder

    def get_record_collection_factory(self) -> RecordCollectionFactory:
        if self.collection_factory is None:
            self.collection_factory = RecordCollectionFactory()
        return self.collection_factory

    def search(
        self,
        query: AbstractQuery,
        offset: int,
        limit: int,
        params: Optional[ParamBag] = None,
    ) -> RecordCollection:
        """Perform a search and return one page of records.

        Args:
            query: Search query.
            offset: Zero-based offset of the first record.
            limit: Page size.
            params: Extra backend parameters merged over the built query.

        Returns:
            Records of the requested page.

        Raises:
            BackendException: When the connector fails.
        """
        base_params = self.get_query_builder().build(query)
        if params is not None:
            base_params.merge_with(params)
        base_params.set("limit", limit)
        base_params.set("pageNumber", offset // limit + 1 if limit > 0 else 1)

        primo_params = self.param_bag_to_primo_params(base_params)
        terms = primo_params.pop("query", [])
        try:
            result = self.connector.query(self.connector.get_institution_code(), terms, primo_params)
        except Exception as error:  # noqa: BLE001 - surfaced as BackendException
            log.warning("Primo search failed: %s", error)
            raise BackendException.wrap(error) from error

        log.debug("Primo search returned %d of %d records", len(result.documents), result.record_count)
        return self._to_collection(result)

    def retrieve(self, record_id: str, params: Optional[ParamBag] = None) -> RecordCollection:
        """Retrieve a single record.

        Raises:
            BackendException: When the connector fails.
        """
        on_campus_values = params.get("onCampus") if params is not None else None
        on_campus = as_bool(on_campus_values[0]) if on_campus_values else False
        try:
            result = self.connector.get_record(record_id, self.connector.get_institution_code(), on_campus)
        except Exception as error:  # noqa: BLE001 - surfaced as BackendException
            log.warning("Primo record retrieval failed: id=%s error=%s", record_id, error)
            raise BackendException.wrap(error) from error
        return self._to_collection(result)

    def param_bag_to_primo_params(self, params: ParamBag) -> dict[str, Any]:
        """Flatten ``params`` into the connector's argument mapping.

        A ``pcAvailability`` entry in ``filterList`` is lifted into the
        top-level ``pcAvailability`` flag; an empty value counts as true.
        """
        options: dict[str, Any] = {}
        for key, values in params.params().items():
            if key in ARRAY_SETTINGS:
                options[key] = values
            elif values:
                options[key] = values[0]

        if "filterList" in options:
            filters: list[FilterSpec] = []
            for item in options["filterList"]:
                spec = FilterSpec.from_value(item)
                if spec.field == PC_AVAILABILITY_FIELD:
                    value = spec.values[0] if spec.values else ""
                    options["pcAvailability"] = value.lower() not in _FALSE_VALUES
                    continue
                filters.append(spec)
            options["filterList"] = filters
        return options

    def _to_collection(self, result: NormalizedResult) -> RecordCollection:
        collection = self.get_record_collection_factory().factory(result)
        collection.set_source_identifier(self.identifier)
        return collection
