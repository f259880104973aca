"""Translate abstract queries into the flat term list the connectors take."""

from __future__ import annotations

from PrimoSearch.core.query import AbstractQuery, ParamBag, Query, QueryGroup, QueryTerm, iter_queries


class QueryBuilder:
    """Build a `ParamBag` whose ``query`` key holds `QueryTerm` triples."""

    def build(self, query: AbstractQuery) -> ParamBag:
        params = ParamBag()
        params.set("query", self.abstract_query_to_terms(query))
        return params

    def abstract_query_to_terms(self, query: AbstractQuery) -> list[QueryTerm]:
        if isinstance(query, Query):
            return [QueryTerm(index=query.handler, term=query.string)]
        return self.query_group_to_terms(query)

    def query_group_to_terms(self, group: QueryGroup) -> list[QueryTerm]:
        """Flatten one level of a group.

        Only the immediate queries of the first member group are used;
        deeper nesting is not supported by Primo and must be flattened by the
        caller. A group whose first member is a plain query contributes its
        own immediate queries.
        """
        if not group.queries:
            return []
        first = group.queries[0]
        source = first if isinstance(first, QueryGroup) else group
        return [
            QueryTerm(index=query.handler, term=query.string, operator=query.operator)
            for query in iter_queries(source)
        ]
