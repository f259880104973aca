"""Primo REST (JSON) connector with JWT authentication."""

from __future__ import annotations

import copy
import enum
import json
import sys
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote_plus, urlencode

from PrimoSearch.connectors.base import INDEX_MAPPINGS, SORT_MAPPINGS, precision_for
from PrimoSearch.connectors.cache import ResponseCache
from PrimoSearch.connectors.http import ClientFactory, HttpClient, HttpResponse
from PrimoSearch.connectors.processing import (
    cdi_prefixed,
    collect_issns,
    process_description,
    process_highlighting,
)
from PrimoSearch.connectors.token import MemoryTokenCache, TokenCache
from PrimoSearch.core.exceptions import PrimoError
from PrimoSearch.core.models import DocumentItem, NormalizedResult, SearchArgs
from PrimoSearch.core.query import QueryTerm
from PrimoSearch.utils.log import log

INSTCODE_PLACEHOLDER = "{{INSTCODE}}"
FORBIDDEN = 403


class RetryState(enum.Enum):
    """Authorization retry state of one search call.

    FIRST_ATTEMPT --403--> RETRIED (token renewed); RETRIED --403--> failure.
    """

    FIRST_ATTEMPT = "first_attempt"
    RETRIED = "retried"


class RestConnector:
    """Primo Central connector for the REST search API."""

    def __init__(
        self,
        jwt_url: str,
        search_url: str,
        inst_code: str,
        client_factory: ClientFactory,
        *,
        token_cache: Optional[TokenCache] = None,
        cache: Optional[ResponseCache] = None,
    ) -> None:
        """Set up the connector.

        Args:
            jwt_url: JWT issuing URL; empty disables authentication.
            search_url: REST search URL.
            inst_code: Institution code, substituted for ``{{INSTCODE}}``
                in both URLs.
            client_factory: Builds an `HttpClient` for a URL.
            token_cache: Session token store, keyed by institution.
            cache: Optional response cache.
        """
        self.jwt_url = jwt_url
        self.search_url = search_url
        self.inst = inst_code
        self.client_factory = client_factory
        self.token_cache: TokenCache = token_cache if token_cache is not None else MemoryTokenCache()
        self.cache = cache

    def get_institution_code(self) -> str:
        return self.inst

    def query(
        self,
        institution: str,
        terms: Sequence[QueryTerm | Mapping[str, Any]],
        params: Mapping[str, Any] | None = None,
    ) -> NormalizedResult:
        """Execute a search.

        ``institution`` is part of the shared connector signature; the REST
        API identifies the institution through the configured URLs instead.

        Returns:
            Normalized result, or the empty-search response when there are
            neither terms nor filters.

        Raises:
            PrimoError: On HTTP failure or an unreadable response.
        """
        del institution
        # Primo is flaky with limit=0
        args = SearchArgs.from_mapping(params, min_limit=1)

        primo_query: list[str] = []
        for term in (QueryTerm.from_value(item) for item in terms):
            lookfor = term.term.replace(";", " ")
            if not lookfor.strip():
                continue
            index = INDEX_MAPPINGS.get(term.index, "any")
            primo_query.append(f"{index},{precision_for(term, phrase=args.phrase)},{lookfor}")

        if not primo_query and not args.filter_list:
            return NormalizedResult.empty_query()

        qs: dict[str, str] = {}
        if primo_query:
            qs["q"] = ";".join(primo_query)
        qs.update(_filter_params(args))
        if args.pc_availability:
            qs["pcAvailability"] = "true"
        qs["offset"] = str((args.page_number - 1) * args.limit)
        qs["limit"] = str(args.limit)
        if args.sort and args.sort != "relevance":
            qs["sort"] = SORT_MAPPINGS.get(args.sort, args.sort)

        return self.process_response(self.call(urlencode(qs)), args)

    def get_record(
        self,
        record_id: str,
        inst_code: Optional[str] = None,
        on_campus: bool = False,
    ) -> NormalizedResult:
        """Retrieve a single record by id.

        The REST API scopes by institution through its URLs, so ``inst_code``
        and ``on_campus`` do not change the request.
        """
        del inst_code, on_campus
        if record_id == "":
            return NormalizedResult.empty_query()
        # 'exact' does not match every id form; quotes are required here
        qs = {
            "q": 'rid,contains,"' + record_id.replace(";", " ") + '"',
            "offset": "0",
            "limit": "1",
            "pcAvailability": "true",
        }
        return self.process_response(self.call(urlencode(qs)))

    def call(self, qs: str) -> str:
        """Send an authenticated GET to the search URL and return the body.

        A 403 answer triggers one token renewal and one retry.

        Raises:
            PrimoError: If the final response is not successful.
        """
        url = self._get_url(self.search_url)
        url += ("&" if "?" in url else "?") + qs
        log.debug("GET: %s", url)
        client = self.client_factory(url)
        client.set_method("GET")

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.get_cache_key(client)
            cached = self.cache.get_cached_data(cache_key)
            if cached is not None:
                return cached

        jwt = self.get_jwt()
        state = RetryState.FIRST_ATTEMPT
        while True:
            result = self._send(client, jwt)
            if jwt and result.status_code == FORBIDDEN and state is RetryState.FIRST_ATTEMPT:
                log.info("Primo rejected the session token, renewing")
                jwt = self.get_jwt(renew=True)
                state = RetryState.RETRIED
                continue
            break

        if not result.is_success():
            log.error("Request %s failed with error code %s: %s", url, result.status_code, result.body)
            raise PrimoError(result.body, status_code=result.status_code, body=result.body)
        if cache_key is not None:
            self.cache.put_cached_data(cache_key, result.body)
        return result.body

    def get_jwt(self, renew: bool = False) -> str:
        """Return the session token, fetching a new one when missing or ``renew``.

        Raises:
            PrimoError: If the token request fails.
        """
        if not self.jwt_url:
            return ""
        if renew:
            self.token_cache.clear(self.inst)
        else:
            token = self.token_cache.get(self.inst)
            if token:
                return token

        jwt_url = self._get_url(self.jwt_url)
        client = self.client_factory(jwt_url)
        client.set_method("GET")
        result = client.send()
        if not result.is_success():
            log.error("Request %s failed with error code %s: %s", jwt_url, result.status_code, result.body)
            raise PrimoError(result.body, status_code=result.status_code, body=result.body)
        token = result.body.strip().strip('"')
        self.token_cache.set(self.inst, token)
        return token

    def process_response(self, data: str, args: SearchArgs | None = None) -> NormalizedResult:
        """Translate a REST JSON response into a `NormalizedResult`.

        Raises:
            PrimoError: For empty or unparseable data.
        """
        args = args or SearchArgs()
        if data == "":
            raise PrimoError("Primo did not return any data")
        try:
            response = json.loads(data)
        except json.JSONDecodeError as error:
            raise PrimoError(f"Error while parsing Primo response: {error}") from error
        if not isinstance(response, dict) or not isinstance(response.get("info"), dict):
            raise PrimoError("Error while parsing Primo response: info section missing")

        info = response["info"]
        highlights = response.get("highlights")
        if not isinstance(highlights, dict):
            highlights = {}
        documents = [
            self._parse_doc(doc, args, highlights)
            for doc in response.get("docs") or []
            if isinstance(doc, dict)
        ]

        return NormalizedResult(
            record_count=_to_int(info.get("total")),
            documents=documents,
            facets=_collect_facets(response.get("facets") or [], args),
            did_you_mean=(),
            error=_error_message(info),
        )

    def _parse_doc(self, doc: Mapping[str, Any], args: SearchArgs, highlights: Mapping[str, Any]) -> DocumentItem:
        pnx = doc.get("pnx") or {}
        addata = pnx.get("addata") or {}
        control = pnx.get("control") or {}
        display = pnx.get("display") or {}
        search = pnx.get("search") or {}

        openurl = _first(pnx.get("links") or {}, "openurl")
        if not openurl or openurl.startswith("$"):
            openurl = str((pnx.get("GetIt2") or {}).get("link") or "")

        item: dict[str, Any] = {
            "recordid": _first(control, "recordid")[3:],
            "title": _first(display, "title"),
            "format": _list(display, "type"),
            # search fields give creators and subjects as lists
            "creator": [value.strip() for value in _list(search, "creator")],
            "subjects": _list(search, "subject"),
            "ispartof": _first(display, "ispartof"),
            "description": _first(display, "description") or _first(search, "description"),
            "language": _first(display, "language"),
            "source": "; ".join(_list(display, "source")),
            "identifier": _first(display, "identifier"),
            "fulltext": _first(pnx.get("delivery") or {}, "fulltext"),
            "issn": collect_issns(_list(search, "issn"), _list(addata, "eissn"), _list(addata, "issn")),
            "publisher": _list(display, "publisher"),
            "peer_reviewed": _first(display, "lds50") == "peer_reviewed",
            "url": openurl,
            "cites": cdi_prefixed(_list(display, "cites")),
            "cited_by": cdi_prefixed(_list(display, "citedby")),
            "container_title": _first(addata, "jtitle"),
            "container_volume": _first(addata, "volume"),
            "container_issue": _first(addata, "issue"),
            "container_start_page": _first(addata, "spage"),
            "container_end_page": _first(addata, "epage"),
            "doi_str_mv": _list(addata, "doi"),
        }
        process_highlighting(
            item,
            highlight=args.highlight,
            start_tag=args.highlight_start,
            end_tag=args.highlight_end,
            terms={key: _list(highlights, key) for key in highlights},
        )
        item["description"] = process_description(item["description"])
        item["fullrecord"] = copy.deepcopy(pnx)
        return DocumentItem(**item)

    def _send(self, client: HttpClient, jwt: str) -> HttpResponse:
        if jwt:
            client.set_headers({"Authorization": f"Bearer {jwt}"})
        return client.send()

    def _get_url(self, url: str) -> str:
        return url.replace(INSTCODE_PLACEHOLDER, quote_plus(self.inst))


def _filter_params(args: SearchArgs) -> dict[str, str]:
    multi_facets: list[str] = []
    q_include: list[str] = []
    q_exclude: list[str] = []
    for spec in args.filter_list:
        for value in spec.values:
            if spec.facet_op == "OR":
                multi_facets.append(f"facet_{spec.field},include,{value}")
            elif spec.facet_op == "NOT":
                q_exclude.append(f"facet_{spec.field},exact,{value}")
            else:
                q_include.append(f"facet_{spec.field},exact,{value}")

    params: dict[str, str] = {}
    if multi_facets:
        params["multiFacets"] = "|,|".join(multi_facets)
    if q_include:
        params["qInclude"] = "|,|".join(q_include)
    if q_exclude:
        params["qExclude"] = "|,|".join(q_exclude)
    return params


def _collect_facets(raw_facets: Sequence[Any], args: SearchArgs) -> dict[str, dict[str, Optional[int]]]:
    """Merge returned facets with active filters and order the values.

    Primo does not return values of active filters, so they are inserted
    with a None count and sorted to the top; the rest follow by descending
    count.
    """
    facets: dict[str, dict[str, Optional[int]]] = {}
    for spec in args.filter_list:
        if spec.facet_op == "NOT":
            continue
        for value in spec.values:
            facets.setdefault(spec.field, {})[value] = None

    for facet in raw_facets:
        if not isinstance(facet, dict):
            continue
        name = str(facet.get("name", ""))
        values = facets.setdefault(name, {})
        for value in facet.get("values") or []:
            if isinstance(value, dict):
                # keys stay strings so numeric values are kept intact
                values[str(value.get("value", ""))] = _to_int(value.get("count"))
        facets[name] = dict(
            sorted(
                values.items(),
                key=lambda entry: sys.maxsize if entry[1] is None else entry[1],
                reverse=True,
            )
        )
    return facets


def _error_message(info: Mapping[str, Any]) -> Optional[str]:
    messages = (info.get("errorDetails") or {}).get("errorMessages") or []
    return str(messages[0]) if messages else None


def _list(section: Mapping[str, Any], key: str) -> list[str]:
    value = section.get(key)
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def _first(section: Mapping[str, Any], key: str) -> str:
    values = _list(section, key)
    return values[0] if values else ""


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
