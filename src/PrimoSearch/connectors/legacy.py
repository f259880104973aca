"""Primo brief search (XServices XML) connector.

Builds the brief search query string, sends it through an `HttpClient`, and
parses the XML response into a `NormalizedResult`.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Iterator, Mapping, Optional, Sequence
from urllib.parse import quote_plus
from xml.sax.saxutils import quoteattr

from PrimoSearch.connectors.base import INDEX_MAPPINGS, precision_for
from PrimoSearch.connectors.cache import ResponseCache
from PrimoSearch.connectors.http import HttpClient
from PrimoSearch.connectors.processing import (
    cdi_prefixed,
    collect_issns,
    process_description,
    process_highlighting,
)
from PrimoSearch.core.exceptions import PrimoError
from PrimoSearch.core.models import DocumentItem, NormalizedResult, SearchArgs
from PrimoSearch.core.query import QueryTerm
from PrimoSearch.utils.log import log

DEFAULT_PORT = 1701
BRIEF_SEARCH_PATH = "PrimoWebServices/xservice/search/brief"
LOCATION = "adaptor,primo_central_multiple_fe"


class Connector:
    """Primo Central connector for the brief search XML API."""

    def __init__(
        self,
        inst_code: str,
        client: HttpClient,
        *,
        api_id: Optional[str] = None,
        port: int = DEFAULT_PORT,
        url: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
    ) -> None:
        """Set up the connector.

        Args:
            inst_code: Institution code.
            client: HTTP client used for every request.
            api_id: Hosted Primo API id; used to build the default URL.
            port: API port for the default URL.
            url: Full brief search URL; overrides ``api_id``/``port``.
            cache: Optional response cache.

        Raises:
            ValueError: If neither ``url`` nor ``api_id`` is given.
        """
        if url:
            self.host = url
        elif api_id:
            self.host = f"http://{api_id}.hosted.exlibrisgroup.com:{port}/{BRIEF_SEARCH_PATH}"
        else:
            raise ValueError("Primo brief search needs either url or api_id")
        self.inst = inst_code
        self.client = client
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

        Args:
            institution: Institution code sent with the request.
            terms: Search terms; handlers without a Primo index are skipped.
            params: Optional search arguments (see `SearchArgs`).

        Returns:
            Normalized result, or the empty-search response when no term
            has any text.

        Raises:
            PrimoError: On HTTP failure or an unreadable response.
        """
        args = SearchArgs.from_mapping(params)
        qs: list[str] = []
        for term in (QueryTerm.from_value(item) for item in terms):
            lookin = INDEX_MAPPINGS.get(term.index)
            if lookin is None:
                log.debug("Skipping term for unsupported index: %s", term.index)
                continue
            lookfor = term.term.replace(",", "+")
            if not lookfor.strip():
                continue
            precision = precision_for(term, phrase=args.phrase)
            qs.append(f"query={lookin},{precision},{quote_plus(lookfor)}")

        if not qs:
            return NormalizedResult.empty_query()

        qs.append(f"institution={quote_plus(institution)}")
        qs.append(f"onCampus={_flag(args.on_campus)}")
        qs.append(f"dym={_flag(args.did_you_mean)}")
        qs.extend(_filter_params(args))
        if args.pc_availability:
            qs.append("pcAvailability=true")
        qs.append(f"indx={(args.page_number - 1) * args.limit + 1}")
        qs.append(f"bulkSize={args.limit}")
        if args.sort and args.sort != "relevance":
            qs.append(f"sortField={quote_plus(args.sort)}")
        if args.highlight:
            qs.append("highlight=true")
            qs.extend(f"displayField={name}" for name in ("title", "creator", "description"))
        qs.append(f"loc={LOCATION}")

        return self.process(self.call("&".join(qs)), args)

    def get_record(
        self,
        record_id: str,
        inst_code: Optional[str] = None,
        on_campus: bool = False,
    ) -> NormalizedResult:
        """Retrieve a single record by id."""
        if record_id == "":
            return NormalizedResult.empty_query()
        return self._fetch_by_ids([record_id], inst_code, on_campus)

    def get_records(
        self,
        record_ids: Sequence[str],
        inst_code: Optional[str] = None,
        on_campus: bool = False,
    ) -> NormalizedResult:
        """Retrieve several records in one request."""
        ids = [record_id for record_id in record_ids if record_id]
        if not ids:
            return NormalizedResult.empty_query()
        return self._fetch_by_ids(ids, inst_code, on_campus)

    def _fetch_by_ids(self, record_ids: list[str], inst_code: Optional[str], on_campus: bool) -> NormalizedResult:
        # 'exact' does not match every id form, so use 'contains'
        lookfor = " OR ".join(record_id.replace(";", " ") for record_id in record_ids)
        qs = [
            f"query=rid,contains,{quote_plus(lookfor)}",
            f"institution={quote_plus(inst_code or self.inst)}",
            f"onCampus={_flag(on_campus)}",
            "indx=1",
            f"bulkSize={len(record_ids)}",
            # records outside the holdings file are only returned with pcAvailability
            "pcAvailability=true",
            f"loc={LOCATION}",
        ]
        return self.process(self.call("&".join(qs)), SearchArgs())

    def call(self, qs: str) -> str:
        """Send a GET request with query string ``qs`` and return the body.

        Raises:
            PrimoError: If the response is not successful.
        """
        url = self.host + ("&" if "?" in self.host else "?") + qs
        log.debug("GET: %s", url)
        self.client.set_uri(url).set_method("GET")

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.get_cache_key(self.client)
            cached = self.cache.get_cached_data(cache_key)
            if cached is not None:
                return cached

        result = self.client.send()
        if not result.is_success():
            log.error("Request %s failed with error code %s: %s", url, result.status_code, result.body)
            raise PrimoError(result.body, status_code=result.status_code, body=result.body)
        if cache_key is not None:
            self.cache.put_cached_data(cache_key, result.body)
        return result.body

    def process(self, data: str, args: SearchArgs | None = None) -> NormalizedResult:
        """Translate brief search XML into a `NormalizedResult`.

        Raises:
            PrimoError: For empty or unparseable data, or when TOTALHITS is
                missing (the MESSAGE attribute is used as the error text).
        """
        args = args or SearchArgs()
        if not data:
            raise PrimoError("Primo did not return any data")
        try:
            root = ET.fromstring(data)
        except ET.ParseError as error:
            raise PrimoError(f"Error while parsing the document: {error}") from error

        total_hits = _first_attribute(root, "TOTALHITS")
        if total_hits is None:
            raise PrimoError(_first_attribute(root, "MESSAGE") or "TOTALHITS attribute missing.")

        documents = [self._parse_doc(doc, args) for doc in _iter_local(root, "DOC")]

        facets: dict[str, dict[str, Optional[int]]] = {}
        for facet in _iter_local(root, "FACET"):
            values = facets.setdefault(facet.get("NAME", ""), {})
            for facet_value in _children(facet):
                values[facet_value.get("KEY", "")] = _to_int(facet_value.get("VALUE"))

        did_you_mean = [node.get("QUERY", "") for node in _iter_local(root, "QUERYTRANSFORMS")]

        return NormalizedResult(
            record_count=_to_int(total_hits),
            documents=documents,
            facets=facets,
            did_you_mean=did_you_mean,
        )

    def _parse_doc(self, doc: ET.Element, args: SearchArgs) -> DocumentItem:
        record = _PnxRecord.from_doc(doc)
        display = record.section("display")
        search = record.section("search")
        addata = record.section("addata")

        item: dict[str, Any] = {
            "recordid": record.section("control").text("recordid")[3:],
            "title": display.text("title"),
            "format": _format_names(display.text("type")),
            "creator": _split(display.text("creator")),
            "subjects": _split(display.text("subject")),
            "ispartof": display.text("ispartof"),
            "description": display.text("description") or search.text("description"),
            "language": display.text("language"),
            "source": "; ".join(display.texts("source")),
            "identifier": display.text("identifier"),
            "fulltext": record.section("delivery").text("fulltext"),
            "issn": collect_issns(search.texts("issn"), addata.texts("eissn"), addata.texts("issn")),
            "publisher": display.texts("publisher"),
            "peer_reviewed": display.text("lds50") == "peer_reviewed",
            "url": _doc_url(doc),
            "cites": cdi_prefixed(display.texts("cites")),
            "cited_by": cdi_prefixed(display.texts("citedby")),
            "container_title": addata.text("jtitle"),
            "container_volume": addata.text("volume"),
            "container_issue": addata.text("issue"),
            "container_start_page": addata.text("spage"),
            "container_end_page": addata.text("epage"),
            "doi_str_mv": addata.texts("doi"),
        }
        process_highlighting(
            item,
            highlight=args.highlight,
            start_tag=args.highlight_start,
            end_tag=args.highlight_end,
        )
        item["description"] = process_description(item["description"])
        item["fullrecord"] = record.to_xml()
        return DocumentItem(**item)


class _PnxRecord:
    """Namespace-agnostic view of a PNX element.

    The brief search API puts the first document's ``PrimoNMBib`` subtree in
    the ``prim`` namespace while later documents have none; matching children
    by local name gives every document the same accessors.
    """

    def __init__(self, element: Optional[ET.Element]) -> None:
        self.element = element

    @classmethod
    def from_doc(cls, doc: ET.Element) -> _PnxRecord:
        bib = _child(doc, "PrimoNMBib")
        return cls(_child(bib, "record") if bib is not None else None)

    def section(self, name: str) -> _PnxRecord:
        return _PnxRecord(_child(self.element, name) if self.element is not None else None)

    def texts(self, name: str) -> list[str]:
        if self.element is None:
            return []
        return [text for text in (_inner_markup(node).strip() for node in _children(self.element, name)) if text]

    def text(self, name: str) -> str:
        values = self.texts(name)
        return values[0] if values else ""

    def to_xml(self) -> str:
        return ET.tostring(self.element, encoding="unicode") if self.element is not None else ""


def _local(tag: Any) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _children(element: ET.Element, name: str | None = None) -> Iterator[ET.Element]:
    for child in element:
        if name is None or _local(child.tag) == name:
            yield child


def _child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    return next(_children(element, name), None)


def _inner_markup(node: ET.Element) -> str:
    """Return the content of ``node`` with child elements written without namespaces."""
    parts = [node.text or ""]
    for child in node:
        attrs = "".join(f" {_local(key)}={quoteattr(value)}" for key, value in child.attrib.items())
        tag = _local(child.tag)
        parts.append(f"<{tag}{attrs}>{_inner_markup(child)}</{tag}>")
        parts.append(child.tail or "")
    return "".join(parts)


def _iter_local(root: ET.Element, name: str) -> Iterator[ET.Element]:
    for element in root.iter():
        if _local(element.tag) == name:
            yield element


def _first_attribute(root: ET.Element, name: str) -> Optional[str]:
    for element in root.iter():
        if name in element.attrib:
            return element.attrib[name]
    return None


def _doc_url(doc: ET.Element) -> str:
    links = _child(doc, "LINKS")
    openurl = _child(links, "openurl")
    if openurl is not None and (openurl.text or "").strip():
        return openurl.text.strip()
    getit = _child(doc, "GETIT")
    return getit.get("GetIt2", "") if getit is not None else ""


def _format_names(value: str) -> list[str]:
    if not value:
        return []
    words = value.replace("_", " ").split(" ")
    return [" ".join(word[:1].upper() + word[1:] for word in words)]


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(";") if part.strip()]


def _filter_params(args: SearchArgs) -> list[str]:
    params: list[str] = []
    for spec in args.filter_list:
        values = [quote_plus(value.replace(",", "+")) for value in spec.values]
        if not values:
            continue
        if spec.facet_op == "OR":
            params.append(f"query_inc=facet_{spec.field},exact,{','.join(values)}")
        elif spec.facet_op == "NOT":
            params.append(f"query_exc=facet_{spec.field},exact,{','.join(values)}")
        else:
            params.extend(f"query_inc=facet_{spec.field},exact,{value}" for value in values)
    return params


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
