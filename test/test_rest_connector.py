"""Tests for the REST connector: request building, JWT handling and parsing."""

from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from PrimoSearch.connectors.cache import MemoryCacheStorage, ResponseCache
from PrimoSearch.connectors.rest import RestConnector
from PrimoSearch.connectors.token import MemoryTokenCache
from PrimoSearch.core.exceptions import PrimoError
from PrimoSearch.core.models import EMPTY_SEARCH_DISALLOWED, FilterSpec, SearchArgs
from PrimoSearch.core.query import QueryTerm
from stubs import StubClientFactory, ok, status

JWT_URL = "https://primo.example/jwt/{{INSTCODE}}"
SEARCH_URL = "https://primo.example/search?vid={{INSTCODE}}"

RESPONSE = {
    "info": {"total": 42},
    "docs": [
        {
            "pnx": {
                "control": {"recordid": ["TN_cdi_one"]},
                "display": {
                    "title": ['One <span class="searchword">climate</span> study'],
                    "type": ["article"],
                    "description": ["<p>Abstract one</p>"],
                    "lds50": ["peer_reviewed"],
                    "publisher": ["ACME"],
                    "cites": ["abc"],
                    "citedby": ["def"],
                    "source": ["S1", "S2"],
                },
                "search": {
                    "creator": [" Smith, J "],
                    "subject": ["Climate"],
                    "issn": ["12345678"],
                },
                "addata": {
                    "issn": ["1234-5678"],
                    "eissn": ["8765-4321"],
                    "jtitle": ["Journal"],
                    "volume": ["5"],
                    "issue": ["2"],
                    "spage": ["10"],
                    "epage": ["20"],
                    "doi": ["10.1/x"],
                },
                "links": {"openurl": ["$$Topenurl_article"]},
                "GetIt2": {"link": "https://getit.example/one"},
                "delivery": {"fulltext": ["fulltext"]},
            }
        },
        {
            "pnx": {
                "control": {"recordid": ["TN_cdi_two"]},
                "display": {"title": ["Two"]},
                "links": {"openurl": ["https://openurl.example/two"]},
            }
        },
    ],
    "facets": [
        {
            "name": "rtype",
            "values": [
                {"value": "articles", "count": 10},
                {"value": "books", "count": 30},
                {"value": "2020", "count": 5},
            ],
        }
    ],
}


def _connector(factory: StubClientFactory, **kwargs) -> RestConnector:
    return RestConnector(JWT_URL, SEARCH_URL, "MY INST", factory, **kwargs)


def _query_params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


class TestRestQuery(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = StubClientFactory(
            jwt_responses=[ok('"token"')],
            search_responses=[ok(json.dumps(RESPONSE))],
        )
        self.connector = _connector(self.factory)

    def test_query_parameters(self) -> None:
        self.connector.query(
            "ignored",
            [QueryTerm("Title", "big;data")],
            {"pageNumber": 3, "limit": 20, "sort": "scdate", "pcAvailability": True},
        )

        params = _query_params(self.factory.search_client.uri)
        self.assertEqual(params["vid"], ["MY INST"])
        self.assertEqual(params["q"], ["title,contains,big data"])
        self.assertEqual(params["offset"], ["40"])
        self.assertEqual(params["limit"], ["20"])
        self.assertEqual(params["sort"], ["date"])
        self.assertEqual(params["pcAvailability"], ["true"])

    def test_relevance_sort_omitted_and_limit_clamped(self) -> None:
        self.connector.query("x", [QueryTerm("AllFields", "a")], {"sort": "relevance", "limit": 0})

        params = _query_params(self.factory.search_client.uri)
        self.assertNotIn("sort", params)
        self.assertEqual(params["limit"], ["1"])
        self.assertEqual(params["offset"], ["0"])

    def test_terms_joined_and_unknown_index_defaults_to_any(self) -> None:
        self.connector.query(
            "x",
            [QueryTerm("Publisher", "acme"), QueryTerm("Author", "doe", "exact"), QueryTerm("Title", " ")],
        )

        params = _query_params(self.factory.search_client.uri)
        self.assertEqual(params["q"], ["any,contains,acme;creator,exact,doe"])

    def test_filter_encoding(self) -> None:
        self.connector.query(
            "x",
            [],
            {
                "filterList": [
                    {"field": "rtype", "facetOp": "OR", "values": ["books", "articles"]},
                    {"field": "lang", "facetOp": "NOT", "values": ["ger"]},
                    {"field": "topic", "values": ["x"]},
                ]
            },
        )

        params = _query_params(self.factory.search_client.uri)
        self.assertNotIn("q", params)
        self.assertEqual(params["multiFacets"], ["facet_rtype,include,books|,|facet_rtype,include,articles"])
        self.assertEqual(params["qExclude"], ["facet_lang,exact,ger"])
        self.assertEqual(params["qInclude"], ["facet_topic,exact,x"])

    def test_empty_search_makes_no_request(self) -> None:
        result = self.connector.query("x", [QueryTerm("AllFields", "  ")])

        self.assertEqual(result.error, EMPTY_SEARCH_DISALLOWED)
        self.assertEqual(self.factory.urls, [])

    def test_get_record(self) -> None:
        self.connector.get_record("TN_cdi_one")

        params = _query_params(self.factory.search_client.uri)
        self.assertEqual(params["q"], ['rid,contains,"TN_cdi_one"'])
        self.assertEqual(params["offset"], ["0"])
        self.assertEqual(params["limit"], ["1"])
        self.assertEqual(params["pcAvailability"], ["true"])

    def test_cached_response_skips_request(self) -> None:
        connector = _connector(self.factory, cache=ResponseCache(MemoryCacheStorage()))

        first = connector.query("x", [QueryTerm("AllFields", "a")])
        second = connector.query("x", [QueryTerm("AllFields", "a")])

        self.assertEqual(first, second)
        self.assertEqual(len(self.factory.search_client.sent), 1)


class TestRestAuthorization(unittest.TestCase):
    def test_instcode_substituted_and_bearer_sent(self) -> None:
        factory = StubClientFactory(jwt_responses=[ok('"tok1"')], search_responses=[ok("{}")])
        _connector(factory).call("q=x")

        self.assertEqual(factory.jwt_client.uri, "https://primo.example/jwt/MY+INST")
        self.assertEqual(factory.search_client.uri, "https://primo.example/search?vid=MY+INST&q=x")
        self.assertEqual(factory.search_client.sent[0][1]["Authorization"], "Bearer tok1")

    def test_forbidden_renews_token_once(self) -> None:
        factory = StubClientFactory(
            jwt_responses=[ok('"tok1"'), ok('"tok2"')],
            search_responses=[status(403, "expired"), ok("{}")],
        )
        tokens = MemoryTokenCache()
        connector = _connector(factory, token_cache=tokens)

        self.assertEqual(connector.call("q=x"), "{}")

        self.assertEqual(len(factory.search_client.sent), 2)
        self.assertEqual(len(factory.jwt_client.sent), 2)
        self.assertEqual(factory.search_client.sent[1][1]["Authorization"], "Bearer tok2")
        self.assertEqual(tokens.get("MY INST"), "tok2")

    def test_second_forbidden_fails(self) -> None:
        factory = StubClientFactory(
            jwt_responses=[ok('"tok1"'), ok('"tok2"')],
            search_responses=[status(403, "no"), status(403, "still no")],
        )

        with self.assertRaises(PrimoError) as ctx:
            _connector(factory).call("q=x")

        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(len(factory.search_client.sent), 2)

    def test_cached_token_reused(self) -> None:
        tokens = MemoryTokenCache()
        tokens.set("MY INST", "cached")
        factory = StubClientFactory(search_responses=[ok("{}"), ok("{}")])
        connector = _connector(factory, token_cache=tokens)

        connector.call("q=1")
        connector.call("q=2")

        self.assertEqual(factory.jwt_client.sent, [])
        self.assertEqual(factory.search_client.sent[1][1]["Authorization"], "Bearer cached")

    def test_without_jwt_url_no_token_or_retry(self) -> None:
        factory = StubClientFactory(search_responses=[status(403, "denied")])
        connector = RestConnector("", SEARCH_URL, "INST", factory)

        with self.assertRaises(PrimoError):
            connector.call("q=x")

        self.assertEqual(len(factory.search_client.sent), 1)
        self.assertNotIn("Authorization", factory.search_client.sent[0][1])

    def test_token_request_failure(self) -> None:
        factory = StubClientFactory(jwt_responses=[status(500, "down")])
        with self.assertRaises(PrimoError):
            _connector(factory).call("q=x")
        self.assertEqual(factory.search_client.sent, [])


class TestRestResponse(unittest.TestCase):
    def setUp(self) -> None:
        self.connector = _connector(StubClientFactory())

    def test_documents(self) -> None:
        result = self.connector.process_response(json.dumps(RESPONSE))

        self.assertEqual(result.record_count, 42)
        self.assertEqual([doc.recordid for doc in result.documents], ["cdi_one", "cdi_two"])
        one, two = result.documents
        self.assertEqual(one.title, "One climate study")
        self.assertEqual(one.format, ("article",))
        self.assertEqual(one.creator, ("Smith, J",))
        self.assertEqual(one.subjects, ("Climate",))
        self.assertEqual(one.description, "Abstract one")
        self.assertEqual(one.source, "S1; S2")
        self.assertEqual(one.fulltext, "fulltext")
        self.assertEqual(one.issn, ("8765-4321", "1234-5678"))
        self.assertEqual(one.publisher, ("ACME",))
        self.assertTrue(one.peer_reviewed)
        self.assertEqual(one.url, "https://getit.example/one")
        self.assertEqual(one.cites, ("cdi_abc",))
        self.assertEqual(one.cited_by, ("cdi_def",))
        self.assertEqual(
            (one.container_title, one.container_volume, one.container_issue),
            ("Journal", "5", "2"),
        )
        self.assertEqual((one.container_start_page, one.container_end_page), ("10", "20"))
        self.assertEqual(one.doi_str_mv, ("10.1/x",))
        self.assertEqual(two.url, "https://openurl.example/two")
        self.assertFalse(two.peer_reviewed)

    def test_fullrecord_is_a_copy_of_pnx(self) -> None:
        data = json.dumps(RESPONSE)
        result = self.connector.process_response(data)

        self.assertEqual(result.documents[1].fullrecord, RESPONSE["docs"][1]["pnx"])
        self.assertIn("span", result.documents[0].fullrecord["display"]["title"][0])

    def test_facets_sorted_by_count(self) -> None:
        result = self.connector.process_response(json.dumps(RESPONSE))
        self.assertEqual(list(result.facets["rtype"].items()), [("books", 30), ("articles", 10), ("2020", 5)])

    def test_active_filters_listed_first(self) -> None:
        args = SearchArgs(
            filter_list=(
                FilterSpec("rtype", "AND", ["journals"]),
                FilterSpec("lang", "NOT", ["ger"]),
            )
        )

        result = self.connector.process_response(json.dumps(RESPONSE), args)

        self.assertEqual(
            list(result.facets["rtype"].items()),
            [("journals", None), ("books", 30), ("articles", 10), ("2020", 5)],
        )
        self.assertNotIn("lang", result.facets)

    def test_highlighting_with_term_lists(self) -> None:
        data = dict(RESPONSE, highlights={"title": ["Two"]})
        args = SearchArgs(highlight=True, highlight_start="<b>", highlight_end="</b>")

        one, two = self.connector.process_response(json.dumps(data), args).documents

        self.assertEqual(dict(one.highlight_details), {"title": ("One <b>climate</b> study",)})
        self.assertEqual(dict(two.highlight_details), {"title": ("<b>Two</b>",)})
        self.assertEqual(two.title, "Two")

    def test_error_message_reported(self) -> None:
        data = {"info": {"total": 0, "errorDetails": {"errorMessages": ["Oops"]}}, "docs": []}
        result = self.connector.process_response(json.dumps(data))
        self.assertEqual(result.error, "Oops")
        self.assertEqual(result.documents, ())

    def test_invalid_responses(self) -> None:
        for data in ("", "not json", "[]", '{"docs": []}'):
            with self.subTest(data=data):
                with self.assertRaises(PrimoError):
                    self.connector.process_response(data)


if __name__ == "__main__":
    unittest.main()
