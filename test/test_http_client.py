"""Tests for the requests-backed HTTP client."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

import requests
from requests.utils import get_encoding_from_headers

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from PrimoSearch.connectors.http import HttpClient, declared_encoding


def _response(content: bytes, content_type: str, status_code: int = 200) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = content
    resp.headers["Content-Type"] = content_type
    # same as HTTPAdapter.build_response
    resp.encoding = get_encoding_from_headers(resp.headers)
    return resp


class FakeSession:
    def __init__(self, response: requests.Response) -> None:
        self.response = response
        self.calls: list[tuple] = []

    def request(self, method, url, headers=None, timeout=None):
        self.calls.append((method, url, dict(headers or {}), timeout))
        return self.response

    def close(self) -> None:
        pass


def _send(content: bytes, content_type: str, status_code: int = 200):
    session = FakeSession(_response(content, content_type, status_code))
    return HttpClient("https://primo.example/xservice", session=session).send()


class TestResponseDecoding(unittest.TestCase):
    def test_xml_without_charset_uses_declared_utf8(self) -> None:
        body = '<?xml version="1.0" encoding="UTF-8"?><creator>Müller</creator>'.encode("utf-8")
        self.assertEqual(_send(body, "text/xml").body, "<?xml version=\"1.0\" encoding=\"UTF-8\"?><creator>Müller</creator>")

    def test_xml_without_declaration_defaults_to_utf8(self) -> None:
        self.assertEqual(_send("<t>Zürich</t>".encode("utf-8"), "text/xml").body, "<t>Zürich</t>")

    def test_byte_order_mark_dropped(self) -> None:
        body = b"\xef\xbb\xbf" + '<?xml version="1.0"?><t>ß</t>'.encode("utf-8")
        self.assertEqual(_send(body, "text/xml").body, '<?xml version="1.0"?><t>ß</t>')

    def test_latin1_declaration(self) -> None:
        body = b"<?xml version='1.0' encoding='ISO-8859-1'?><t>M\xfcller</t>"
        self.assertEqual(_send(body, "text/xml").body, "<?xml version='1.0' encoding='ISO-8859-1'?><t>Müller</t>")

    def test_charset_header_wins(self) -> None:
        body = '<?xml version="1.0" encoding="UTF-8"?><t>é</t>'.encode("utf-16")
        resp = _send(body, "text/xml; charset=UTF-16")
        self.assertTrue(resp.body.endswith("<t>é</t>"))

    def test_json_body(self) -> None:
        resp = _send('{"creator": "Łukasz"}'.encode("utf-8"), "application/json")
        self.assertEqual(resp.body, '{"creator": "Łukasz"}')

    def test_declared_encoding(self) -> None:
        self.assertEqual(declared_encoding(b'<?xml version="1.0" encoding="utf8"?>'), "utf-8-sig")
        self.assertEqual(declared_encoding(b"  <?xml version='1.0' encoding='windows-1252'?>"), "windows-1252")
        self.assertEqual(declared_encoding(b"{}"), "utf-8-sig")


class TestHttpClient(unittest.TestCase):
    def test_request_passes_method_headers_and_timeout(self) -> None:
        session = FakeSession(_response(b"{}", "application/json"))
        client = HttpClient("https://a.example", timeout=5, session=session)

        client.set_uri("https://b.example/x").set_method("post").set_headers({"Authorization": "Bearer t"})
        client.send()

        method, url, headers, timeout = session.calls[0]
        self.assertEqual((method, url, timeout), ("POST", "https://b.example/x", 5))
        self.assertEqual(headers["Authorization"], "Bearer t")
        self.assertIn("User-Agent", headers)

    def test_is_success(self) -> None:
        self.assertTrue(_send(b"{}", "application/json", 204).is_success())
        self.assertFalse(_send(b"", "text/html", 500).is_success())


if __name__ == "__main__":
    unittest.main()
