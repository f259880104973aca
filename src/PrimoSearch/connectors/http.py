"""HTTP transport used by the Primo connectors.

A thin stateful wrapper over ``requests`` exposing the uri/method/headers/send
surface the connectors are written against.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Mapping, Optional

import requests

DEFAULT_TIMEOUT = 30.0

_XML_ENCODING_RE = re.compile(rb"""^(?:\xef\xbb\xbf)?\s*<\?xml[^>]*?encoding=["']([A-Za-z0-9._-]+)["']""")

HEADERS = {
    "User-Agent": "primo-search/0.1",
    "Accept": "application/json, application/xml;q=0.9, */*;q=0.8",
}


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Status and body of a completed request."""

    status_code: int
    body: str

    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    """Single-endpoint HTTP client backed by a ``requests.Session``."""

    def __init__(
        self,
        uri: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.uri = uri
        self.method = "GET"
        self.headers: dict[str, str] = dict(HEADERS)
        self.timeout = timeout
        self._session = session or requests.Session()

    def set_uri(self, uri: str) -> HttpClient:
        self.uri = uri
        return self

    def set_method(self, method: str) -> HttpClient:
        self.method = method.upper()
        return self

    def set_headers(self, headers: Mapping[str, str]) -> HttpClient:
        """Merge ``headers`` over the current headers."""
        self.headers.update(headers)
        return self

    def send(self) -> HttpResponse:
        """Issue the request.

        Without a charset in ``Content-Type`` the body is decoded with the
        encoding named in its XML declaration, else UTF-8.

        Returns:
            The response status and text body.

        Raises:
            requests.RequestException: On timeouts and connection errors.
        """
        resp = self._session.request(self.method, self.uri, headers=self.headers, timeout=self.timeout)
        if "charset=" not in resp.headers.get("Content-Type", "").lower():
            resp.encoding = declared_encoding(resp.content)
        return HttpResponse(status_code=resp.status_code, body=resp.text)

    def close(self) -> None:
        self._session.close()


def declared_encoding(content: bytes) -> str:
    """Return the encoding of an XML declaration at the start of ``content``, else UTF-8."""
    match = _XML_ENCODING_RE.match(content[:256])
    if match is None:
        return "utf-8-sig"
    encoding = match.group(1).decode("ascii")
    return "utf-8-sig" if encoding.lower() in ("utf-8", "utf8") else encoding


ClientFactory = Callable[[str], HttpClient]


def default_client_factory(*, timeout: float = DEFAULT_TIMEOUT) -> ClientFactory:
    """Return a factory building one `HttpClient` per URL over a shared session."""
    session = requests.Session()

    def factory(url: str) -> HttpClient:
        return HttpClient(url, timeout=timeout, session=session)

    return factory
