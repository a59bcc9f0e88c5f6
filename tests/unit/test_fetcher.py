from __future__ import annotations

import asyncio
from typing import Callable

import httpx
import pytest

from src.services.errors import (
    FetchFailedError,
    InvalidURLError,
    NetworkTimeoutError,
    UpstreamStatusError,
)
from src.services.fetcher import DocumentFetcher, validate_url

Handler = Callable[[httpx.Request], httpx.Response]


def _fetcher(handler: Handler) -> DocumentFetcher:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        follow_redirects=True,
        max_redirects=5,
    )
    return DocumentFetcher(timeout_seconds=30.0, client=client)


class TestValidateUrl:
    @pytest.mark.parametrize("url", ["ftp://example.com/a", "javascript:alert(1)", "example.com/recipe", "", None])
    def test_rejects(self, url: str | None) -> None:
        with pytest.raises(InvalidURLError):
            validate_url(url)

    def test_accepts_http_and_https(self) -> None:
        assert validate_url(" https://example.com/a ") == "https://example.com/a"
        assert validate_url("http://example.com") == "http://example.com"


class TestDocumentFetcher:
    def test_rejected_scheme_never_hits_network(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="")

        with pytest.raises(InvalidURLError):
            asyncio.run(_fetcher(handler).fetch("file:///etc/passwd"))
        assert calls == []

    def test_sends_browser_headers(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="<html></html>")

        document = asyncio.run(_fetcher(handler).fetch("https://example.com/recipe"))

        assert document.ok
        assert document.text == "<html></html>"
        assert "Chrome/120" in seen["user-agent"]
        assert seen["accept-language"] == "en-US,en;q=0.9"

    @pytest.mark.parametrize("status_code", [403, 404, 410])
    def test_client_errors_are_returned(self, status_code: int) -> None:
        document = asyncio.run(
            _fetcher(lambda request: httpx.Response(status_code, text="nope")).fetch("https://example.com/r")
        )
        assert document.status_code == status_code
        assert not document.ok

    def test_server_error_raises(self) -> None:
        with pytest.raises(UpstreamStatusError) as error:
            asyncio.run(_fetcher(lambda request: httpx.Response(503)).fetch("https://example.com/r"))
        assert error.value.status_code == 503

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(NetworkTimeoutError) as error:
            asyncio.run(_fetcher(handler).fetch("https://example.com/r"))
        assert error.value.timeout_seconds == 30.0

    def test_transport_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FetchFailedError):
            asyncio.run(_fetcher(handler).fetch("https://example.com/r"))

    def test_follows_redirects(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.com/new"})
            return httpx.Response(200, text="moved")

        document = asyncio.run(_fetcher(handler).fetch("https://example.com/old"))

        assert document.url == "https://example.com/new"
        assert document.text == "moved"
