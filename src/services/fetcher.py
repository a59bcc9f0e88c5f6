from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from .errors import (
    FetchFailedError,
    InvalidURLError,
    NetworkTimeoutError,
    UpstreamStatusError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_REDIRECTS = 5
ALLOWED_SCHEMES = ("http", "https")
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
        "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}


@dataclass(frozen=True)
class FetchedDocument:
    url: str
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def validate_url(url: str | None) -> str:
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidURLError("URL is required")
    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidURLError(f"Only HTTP and HTTPS URLs are supported: {candidate}")
    if not parsed.netloc:
        raise InvalidURLError(f"Invalid URL format: {candidate}")
    return candidate


class DocumentFetcher:
    """Fetches recipe pages the way a desktop browser would request them.

    Responses below 500 are returned as-is so the caller can branch on the
    status; 5xx responses, timeouts and transport failures raise.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(
            headers=BROWSER_HEADERS,
            timeout=timeout_seconds,
            follow_redirects=True,
            max_redirects=max_redirects,
        )

    async def fetch(self, url: str) -> FetchedDocument:
        target = validate_url(url)
        logger.info("fetch.start url=%s", target)

        try:
            response = await self._client.get(target, headers=BROWSER_HEADERS)
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(target, self.timeout_seconds) from error
        except httpx.HTTPError as error:
            raise FetchFailedError(f"Failed to fetch {target}: {error}") from error

        if response.status_code >= 500:
            raise UpstreamStatusError(target, response.status_code)

        logger.info("fetch.ok url=%s status=%d bytes=%d", target, response.status_code, len(response.content))
        return FetchedDocument(url=str(response.url), status_code=response.status_code, text=response.text)

    async def aclose(self) -> None:
        await self._client.aclose()
