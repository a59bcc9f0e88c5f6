from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from src.app.domain.errors import VideoQuotaExceededError, VideoSearchError
from src.app.domain.models import VideoSearchResult

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
DEFAULT_TIMEOUT_SECONDS = 10.0
THUMBNAIL_PREFERENCE = ("high", "medium", "default")


def _clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _pick_thumbnail(thumbnails: Any) -> str | None:
    if not isinstance(thumbnails, dict):
        return None
    for size in THUMBNAIL_PREFERENCE:
        entry = thumbnails.get(size)
        if isinstance(entry, dict) and _clean_string(entry.get("url")):
            return entry["url"]
    return None


def _item_to_result(item: Any) -> VideoSearchResult | None:
    if not isinstance(item, dict):
        return None
    identifier = item.get("id")
    video_id = _clean_string(identifier.get("videoId")) if isinstance(identifier, dict) else None
    if not video_id:
        return None

    snippet = item.get("snippet") if isinstance(item.get("snippet"), dict) else {}
    return VideoSearchResult(
        video_id=video_id,
        title=_clean_string(snippet.get("title")) or "",
        description=_clean_string(snippet.get("description")),
        thumbnail_url=_pick_thumbnail(snippet.get("thumbnails")),
        channel_title=_clean_string(snippet.get("channelTitle")),
        published_at=_clean_string(snippet.get("publishedAt")),
        url=f"https://www.youtube.com/watch?v={video_id}",
        embed_url=f"https://www.youtube.com/embed/{video_id}",
    )


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return response.text
    reasons = [entry.get("reason", "") for entry in error.get("errors", []) if isinstance(entry, dict)]
    return " ".join([str(error.get("message", "")), *reasons])


class VideoSearchProvider(ABC):
    configured: bool = True

    @abstractmethod
    async def search(self, query: str, max_results: int = 1) -> list[VideoSearchResult]:
        """
        Search embeddable videos for a query.

        Args:
            query: Search phrase
            max_results: Upper bound on returned videos

        Returns:
            Results in provider relevance order

        Raises:
            VideoQuotaExceededError: The provider's daily quota is spent
            VideoSearchError: Any other provider or network failure
        """
        pass

    async def aclose(self) -> None:
        return None


class DisabledVideoSearch(VideoSearchProvider):
    configured = False

    async def search(self, query: str, max_results: int = 1) -> list[VideoSearchResult]:
        logger.debug("video_search.disabled query=%s", query)
        return []


class YouTubeSearchClient(VideoSearchProvider):
    """YouTube Data API v3 ``search.list``; each call costs 100 quota units."""

    def __init__(
        self,
        api_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def search(self, query: str, max_results: int = 1) -> list[VideoSearchResult]:
        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": max_results,
            "key": self._api_key,
            "videoEmbeddable": "true",
            "order": "relevance",
            "safeSearch": "moderate",
        }
        try:
            response = await self._client.get(YOUTUBE_SEARCH_URL, params=params)
        except httpx.TimeoutException as error:
            raise VideoSearchError(query, f"timeout after {self.timeout_seconds}s") from error
        except httpx.HTTPError as error:
            raise VideoSearchError(query, str(error)) from error

        if response.is_error:
            message = _error_text(response)
            if response.status_code == 403 and "quota" in message.lower():
                raise VideoQuotaExceededError(query)
            raise VideoSearchError(query, f"HTTP {response.status_code}: {message[:200]}")

        try:
            items = response.json().get("items") or []
        except (ValueError, AttributeError) as error:
            raise VideoSearchError(query, "unreadable response body") from error

        results: list[VideoSearchResult] = []
        for item in items:
            result = _item_to_result(item)
            if result is not None:
                results.append(result)
        logger.info("video_search.ok query=%s results=%d", query, len(results))
        return results[:max_results]

    async def aclose(self) -> None:
        await self._client.aclose()
