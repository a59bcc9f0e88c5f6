from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from src.app.domain.errors import CacheRepositoryError, VideoQuotaExceededError
from src.app.domain.models import CachedVideo, GeneratedQuery, RecipeContext
from src.services.errors import ServiceError
from src.services.gemini_client import PROMPT_DIR, CompletionProvider
from src.services.video_cache import VideoCache, hash_query, normalize_query, to_cached_video
from src.services.video_search import VideoSearchProvider

logger = logging.getLogger(__name__)

SEARCH_RESULTS_URL = "https://www.youtube.com/results?search_query="
VIDEO_QUERY_PROMPT = PROMPT_DIR / "VIDEO_QUERY_PROMPT.txt"
QUERY_TEMPERATURE = 0.7
MAX_GENERATED_QUERIES = 3
GENERATED_QUERY_RESULTS = 1
FALLBACK_QUERY_RESULTS = 3
DEFAULT_RESULT_LIMIT = 3
DEFAULT_QUERY_TIMEOUT_SECONDS = 10.0
DEFAULT_QUOTA_COOLDOWN_SECONDS = 3600.0
MAX_PROMPT_INGREDIENTS = 15


class SuggestedQuery(BaseModel):
    searchQuery: str
    description: Optional[str] = None


class SuggestedQueries(BaseModel):
    videos: list[SuggestedQuery] = Field(min_length=1, max_length=MAX_GENERATED_QUERIES)


@dataclass
class VideoRecommendations:
    search_url: str
    videos: list[CachedVideo] = field(default_factory=list)
    strategy: str = "generated"


def fallback_query(context: RecipeContext) -> str:
    title = context.title.strip()
    cookware = (context.cookware or "").strip()
    return f"{title} {cookware} recipe" if cookware else f"{title} recipe"


def build_search_url(context: RecipeContext) -> str:
    title = context.title.strip()
    cookware = (context.cookware or "").strip()
    search_query = f"{title} {cookware} recipe" if cookware else title
    return SEARCH_RESULTS_URL + quote(search_query, safe="!~*'()")


def _query_prompt(context: RecipeContext) -> dict[str, str | list[str] | None]:
    return {
        "title": context.title,
        "description": context.description,
        "ingredients": context.ingredients[:MAX_PROMPT_INGREDIENTS],
        "cookware": context.cookware,
        "cuisine": context.cuisine,
        "cookingTime": context.cooking_time,
    }


class RecommendationService:
    """Maps a recipe to up to three instructional videos.

    Candidate queries come from the completion provider, or from a single
    deterministic query when it is unavailable. Each query is served from the
    cache when possible; misses go to the video search provider concurrently and
    a failed search never aborts the others.
    """

    def __init__(
        self,
        cache: VideoCache,
        video_search: VideoSearchProvider,
        completion_provider: CompletionProvider,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
        quota_cooldown_seconds: float = DEFAULT_QUOTA_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache = cache
        self._search = video_search
        self._provider = completion_provider
        self.result_limit = result_limit
        self.query_timeout_seconds = query_timeout_seconds
        self.quota_cooldown_seconds = quota_cooldown_seconds
        self._clock = clock
        self._quota_blocked_until = 0.0

    @property
    def quota_exhausted(self) -> bool:
        return self._clock() < self._quota_blocked_until

    def _trip_quota(self) -> None:
        self._quota_blocked_until = self._clock() + self.quota_cooldown_seconds
        logger.warning("videos.quota_exceeded cooldown=%.0fs", self.quota_cooldown_seconds)

    async def generate_queries(self, context: RecipeContext) -> list[GeneratedQuery]:
        if not self._provider.configured:
            return []
        try:
            suggestions = await asyncio.wait_for(
                self._provider.generate_structured(
                    _query_prompt(context),
                    SuggestedQueries,
                    VIDEO_QUERY_PROMPT,
                    operation="video_queries",
                    temperature=QUERY_TEMPERATURE,
                ),
                timeout=self.query_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("videos.query_generation_timeout title=%s", context.title)
            return []
        except ServiceError as error:
            logger.warning("videos.query_generation_failed title=%s error=%s", context.title, error)
            return []

        queries: list[GeneratedQuery] = []
        seen_hashes: set[str] = set()
        for suggestion in suggestions.videos[:MAX_GENERATED_QUERIES]:
            phrase = suggestion.searchQuery.strip()
            # phrases that share a cache key would search and store twice
            key = hash_query(phrase)
            if not normalize_query(phrase) or key in seen_hashes:
                continue
            seen_hashes.add(key)
            description = (suggestion.description or "").strip() or None
            queries.append(GeneratedQuery(search_query=phrase, description=description))
        return queries

    async def _store(self, query: str, context: RecipeContext, results: list) -> list[CachedVideo]:
        try:
            stored = await self._cache.populate(query, context, results)
        except CacheRepositoryError as error:
            logger.warning("videos.cache_store_failed query=%s error=%s", query, error)
            stored = None
        if stored is not None:
            return stored.videos
        now = datetime.now(timezone.utc)
        return [to_cached_video(result, rank, now) for rank, result in enumerate(results)]

    async def search_query(
        self,
        query: GeneratedQuery,
        context: RecipeContext,
        max_results: int,
    ) -> list[CachedVideo]:
        hit = await self._cache.lookup(query.search_query)
        if hit is not None and hit.videos:
            videos = hit.videos[:max_results]
        elif self.quota_exhausted:
            return []
        else:
            results = await self._search.search(query.search_query, max_results=max_results)
            if not results:
                return []
            videos = (await self._store(query.search_query, context, results))[:max_results]

        if query.description:
            videos = [replace(video, description=query.description) for video in videos]
        return videos

    async def recommend(self, context: RecipeContext) -> VideoRecommendations:
        search_url = build_search_url(context)

        if self.quota_exhausted:
            queries, strategy = [GeneratedQuery(search_query=fallback_query(context))], "quota-cooldown"
        else:
            queries, strategy = await self.generate_queries(context), "generated"
            if not queries:
                queries, strategy = [GeneratedQuery(search_query=fallback_query(context))], "fallback"
        max_results = GENERATED_QUERY_RESULTS if strategy == "generated" else FALLBACK_QUERY_RESULTS

        outcomes = await asyncio.gather(
            *(self.search_query(query, context, max_results) for query in queries),
            return_exceptions=True,
        )

        merged: list[CachedVideo] = []
        seen: set[str] = set()
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, VideoQuotaExceededError):
                self._trip_quota()
                continue
            if isinstance(outcome, Exception):
                logger.warning("videos.search_failed query=%s error=%s", query.search_query, outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            for video in outcome:
                if video.video_id not in seen:
                    seen.add(video.video_id)
                    merged.append(video)

        videos = merged[: self.result_limit]
        logger.info(
            "videos.recommended title=%s strategy=%s queries=%d videos=%d",
            context.title,
            strategy,
            len(queries),
            len(videos),
        )
        return VideoRecommendations(search_url=search_url, videos=videos, strategy=strategy)
