"""Exact-match cache for video search results.

Queries are keyed by the SHA-256 of their normalized form. Normalization
lowercases, trims and deletes every character that is neither a word character
nor whitespace, so "stir-fry" becomes "stirfry" and does not collide with
"stir fry". That imprecision is accepted.

A hit bumps ``use_count``/``last_used_at`` in a background task. The update is
best effort: it may be lost if the process stops first, and a failure is only
logged.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import CacheRepositoryError
from src.app.domain.models import (
    CachedQuery,
    CachedVideo,
    CacheHit,
    QueryKeyword,
    RecipeContext,
    VideoSearchResult,
)
from src.app.infra.db.base import VideoCacheRepository
from src.services.normalizers import extract_keywords

logger = logging.getLogger(__name__)

NON_WORD_PATTERN = re.compile(r"[^\w\s]")
API_QUOTA_PER_SEARCH = 100
RELEVANCE_STEP = 0.01
KEYWORD_WEIGHT = 1.0


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_query(query: str) -> str:
    return NON_WORD_PATTERN.sub("", query.lower().strip())


def hash_query(query: str) -> str:
    return hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()


def relevance_for_rank(rank: int) -> float:
    return 1.0 - RELEVANCE_STEP * rank


def to_cached_video(video: VideoSearchResult, rank: int, verified_at: datetime) -> CachedVideo:
    return CachedVideo(
        video_id=video.video_id,
        title=video.title,
        url=video.watch_url,
        embed_url=video.player_url,
        relevance_score=relevance_for_rank(rank),
        description=video.description,
        thumbnail_url=video.thumbnail_url,
        channel_title=video.channel_title,
        published_at=video.published_at,
        is_active=True,
        last_verified_at=verified_at,
    )


class VideoCache:
    def __init__(self, repository: VideoCacheRepository) -> None:
        self._repo = repository
        self._pending: set[asyncio.Task] = set()

    async def lookup(self, query: str) -> Optional[CacheHit]:
        query_hash = hash_query(query)
        try:
            cached = await run_in_threadpool(self._repo.find_active_by_hash, query_hash)
        except CacheRepositoryError as error:
            logger.warning("video_cache.lookup_failed hash=%s error=%s", query_hash, error)
            return None

        if cached is None:
            logger.info("video_cache.miss hash=%s query=%s", query_hash, query)
            return None

        self._schedule_use_update(cached)
        logger.info("video_cache.hit hash=%s uses=%d", query_hash, cached.use_count)
        return CacheHit(query=cached, videos=cached.active_videos)

    async def populate(
        self,
        query: str,
        context: Optional[RecipeContext],
        videos: list[VideoSearchResult],
    ) -> Optional[CachedQuery]:
        """Store search results for ``query``; empty result sets are not cached."""
        if not videos:
            logger.info("video_cache.skip_empty query=%s", query)
            return None

        normalized = normalize_query(query)
        query_hash = hash_query(query)
        now = _now_utc()
        recipe_title = context.title if context else None
        cookware = context.cookware if context else None

        existing = await run_in_threadpool(self._repo.get_by_hash, query_hash)
        if existing is not None:
            stored = await run_in_threadpool(
                self._repo.update_query,
                replace(
                    existing,
                    total_results=len(videos),
                    api_quota_used=existing.api_quota_used + API_QUOTA_PER_SEARCH,
                    last_used_at=now,
                    is_active=True,
                    recipe_title=recipe_title or existing.recipe_title,
                    cookware=cookware or existing.cookware,
                ),
            )
            await run_in_threadpool(self._repo.deactivate_videos, stored.id)
        else:
            stored = await run_in_threadpool(
                self._repo.insert_query,
                CachedQuery(
                    id=str(uuid4()),
                    search_query=query,
                    normalized_query=normalized,
                    query_hash=query_hash,
                    recipe_title=recipe_title,
                    cookware=cookware,
                    total_results=len(videos),
                    api_quota_used=API_QUOTA_PER_SEARCH,
                    use_count=0,
                    last_used_at=now,
                    created_at=now,
                    is_active=True,
                ),
            )

        cached_videos = [to_cached_video(video, rank, now) for rank, video in enumerate(videos)]
        keywords = [QueryKeyword(keyword=word, weight=KEYWORD_WEIGHT) for word in extract_keywords(normalized)]
        await run_in_threadpool(self._repo.upsert_videos, stored.id, cached_videos)
        await run_in_threadpool(self._repo.replace_keywords, stored.id, keywords)

        logger.info("video_cache.populated hash=%s videos=%d keywords=%d", query_hash, len(cached_videos), len(keywords))
        return replace(stored, videos=cached_videos, keywords=keywords)

    async def deactivate(self, query: str) -> bool:
        cached = await run_in_threadpool(self._repo.get_by_hash, hash_query(query))
        if cached is None:
            return False
        await run_in_threadpool(self._repo.set_active, cached.id, False)
        return True

    def _schedule_use_update(self, cached: CachedQuery) -> None:
        task = asyncio.create_task(self._record_use(cached))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_use(self, cached: CachedQuery) -> None:
        try:
            await run_in_threadpool(self._repo.record_use, cached.id, cached.use_count + 1, _now_utc())
        except CacheRepositoryError as error:
            logger.warning("video_cache.use_update_failed id=%s error=%s", cached.id, error)

    async def wait_for_pending_updates(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
