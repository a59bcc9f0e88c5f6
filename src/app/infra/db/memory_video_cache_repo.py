from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

from src.app.domain.errors import CacheRepositoryError
from src.app.domain.models import CachedQuery, CachedVideo, QueryKeyword
from src.app.infra.db.base import VideoCacheRepository

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryVideoCacheRepository(VideoCacheRepository):
    """Process-local cache store. Contents are lost on restart.

    Calls arrive from the threadpool, so every access holds a lock. Returned
    records are copies; mutating them never changes the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queries: dict[str, CachedQuery] = {}
        self._videos: dict[str, CachedVideo] = {}
        self._keywords: dict[str, list[QueryKeyword]] = {}
        logger.info("InMemoryVideoCacheRepository initialized")

    def _videos_for(self, query_id: str) -> list[CachedVideo]:
        videos = [
            replace(video)
            for video in self._videos.values()
            if video.query_id == query_id and video.is_active
        ]
        videos.sort(key=lambda video: video.relevance_score, reverse=True)
        return videos

    def _copy(self, query: CachedQuery, with_videos: bool = False) -> CachedQuery:
        return replace(
            query,
            videos=self._videos_for(query.id) if with_videos else [],
            keywords=list(self._keywords.get(query.id, [])),
        )

    def find_active_by_hash(self, query_hash: str) -> CachedQuery | None:
        with self._lock:
            matches = [
                query
                for query in self._queries.values()
                if query.query_hash == query_hash and query.is_active
            ]
            if not matches:
                return None
            latest = max(matches, key=lambda query: query.created_at or datetime.min.replace(tzinfo=timezone.utc))
            return self._copy(latest, with_videos=True)

    def get_by_hash(self, query_hash: str) -> CachedQuery | None:
        with self._lock:
            for query in self._queries.values():
                if query.query_hash == query_hash:
                    return self._copy(query)
            return None

    def insert_query(self, query: CachedQuery) -> CachedQuery:
        with self._lock:
            if any(existing.query_hash == query.query_hash for existing in self._queries.values()):
                raise CacheRepositoryError("insert_query", f"duplicate query_hash {query.query_hash}")
            stored = replace(query, created_at=query.created_at or _now_utc(), videos=[], keywords=[])
            self._queries[stored.id] = stored
            return self._copy(stored)

    def update_query(self, query: CachedQuery) -> CachedQuery:
        with self._lock:
            current = self._queries[query.id]
            updated = replace(
                current,
                total_results=query.total_results,
                api_quota_used=query.api_quota_used,
                last_used_at=query.last_used_at,
                is_active=query.is_active,
                recipe_title=query.recipe_title,
                cookware=query.cookware,
            )
            self._queries[query.id] = updated
            return self._copy(updated)

    def upsert_videos(self, query_id: str, videos: list[CachedVideo]) -> None:
        with self._lock:
            for video in videos:
                self._videos[video.video_id] = replace(
                    video,
                    query_id=query_id,
                    last_verified_at=video.last_verified_at or _now_utc(),
                )

    def deactivate_videos(self, query_id: str) -> None:
        with self._lock:
            for video_id, video in self._videos.items():
                if video.query_id == query_id:
                    self._videos[video_id] = replace(video, is_active=False)

    def replace_keywords(self, query_id: str, keywords: list[QueryKeyword]) -> None:
        with self._lock:
            self._keywords[query_id] = [replace(keyword) for keyword in keywords]

    def record_use(self, query_id: str, use_count: int, used_at: datetime) -> None:
        with self._lock:
            current = self._queries.get(query_id)
            if current is not None:
                self._queries[query_id] = replace(current, use_count=use_count, last_used_at=used_at)

    def set_active(self, query_id: str, is_active: bool) -> None:
        with self._lock:
            current = self._queries.get(query_id)
            if current is not None:
                self._queries[query_id] = replace(current, is_active=is_active)
