from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from supabase import Client, PostgrestAPIError

from src.app.domain.errors import CacheRepositoryError
from src.app.domain.models import CachedQuery, CachedVideo, QueryKeyword
from src.app.infra.db.base import VideoCacheRepository

logger = logging.getLogger(__name__)

QUERIES_TABLE = "youtube_queries"
VIDEOS_TABLE = "youtube_videos"
KEYWORDS_TABLE = "youtube_query_keywords"
BACKEND_ERRORS = (PostgrestAPIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _row_to_video(row: dict[str, Any]) -> CachedVideo:
    return CachedVideo(
        video_id=str(row["video_id"]),
        title=str(row.get("title") or ""),
        url=str(row.get("url") or ""),
        embed_url=str(row.get("embed_url") or ""),
        relevance_score=float(row.get("relevance_score") or 0.0),
        description=_safe_str(row.get("description")),
        thumbnail_url=_safe_str(row.get("thumbnail_url")),
        channel_title=_safe_str(row.get("channel_title")),
        published_at=_safe_str(row.get("published_at")),
        is_active=bool(row.get("is_active", True)),
        last_verified_at=_parse_datetime(row.get("last_verified_at")),
        query_id=_safe_str(row.get("query_id")),
    )


def _row_to_query(row: dict[str, Any], videos: list[CachedVideo] | None = None) -> CachedQuery:
    return CachedQuery(
        id=str(row["id"]),
        search_query=str(row.get("search_query") or ""),
        normalized_query=str(row.get("normalized_query") or ""),
        query_hash=str(row["query_hash"]),
        recipe_title=_safe_str(row.get("recipe_title")),
        cookware=_safe_str(row.get("cookware")),
        total_results=_safe_int(row.get("total_results")),
        api_quota_used=_safe_int(row.get("api_quota_used")),
        use_count=_safe_int(row.get("use_count")),
        last_used_at=_parse_datetime(row.get("last_used_at")),
        created_at=_parse_datetime(row.get("created_at")),
        is_active=bool(row.get("is_active", True)),
        videos=videos or [],
    )


def _query_to_row(query: CachedQuery) -> dict[str, Any]:
    return {
        "id": query.id,
        "search_query": query.search_query,
        "normalized_query": query.normalized_query,
        "query_hash": query.query_hash,
        "recipe_title": query.recipe_title,
        "cookware": query.cookware,
        "total_results": query.total_results,
        "api_quota_used": query.api_quota_used,
        "use_count": query.use_count,
        "last_used_at": _isoformat(query.last_used_at),
        "created_at": _isoformat(query.created_at or _now_utc()),
        "is_active": query.is_active,
    }


def _video_to_row(query_id: str, video: CachedVideo) -> dict[str, Any]:
    return {
        "query_id": query_id,
        "video_id": video.video_id,
        "title": video.title,
        "description": video.description,
        "thumbnail_url": video.thumbnail_url,
        "channel_title": video.channel_title,
        "published_at": video.published_at,
        "url": video.url,
        "embed_url": video.embed_url,
        "relevance_score": video.relevance_score,
        "is_active": video.is_active,
        "last_verified_at": _isoformat(video.last_verified_at or _now_utc()),
    }


class SupabaseVideoCacheRepository(VideoCacheRepository):
    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseVideoCacheRepository initialized")

    def find_active_by_hash(self, query_hash: str) -> CachedQuery | None:
        try:
            result = (
                self._client.table(QUERIES_TABLE)
                .select("*")
                .eq("query_hash", query_hash)
                .eq("is_active", True)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            if not result.data:
                return None

            row = result.data[0]
            videos = (
                self._client.table(VIDEOS_TABLE)
                .select("*")
                .eq("query_id", row["id"])
                .eq("is_active", True)
                .order("relevance_score", desc=True)
                .execute()
            )
            return _row_to_query(row, [_row_to_video(video) for video in videos.data or []])

        except BACKEND_ERRORS as error:
            logger.error("Error looking up cached query %s: %s", query_hash, error)
            raise CacheRepositoryError("find_active_by_hash", str(error)) from error

    def get_by_hash(self, query_hash: str) -> CachedQuery | None:
        try:
            result = (
                self._client.table(QUERIES_TABLE)
                .select("*")
                .eq("query_hash", query_hash)
                .limit(1)
                .execute()
            )
            return _row_to_query(result.data[0]) if result.data else None

        except BACKEND_ERRORS as error:
            logger.error("Error reading cached query %s: %s", query_hash, error)
            raise CacheRepositoryError("get_by_hash", str(error)) from error

    def insert_query(self, query: CachedQuery) -> CachedQuery:
        try:
            result = self._client.table(QUERIES_TABLE).insert(_query_to_row(query)).execute()
            if not result.data:
                raise CacheRepositoryError("insert_query", "insert returned no rows")

            stored = _row_to_query(result.data[0])
            logger.info("Cached query stored: id=%s, hash=%s", stored.id, stored.query_hash)
            return stored

        except BACKEND_ERRORS as error:
            logger.error("Error storing cached query: %s", error)
            raise CacheRepositoryError("insert_query", str(error)) from error

    def update_query(self, query: CachedQuery) -> CachedQuery:
        changes = {
            "total_results": query.total_results,
            "api_quota_used": query.api_quota_used,
            "last_used_at": _isoformat(query.last_used_at),
            "is_active": query.is_active,
            "recipe_title": query.recipe_title,
            "cookware": query.cookware,
        }
        try:
            result = self._client.table(QUERIES_TABLE).update(changes).eq("id", query.id).execute()
            return _row_to_query(result.data[0]) if result.data else query

        except BACKEND_ERRORS as error:
            logger.error("Error updating cached query %s: %s", query.id, error)
            raise CacheRepositoryError("update_query", str(error)) from error

    def upsert_videos(self, query_id: str, videos: list[CachedVideo]) -> None:
        if not videos:
            return
        rows = [_video_to_row(query_id, video) for video in videos]
        try:
            self._client.table(VIDEOS_TABLE).upsert(rows, on_conflict="video_id").execute()
        except BACKEND_ERRORS as error:
            logger.error("Error storing videos for query %s: %s", query_id, error)
            raise CacheRepositoryError("upsert_videos", str(error)) from error

    def deactivate_videos(self, query_id: str) -> None:
        try:
            self._client.table(VIDEOS_TABLE).update({"is_active": False}).eq("query_id", query_id).execute()
        except BACKEND_ERRORS as error:
            logger.error("Error retiring videos for query %s: %s", query_id, error)
            raise CacheRepositoryError("deactivate_videos", str(error)) from error

    def replace_keywords(self, query_id: str, keywords: list[QueryKeyword]) -> None:
        rows = [{"query_id": query_id, "keyword": item.keyword, "weight": item.weight} for item in keywords]
        try:
            self._client.table(KEYWORDS_TABLE).delete().eq("query_id", query_id).execute()
            if rows:
                self._client.table(KEYWORDS_TABLE).insert(rows).execute()
        except BACKEND_ERRORS as error:
            logger.error("Error storing keywords for query %s: %s", query_id, error)
            raise CacheRepositoryError("replace_keywords", str(error)) from error

    def record_use(self, query_id: str, use_count: int, used_at: datetime) -> None:
        try:
            (
                self._client.table(QUERIES_TABLE)
                .update({"use_count": use_count, "last_used_at": used_at.isoformat()})
                .eq("id", query_id)
                .execute()
            )
        except BACKEND_ERRORS as error:
            raise CacheRepositoryError("record_use", str(error)) from error

    def set_active(self, query_id: str, is_active: bool) -> None:
        try:
            self._client.table(QUERIES_TABLE).update({"is_active": is_active}).eq("id", query_id).execute()
            logger.info("Cached query %s is_active=%s", query_id, is_active)
        except BACKEND_ERRORS as error:
            raise CacheRepositoryError("set_active", str(error)) from error
