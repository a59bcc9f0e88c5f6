# src/app/infra/db/base.py
"""
Abstract base class for the video recommendation cache repository.
This interface allows easy swapping between different storage backends.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.app.domain.models import CachedQuery, CachedVideo, QueryKeyword


class VideoCacheRepository(ABC):
    """
    Abstract interface for cached search queries, their videos and keywords.

    Implementations:
    - SupabaseVideoCacheRepository: Postgres tables managed through Supabase
    - InMemoryVideoCacheRepository: process-local store used without a datastore

    Every method raises CacheRepositoryError when the backend fails.
    """

    @abstractmethod
    def find_active_by_hash(self, query_hash: str) -> Optional[CachedQuery]:
        """
        Find the most recent active query with this hash.

        Args:
            query_hash: Digest of the normalized query

        Returns:
            The query with its active videos attached, or None on a miss
        """
        pass

    @abstractmethod
    def get_by_hash(self, query_hash: str) -> Optional[CachedQuery]:
        """
        Find a query by hash regardless of its active flag.

        Args:
            query_hash: Digest of the normalized query

        Returns:
            The query without videos, or None
        """
        pass

    @abstractmethod
    def insert_query(self, query: CachedQuery) -> CachedQuery:
        """
        Create a new query row.

        Args:
            query: The query to store; ``id`` is assigned by the caller

        Returns:
            The stored query
        """
        pass

    @abstractmethod
    def update_query(self, query: CachedQuery) -> CachedQuery:
        """
        Overwrite the mutable fields of an existing query row
        (total_results, api_quota_used, last_used_at, is_active, recipe_title, cookware).

        Args:
            query: The query carrying the new values

        Returns:
            The stored query
        """
        pass

    @abstractmethod
    def upsert_videos(self, query_id: str, videos: list[CachedVideo]) -> None:
        """
        Store videos for a query. A video id is unique across the store, so an
        existing row for the same video is moved to this query.

        Args:
            query_id: Owning query
            videos: Videos with their relevance scores already assigned
        """
        pass

    @abstractmethod
    def deactivate_videos(self, query_id: str) -> None:
        """
        Mark every video of a query inactive, ahead of storing a fresh result set.

        Args:
            query_id: Owning query
        """
        pass

    @abstractmethod
    def replace_keywords(self, query_id: str, keywords: list[QueryKeyword]) -> None:
        """
        Replace the keyword index of a query.

        Args:
            query_id: Owning query
            keywords: De-duplicated keywords
        """
        pass

    @abstractmethod
    def record_use(self, query_id: str, use_count: int, used_at: datetime) -> None:
        """
        Persist usage counters after a cache hit.

        Args:
            query_id: The query that was served
            use_count: New absolute use count
            used_at: Time of the hit
        """
        pass

    @abstractmethod
    def set_active(self, query_id: str, is_active: bool) -> None:
        """
        Activate or deactivate a query. Inactive queries never produce hits.

        Args:
            query_id: The query to update
            is_active: New flag value
        """
        pass
