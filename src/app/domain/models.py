# src/app/domain/models.py
"""
Domain models for the video recommendation cache.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class CacheState(str, Enum):
    """Lifecycle of a cached query."""
    MISS = "MISS"
    POPULATED = "POPULATED"
    DEACTIVATED = "DEACTIVATED"


@dataclass
class RecipeContext:
    """Descriptive fields of an assembled recipe used to pick videos."""
    title: str
    description: Optional[str] = None
    ingredients: list[str] = field(default_factory=list)
    cookware: Optional[str] = None
    cuisine: Optional[str] = None
    cooking_time: Optional[str] = None


@dataclass
class VideoSearchResult:
    """A single hit returned by the external video search provider."""
    video_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    url: Optional[str] = None
    embed_url: Optional[str] = None

    @property
    def watch_url(self) -> str:
        return self.url or f"https://www.youtube.com/watch?v={self.video_id}"

    @property
    def player_url(self) -> str:
        return self.embed_url or f"https://www.youtube.com/embed/{self.video_id}"


@dataclass
class CachedVideo:
    """A stored video row. Many-to-one with CachedQuery."""
    video_id: str
    title: str
    url: str
    embed_url: str
    relevance_score: float
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    channel_title: Optional[str] = None
    published_at: Optional[str] = None
    is_active: bool = True
    last_verified_at: Optional[datetime] = None
    query_id: Optional[str] = None


@dataclass
class QueryKeyword:
    keyword: str
    weight: float = 1.0


@dataclass
class CachedQuery:
    """
    A stored search query keyed by the hash of its normalized form.
    Owns its videos and keywords.
    """
    id: str
    search_query: str
    normalized_query: str
    query_hash: str
    recipe_title: Optional[str] = None
    cookware: Optional[str] = None
    total_results: int = 0
    api_quota_used: int = 0
    use_count: int = 0
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_active: bool = True
    videos: list[CachedVideo] = field(default_factory=list)
    keywords: list[QueryKeyword] = field(default_factory=list)

    @property
    def state(self) -> CacheState:
        return CacheState.POPULATED if self.is_active else CacheState.DEACTIVATED

    @property
    def active_videos(self) -> list[CachedVideo]:
        """Active videos, highest relevance first."""
        return sorted(
            (video for video in self.videos if video.is_active),
            key=lambda video: video.relevance_score,
            reverse=True,
        )


@dataclass
class CacheHit:
    query: CachedQuery
    videos: list[CachedVideo]


@dataclass
class GeneratedQuery:
    """A search phrase proposed by the completion provider."""
    search_query: str
    description: Optional[str] = None
