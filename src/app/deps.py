# src/app/deps.py (singletons built from settings, exposed as dependencies)

from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client

from src.app.config import settings
from src.app.infra.db.base import VideoCacheRepository
from src.app.infra.db.memory_video_cache_repo import InMemoryVideoCacheRepository
from src.app.infra.db.supabase_video_cache_repo import SupabaseVideoCacheRepository
from src.services.fetcher import DocumentFetcher
from src.services.gemini_client import CompletionProvider, DisabledCompletionProvider, GeminiClient
from src.services.ingest import RecipeIngestor
from src.services.llm_extractor import LlmRecipeExtractor
from src.services.recommendations import RecommendationService
from src.services.video_cache import VideoCache
from src.services.video_search import DisabledVideoSearch, VideoSearchProvider, YouTubeSearchClient

_client: Client | None = None


def get_supabase() -> Client | None:
    global _client
    if _client is None and settings.supabase_configured:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY.get_secret_value())
    return _client


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider:
    if settings.GEMINI_API_KEY is None:
        return DisabledCompletionProvider()
    return GeminiClient(
        api_key=settings.GEMINI_API_KEY.get_secret_value(),
        model_name=settings.GEMINI_MODEL,
        timeout_seconds=settings.GEMINI_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_video_search() -> VideoSearchProvider:
    if settings.YOUTUBE_API_KEY is None:
        return DisabledVideoSearch()
    return YouTubeSearchClient(
        api_key=settings.YOUTUBE_API_KEY.get_secret_value(),
        timeout_seconds=settings.VIDEO_SEARCH_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_video_cache_repository() -> VideoCacheRepository:
    client = get_supabase()
    if client is None:
        return InMemoryVideoCacheRepository()
    return SupabaseVideoCacheRepository(client)


@lru_cache(maxsize=1)
def get_document_fetcher() -> DocumentFetcher:
    return DocumentFetcher(
        timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
        max_redirects=settings.FETCH_MAX_REDIRECTS,
    )


@lru_cache(maxsize=1)
def get_recipe_ingestor() -> RecipeIngestor:
    extractor = LlmRecipeExtractor(
        get_completion_provider(),
        content_char_limit=settings.LLM_CONTENT_CHAR_LIMIT,
    )
    return RecipeIngestor(get_document_fetcher(), extractor)


@lru_cache(maxsize=1)
def get_recommendation_service() -> RecommendationService:
    return RecommendationService(
        cache=VideoCache(get_video_cache_repository()),
        video_search=get_video_search(),
        completion_provider=get_completion_provider(),
        result_limit=settings.VIDEO_RESULT_LIMIT,
        query_timeout_seconds=settings.VIDEO_QUERY_TIMEOUT_SECONDS,
        quota_cooldown_seconds=settings.VIDEO_QUOTA_COOLDOWN_SECONDS,
    )
