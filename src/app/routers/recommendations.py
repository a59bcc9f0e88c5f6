# src/app/routers/recommendations.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends

from src.app.deps import get_recommendation_service
from src.app.domain.models import CachedVideo, RecipeContext
from src.app.schemas.recommendations import (
    RecommendationRequest,
    RecommendationResponse,
    VideoItem,
)
from src.services.recommendations import RecommendationService, build_search_url

log = logging.getLogger("videos")
router = APIRouter(prefix="/recipes", tags=["videos"])


def _to_context(body: RecommendationRequest) -> RecipeContext:
    return RecipeContext(
        title=body.title.strip(),
        description=body.description,
        ingredients=body.ingredient_names(),
        cookware=body.cookware,
        cuisine=body.cuisine,
        cooking_time=body.cookingTime,
    )


def _to_item(video: CachedVideo) -> VideoItem:
    return VideoItem(
        videoId=video.video_id,
        title=video.title,
        description=video.description,
        thumbnail=video.thumbnail_url,
        channelTitle=video.channel_title,
        publishedAt=video.published_at,
        url=video.url,
        embedUrl=video.embed_url,
        relevanceScore=video.relevance_score,
    )


@router.post("/videos", response_model=RecommendationResponse)
async def recommend_videos(
    body: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationResponse:
    t0 = time.time()
    context = _to_context(body)
    log.info("videos.start title=%s cookware=%s", context.title, context.cookware)
    try:
        result = await service.recommend(context)
    except Exception:
        # an empty list with the fallback URL is the degraded response
        log.exception("videos.fail title=%s dt=%.2fs", context.title, time.time() - t0)
        return RecommendationResponse(searchUrl=build_search_url(context), videos=[])

    log.info(
        "videos.ok title=%s strategy=%s videos=%d dt=%.2fs",
        context.title,
        result.strategy,
        len(result.videos),
        time.time() - t0,
    )
    return RecommendationResponse(
        searchUrl=result.search_url,
        videos=[_to_item(video) for video in result.videos],
    )
