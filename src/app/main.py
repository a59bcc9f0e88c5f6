# src/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import settings
from src.app.deps import get_completion_provider, get_document_fetcher, get_video_search
from src.app.routers.ingest import router as ingest_router
from src.app.routers.recommendations import router as recommendations_router

# Plain stdout logging for local runs and containers
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

app = FastAPI(title="Recipe Import API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router)
app.include_router(recommendations_router)


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_document_fetcher().aclose()
    await get_video_search().aclose()


@app.get("/health")
def health():
    return {
        "ok": True,
        "env": settings.APP_ENV,
        "completionProvider": get_completion_provider().configured,
        "videoSearch": get_video_search().configured,
        "videoCacheStore": "supabase" if settings.supabase_configured else "memory",
    }
