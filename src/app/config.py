from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:8081", "http://localhost:19006"],
    )

    # Video cache datastore; unset keeps the cache in process memory
    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[SecretStr] = None

    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    YOUTUBE_API_KEY: Optional[SecretStr] = None

    FETCH_TIMEOUT_SECONDS: float = 30.0
    FETCH_MAX_REDIRECTS: int = 5
    LLM_CONTENT_CHAR_LIMIT: int = 8000
    VIDEO_SEARCH_TIMEOUT_SECONDS: float = 10.0
    VIDEO_QUERY_TIMEOUT_SECONDS: float = 10.0
    VIDEO_RESULT_LIMIT: int = 3
    VIDEO_QUOTA_COOLDOWN_SECONDS: float = 3600.0

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


settings = Settings()
