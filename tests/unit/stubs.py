from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel

from src.app.domain.models import VideoSearchResult
from src.services.gemini_client import CompletionProvider, ImageInput
from src.services.video_search import VideoSearchProvider


class CompletionProviderStub(CompletionProvider):
    model_name = "gemini-2.5-flash"

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = responses or {}
        self.calls: list[dict[str, Any]] = []

    async def generate_structured(
        self,
        user_prompt: Any,
        schema: type[BaseModel],
        system_prompt_path: Path,
        *,
        operation: str,
        image: ImageInput | None = None,
        temperature: float | None = None,
    ) -> Any:
        self.calls.append(
            {
                "prompt": user_prompt,
                "schema": schema,
                "operation": operation,
                "image": image,
                "temperature": temperature,
            }
        )
        response = self.responses.get(operation)
        if isinstance(response, BaseException):
            raise response
        return schema.model_validate(response)


class VideoSearchStub(VideoSearchProvider):
    def __init__(self, results: dict[str, Any] | None = None) -> None:
        self.results: dict[str, Any] = results or {}
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, max_results: int = 1) -> list[VideoSearchResult]:
        self.calls.append((query, max_results))
        result = self.results.get(query, [])
        if isinstance(result, BaseException):
            raise result
        return list(result)[:max_results]


def video(video_id: str, title: str | None = None) -> VideoSearchResult:
    return VideoSearchResult(
        video_id=video_id,
        title=title or f"Video {video_id}",
        description=f"About {video_id}",
        thumbnail_url=f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
        channel_title="Test Kitchen",
        published_at="2024-01-15T10:00:00Z",
    )
