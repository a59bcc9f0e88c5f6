from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest
from google.genai.errors import ClientError

from src.services.errors import (
    CompletionProviderError,
    ProviderMalformedResponseError,
    RateLimitedError,
)
from src.services.gemini_client import (
    PROMPT_DIR,
    GeminiClient,
    GeminiConfigurationError,
    GeminiPromptError,
    ImageInput,
    load_prompt,
)
from src.services.recommendations import SuggestedQueries

PROMPT = PROMPT_DIR / "VIDEO_QUERY_PROMPT.txt"


class ModelsStub:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(models: ModelsStub) -> GeminiClient:
    fake = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiClient(api_key="", model_name="gemini-2.5-flash", client=fake)


def _response(text: str | None, parsed=None):
    usage = SimpleNamespace(prompt_token_count=40, candidates_token_count=12, total_token_count=52)
    return SimpleNamespace(text=text, parsed=parsed, usage_metadata=usage, model_version="gemini-2.5-flash")


class TestPrompts:
    def test_bundled_prompts_load(self) -> None:
        assert load_prompt(PROMPT).strip()
        assert load_prompt(PROMPT_DIR / "RECIPE_EXTRACTION_PROMPT.txt").strip()

    def test_missing_prompt(self, tmp_path: Path) -> None:
        with pytest.raises(GeminiPromptError):
            load_prompt(tmp_path / "missing.txt")


class TestGeminiClient:
    def test_requires_key_without_client(self) -> None:
        with pytest.raises(GeminiConfigurationError):
            GeminiClient(api_key="")

    def test_parses_json_text(self) -> None:
        models = ModelsStub(_response('{"videos": [{"searchQuery": "pad thai wok"}]}'))

        result = asyncio.run(
            _client(models).generate_structured({"title": "Pad Thai"}, SuggestedQueries, PROMPT, operation="video_queries")
        )

        assert result.videos[0].searchQuery == "pad thai wok"
        call = models.calls[0]
        assert call["model"] == "gemini-2.5-flash"
        assert '"title": "Pad Thai"' in call["contents"][0]
        assert call["config"].response_mime_type == "application/json"

    def test_prefers_parsed_model(self) -> None:
        parsed = SuggestedQueries.model_validate({"videos": [{"searchQuery": "ramen broth"}]})

        result = asyncio.run(
            _client(ModelsStub(_response(None, parsed))).generate_structured(
                "text", SuggestedQueries, PROMPT, operation="video_queries"
            )
        )

        assert result is parsed

    def test_image_is_attached(self) -> None:
        models = ModelsStub(_response('{"videos": [{"searchQuery": "x"}]}'))
        image = ImageInput(data=b"\x89PNG", mime_type="image/png")

        asyncio.run(
            _client(models).generate_structured("text", SuggestedQueries, PROMPT, operation="op", image=image)
        )

        assert len(models.calls[0]["contents"]) == 2

    @pytest.mark.parametrize("text", [None, "", '{"videos": []}', "not json"])
    def test_malformed_response(self, text: str | None) -> None:
        with pytest.raises(ProviderMalformedResponseError):
            asyncio.run(
                _client(ModelsStub(_response(text))).generate_structured(
                    "text", SuggestedQueries, PROMPT, operation="op"
                )
            )

    def test_rate_limited(self) -> None:
        error = ClientError(429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}})

        with pytest.raises(RateLimitedError):
            asyncio.run(_client(ModelsStub(error=error)).generate_structured("t", SuggestedQueries, PROMPT, operation="op"))

    def test_other_client_error(self) -> None:
        error = ClientError(400, {"error": {"code": 400, "message": "bad request", "status": "INVALID_ARGUMENT"}})

        with pytest.raises(CompletionProviderError):
            asyncio.run(_client(ModelsStub(error=error)).generate_structured("t", SuggestedQueries, PROMPT, operation="op"))
