from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TypeVar

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError, ClientError
from pydantic import BaseModel, ValidationError

from src.services.errors import (
    CompletionProviderError,
    NetworkTimeoutError,
    ProviderMalformedResponseError,
    ProviderUnavailableError,
    RateLimitedError,
    ServiceError,
)
from src.services.token_usage import log_completion_usage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
PromptPayload = str | dict[str, str | int | float | list | dict | None]

PROMPT_DIR = Path(__file__).resolve().parents[2] / "data" / "Prompt"
DEFAULT_MODEL_NAME = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 60.0


class GeminiConfigurationError(ServiceError):
    pass


class GeminiPromptError(ServiceError):
    pass


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str = "image/jpeg"


def _is_rate_limited_error(exc: Exception) -> bool:
    status_code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    return status_code == 429 or "RESOURCE_EXHAUSTED" in str(exc)


def load_prompt(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8")
    except FileNotFoundError as not_found_error:
        raise GeminiPromptError(f"Prompt file not found: {file_path}") from not_found_error
    except OSError as io_error:
        raise GeminiPromptError(f"Unable to read prompt file: {io_error}") from io_error


class CompletionProvider(ABC):
    """Structured-output completion provider (text and vision)."""

    configured: bool = True
    model_name: Optional[str] = None

    @abstractmethod
    async def generate_structured(
        self,
        user_prompt: PromptPayload,
        schema: type[ModelT],
        system_prompt_path: Path,
        *,
        operation: str,
        image: ImageInput | None = None,
        temperature: float | None = None,
    ) -> ModelT:
        """
        Run one completion whose response must conform to ``schema``.

        Args:
            user_prompt: Text (or a dict serialized as JSON) sent as the user turn
            schema: Pydantic model describing the closed response shape
            system_prompt_path: File holding the system instruction
            operation: Label used in usage logging
            image: Optional image sent alongside the prompt
            temperature: Sampling temperature override

        Returns:
            The parsed response

        Raises:
            ProviderUnavailableError: No provider is configured
            ProviderMalformedResponseError: The response did not match ``schema``
            RateLimitedError: The provider rejected the call for rate limits
            NetworkTimeoutError: The call exceeded its time budget
        """
        pass


class DisabledCompletionProvider(CompletionProvider):
    configured = False

    async def generate_structured(
        self,
        user_prompt: PromptPayload,
        schema: type[ModelT],
        system_prompt_path: Path,
        *,
        operation: str,
        image: ImageInput | None = None,
        temperature: float | None = None,
    ) -> ModelT:
        raise ProviderUnavailableError("Completion provider")


class GeminiClient(CompletionProvider):
    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL_NAME,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: genai.Client | None = None,
    ) -> None:
        if not api_key and client is None:
            raise GeminiConfigurationError("Missing Google API key.")
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def _serialize_prompt(self, user_prompt: PromptPayload) -> str:
        if isinstance(user_prompt, str):
            return user_prompt
        try:
            return json.dumps(user_prompt, indent=2, ensure_ascii=False)
        except TypeError:
            return str(user_prompt)

    def _parse_response(self, response: types.GenerateContentResponse, schema: type[ModelT]) -> ModelT:
        parsed = getattr(response, "parsed", None)
        if isinstance(parsed, schema):
            return parsed

        text = response.text
        if not text:
            raise ProviderMalformedResponseError("Model response did not include text content.")
        try:
            return schema.model_validate_json(text)
        except ValidationError as error:
            raise ProviderMalformedResponseError(f"Model response did not match {schema.__name__}") from error

    async def generate_structured(
        self,
        user_prompt: PromptPayload,
        schema: type[ModelT],
        system_prompt_path: Path,
        *,
        operation: str,
        image: ImageInput | None = None,
        temperature: float | None = None,
    ) -> ModelT:
        contents: list[str | types.Part] = [self._serialize_prompt(user_prompt)]
        if image is not None:
            contents.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))

        config = types.GenerateContentConfig(
            system_instruction=load_prompt(system_prompt_path),
            response_mime_type="application/json",
            response_schema=schema,
            temperature=temperature,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(f"gemini/{self.model_name}", self.timeout_seconds) from error
        except ClientError as error:
            if _is_rate_limited_error(error):
                raise RateLimitedError("Gemini rate limit reached. Try again in a few moments.") from error
            raise CompletionProviderError(f"Gemini rejected the request: {error}") from error
        except APIError as error:
            raise CompletionProviderError(f"Gemini request failed: {error}") from error

        log_completion_usage(
            operation,
            getattr(response, "model_version", None) or self.model_name,
            getattr(response, "usage_metadata", None),
            has_image=image is not None,
        )
        return self._parse_response(response, schema)
