from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field

from starlette.concurrency import run_in_threadpool

from src.services.assembler import assemble_recipe
from src.services.errors import (
    CompletionProviderError,
    InvalidInputError,
    ProviderMalformedResponseError,
    ProviderUnavailableError,
    RecipeNotFoundError,
    SourceBlockedError,
    UpstreamStatusError,
)
from src.services.fetcher import DocumentFetcher, FetchedDocument
from src.services.gemini_client import ImageInput
from src.services.llm_extractor import LlmRecipeExtractor
from src.services.recipe_models import CanonicalRecipe
from src.services.structured_data import extract_structured_recipe
from src.services.types import RawExtraction

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
COMPLETION_PROVIDER = "Completion provider"


@dataclass
class IngestResult:
    recipe: CanonicalRecipe
    strategy: str
    warnings: list[str] = field(default_factory=list)


def decode_image(payload: str | None) -> ImageInput:
    """Decode a base64 image, with or without a ``data:<mime>;base64,`` prefix."""
    text = (payload or "").strip()
    if not text:
        raise InvalidInputError("Image data is required")

    mime_type = DEFAULT_IMAGE_MIME_TYPE
    match = DATA_URL_PATTERN.match(text)
    if match:
        mime_type = match.group("mime").lower()
        text = text[match.end():]

    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as error:
        raise InvalidInputError("Image data is not valid base64") from error
    if not data:
        raise InvalidInputError("Image data is required")
    return ImageInput(data=data, mime_type=mime_type)


class RecipeIngestor:
    """Runs the extraction strategies in order and assembles the winner."""

    def __init__(self, fetcher: DocumentFetcher, llm_extractor: LlmRecipeExtractor) -> None:
        self._fetcher = fetcher
        self._llm = llm_extractor

    def _require_model(self) -> None:
        if not self._llm.configured:
            raise ProviderUnavailableError(COMPLETION_PROVIDER)

    def _assemble(self, raw: RawExtraction) -> IngestResult:
        assembled = assemble_recipe(raw)
        return IngestResult(recipe=assembled.recipe, strategy=raw.source, warnings=assembled.warnings)

    async def _extract_with_model(self, document: FetchedDocument) -> RawExtraction:
        self._require_model()
        try:
            return await self._llm.extract_from_html(document.text, document.url)
        except (ProviderMalformedResponseError, CompletionProviderError) as error:
            logger.warning("ingest.llm_failed url=%s error=%s", document.url, error)
            raise RecipeNotFoundError("No recipe could be found on this page") from error

    async def ingest_url(self, url: str) -> IngestResult:
        document = await self._fetcher.fetch(url)
        if document.status_code == 403:
            raise SourceBlockedError(url)
        if not document.ok:
            raise UpstreamStatusError(url, document.status_code)

        raw = await run_in_threadpool(extract_structured_recipe, document.text, document.url)
        if raw is None:
            logger.info("ingest.fallback_llm url=%s", url)
            raw = await self._extract_with_model(document)
        return self._assemble(raw)

    async def ingest_text(self, text: str | None) -> IngestResult:
        if not text or not text.strip():
            raise InvalidInputError("Recipe text is required")
        self._require_model()
        try:
            raw = await self._llm.extract_from_text(text)
        except (ProviderMalformedResponseError, CompletionProviderError) as error:
            logger.warning("ingest.llm_failed source=text error=%s", error)
            raise RecipeNotFoundError("No recipe could be found in the text") from error
        return self._assemble(raw)

    async def ingest_image(self, image: str | None) -> IngestResult:
        decoded = decode_image(image)
        self._require_model()
        try:
            raw = await self._llm.extract_from_image(decoded)
        except (ProviderMalformedResponseError, CompletionProviderError) as error:
            logger.warning("ingest.llm_failed source=image error=%s", error)
            raise RecipeNotFoundError("No recipe could be found in the image") from error
        return self._assemble(raw)
