from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from src.services.errors import ProviderMalformedResponseError
from src.services.gemini_client import PROMPT_DIR, CompletionProvider, ImageInput
from src.services.normalizers import clean_text
from src.services.types import RawExtraction, RawIngredient, RawInstruction

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = PROMPT_DIR / "RECIPE_EXTRACTION_PROMPT.txt"
NON_CONTENT_SELECTORS = "script, style, noscript, nav, header, footer, aside, .ad, .advertisement, .social-share"
MAIN_CONTENT_SELECTORS = ("main", "article", ".content", ".recipe", ".post-content")
DEFAULT_CONTENT_CHAR_LIMIT = 8000
EXTRACTION_TEMPERATURE = 0.2
MAX_TAGS = 3
WHITESPACE_PATTERN = re.compile(r"\s+")


class ExtractedIngredient(BaseModel):
    name: str
    amount: float
    unit: str


class ExtractedInstruction(BaseModel):
    step: int
    description: str


class ExtractedRecipe(BaseModel):
    title: str
    description: str
    ingredients: list[ExtractedIngredient] = Field(min_length=1)
    instructions: list[ExtractedInstruction] = Field(min_length=1)
    cookingTime: Optional[str] = None
    servings: Optional[str] = None
    tags: Optional[list[str]] = Field(default=None, max_length=MAX_TAGS)
    cookware: Optional[str] = None


@dataclass(frozen=True)
class PageDigest:
    title_hint: str
    content: str


def _collapse(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def prepare_page(page_html: str, char_limit: int = DEFAULT_CONTENT_CHAR_LIMIT) -> PageDigest:
    soup = BeautifulSoup(page_html, "html.parser")
    # the recipe h1 often sits inside <header>
    heading = soup.find("h1") or soup.find("title")
    title_hint = _collapse(heading.get_text(" ")) if heading else ""

    for tag in soup.select(NON_CONTENT_SELECTORS):
        tag.decompose()

    content = ""
    for selector in MAIN_CONTENT_SELECTORS:
        region = soup.select_one(selector)
        if region is not None:
            content = _collapse(region.get_text(" "))
            if content:
                break
    if not content:
        content = _collapse((soup.body or soup).get_text(" "))

    return PageDigest(title_hint=title_hint, content=content[:char_limit])


def _to_raw_extraction(result: ExtractedRecipe, source: str) -> RawExtraction:
    title = clean_text(result.title)
    if not title:
        raise ProviderMalformedResponseError("AI did not extract a valid recipe")

    return RawExtraction(
        title=title,
        description=result.description.strip(),
        ingredients=[
            RawIngredient(name=item.name.strip(), amount=item.amount, unit=item.unit.strip())
            for item in result.ingredients
            if item.name.strip()
        ],
        instructions=[
            RawInstruction(step=item.step, description=item.description.strip())
            for item in result.instructions
        ],
        cooking_time=clean_text(result.cookingTime),
        servings=clean_text(result.servings),
        tags=[tag.strip() for tag in (result.tags or []) if tag.strip()][:MAX_TAGS],
        cookware=clean_text(result.cookware),
        source=source,
    )


class LlmRecipeExtractor:
    def __init__(
        self,
        provider: CompletionProvider,
        content_char_limit: int = DEFAULT_CONTENT_CHAR_LIMIT,
    ) -> None:
        self._provider = provider
        self.content_char_limit = content_char_limit

    @property
    def configured(self) -> bool:
        return self._provider.configured

    async def _extract(self, prompt: str, source: str, image: ImageInput | None = None) -> RawExtraction:
        result = await self._provider.generate_structured(
            prompt,
            ExtractedRecipe,
            EXTRACTION_PROMPT,
            operation=f"extract_{source.replace('-', '_')}",
            image=image,
            temperature=EXTRACTION_TEMPERATURE,
        )
        extraction = _to_raw_extraction(result, source)
        logger.info(
            "llm.extracted source=%s title=%s ingredients=%d instructions=%d",
            source,
            extraction.title,
            len(extraction.ingredients),
            len(extraction.instructions),
        )
        return extraction

    async def extract_from_html(self, page_html: str, url: str) -> RawExtraction:
        digest = prepare_page(page_html, self.content_char_limit)
        prompt = (
            "Extract the recipe from this web page.\n\n"
            f"Page URL: {url}\n"
            f"Page title: {digest.title_hint}\n\n"
            f"Page content:\n{digest.content}"
        )
        return await self._extract(prompt, "llm-html")

    async def extract_from_text(self, text: str) -> RawExtraction:
        prompt = f"Extract the recipe from the following text.\n\n{text.strip()[: self.content_char_limit]}"
        return await self._extract(prompt, "llm-text")

    async def extract_from_image(self, image: ImageInput) -> RawExtraction:
        prompt = (
            "Extract the recipe shown in this image. It may be a cookbook page, a recipe card "
            "or a handwritten note."
        )
        return await self._extract(prompt, "llm-image", image=image)
