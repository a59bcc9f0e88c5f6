from __future__ import annotations

import asyncio

import pytest

from src.services.errors import ProviderMalformedResponseError, ProviderUnavailableError
from src.services.gemini_client import DisabledCompletionProvider, ImageInput
from src.services.llm_extractor import (
    EXTRACTION_TEMPERATURE,
    ExtractedRecipe,
    LlmRecipeExtractor,
    prepare_page,
)
from stubs import CompletionProviderStub

MODEL_RECIPE = {
    "title": "Banana Bread",
    "description": "Moist loaf.",
    "ingredients": [
        {"name": "bananas", "amount": 3, "unit": ""},
        {"name": "flour", "amount": 1.5, "unit": "cups"},
    ],
    "instructions": [
        {"step": 1, "description": "Mash the bananas."},
        {"step": 2, "description": "Bake for 60 minutes."},
    ],
    "cookingTime": "1 hour",
    "servings": "8",
    "tags": ["baking", "breakfast", "banana"],
    "cookware": "oven",
}

PAGE = """
<html>
  <head><title>Banana Bread | My Blog</title><script>var ads = 1;</script></head>
  <body>
    <header>Site header</header>
    <nav>Home | Recipes</nav>
    <main>
      <h1>Banana Bread</h1>
      <p>Mash 3 bananas.</p>
      <div class="ad">Buy now!</div>
    </main>
    <footer>Footer links</footer>
  </body>
</html>
"""


class TestPreparePage:
    def test_strips_non_content_and_keeps_main(self) -> None:
        digest = prepare_page(PAGE)

        assert digest.title_hint == "Banana Bread"
        assert "Mash 3 bananas." in digest.content
        assert "Buy now" not in digest.content
        assert "Site header" not in digest.content
        assert "ads" not in digest.content

    def test_truncates_content(self) -> None:
        page = f"<html><body><article>{'word ' * 5000}</article></body></html>"
        assert len(prepare_page(page, char_limit=8000).content) == 8000

    def test_heading_inside_header_is_the_hint(self) -> None:
        page = (
            "<html><head><title>Site | Best Ramen</title></head><body>"
            "<header><h1>Best Ramen</h1></header>"
            "<article>Simmer the broth.</article></body></html>"
        )
        digest = prepare_page(page)

        assert digest.title_hint == "Best Ramen"
        assert digest.content == "Simmer the broth."

    def test_title_tag_hint_and_body_fallback(self) -> None:
        digest = prepare_page("<html><head><title>Soup</title></head><body><p>Boil.</p></body></html>")
        assert digest.title_hint == "Soup"
        assert digest.content == "Boil."


class TestLlmRecipeExtractor:
    def test_extracts_from_html(self) -> None:
        provider = CompletionProviderStub({"extract_llm_html": MODEL_RECIPE})
        extractor = LlmRecipeExtractor(provider)

        extraction = asyncio.run(extractor.extract_from_html(PAGE, "https://blog.example.com/banana"))

        assert extraction.source == "llm-html"
        assert extraction.title == "Banana Bread"
        assert [(i.name, i.amount, i.unit) for i in extraction.ingredients] == [
            ("bananas", 3.0, ""),
            ("flour", 1.5, "cups"),
        ]
        assert extraction.cooking_time == "1 hour"
        assert extraction.tags == ["baking", "breakfast", "banana"]
        call = provider.calls[0]
        assert call["schema"] is ExtractedRecipe
        assert call["temperature"] == EXTRACTION_TEMPERATURE
        assert "https://blog.example.com/banana" in call["prompt"]
        assert "Mash 3 bananas." in call["prompt"]

    def test_blank_title_is_malformed(self) -> None:
        provider = CompletionProviderStub({"extract_llm_text": {**MODEL_RECIPE, "title": "  "}})

        with pytest.raises(ProviderMalformedResponseError, match="did not extract a valid recipe"):
            asyncio.run(LlmRecipeExtractor(provider).extract_from_text("some text"))

    def test_image_is_forwarded(self) -> None:
        provider = CompletionProviderStub({"extract_llm_image": MODEL_RECIPE})
        image = ImageInput(data=b"\x89PNG", mime_type="image/png")

        extraction = asyncio.run(LlmRecipeExtractor(provider).extract_from_image(image))

        assert extraction.source == "llm-image"
        assert provider.calls[0]["image"] is image

    def test_disabled_provider(self) -> None:
        extractor = LlmRecipeExtractor(DisabledCompletionProvider())

        assert extractor.configured is False
        with pytest.raises(ProviderUnavailableError):
            asyncio.run(extractor.extract_from_text("some text"))
