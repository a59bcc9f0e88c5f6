from __future__ import annotations

import json

import pytest

from src.services.structured_data import extract_structured_recipe, find_recipe_node

BASE_URL = "https://example.com/recipes/pancakes"


def _page(*blocks: object, body: str = "") -> str:
    scripts = "".join(
        f'<script type="application/ld+json">{block if isinstance(block, str) else json.dumps(block)}</script>'
        for block in blocks
    )
    return f"<html><head>{scripts}</head><body>{body}</body></html>"


RECIPE_NODE = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "Fluffy Pancakes",
    "description": "Weekend pancakes.",
    "image": ["/images/pancakes.jpg"],
    "recipeYield": 88,
    "totalTime": "PT30M",
    "keywords": "breakfast, pancakes",
    "recipeIngredient": ["2 cups flour", "salt"],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Whisk everything together."},
        {"@type": "HowToStep", "text": "Cook on a hot griddle."},
    ],
}


class TestFindRecipeNode:
    def test_bare_object(self) -> None:
        assert find_recipe_node(RECIPE_NODE) is RECIPE_NODE

    def test_array(self) -> None:
        assert find_recipe_node([{"@type": "WebSite"}, RECIPE_NODE]) is RECIPE_NODE

    def test_graph(self) -> None:
        assert find_recipe_node({"@graph": [{"@type": "Organization"}, RECIPE_NODE]}) is RECIPE_NODE

    def test_type_list(self) -> None:
        node = {"@type": ["Recipe", "NewsArticle"], "name": "x"}
        assert find_recipe_node(node) is node

    def test_no_recipe(self) -> None:
        assert find_recipe_node({"@type": "Article"}) is None


class TestLinkedData:
    def test_end_to_end_recipe(self) -> None:
        extraction = extract_structured_recipe(_page(RECIPE_NODE), BASE_URL)

        assert extraction is not None
        assert extraction.source == "json-ld"
        assert extraction.title == "Fluffy Pancakes"
        assert extraction.cooking_time == "30 minutes"
        assert extraction.servings == "88"
        assert extraction.image_url == "https://example.com/images/pancakes.jpg"
        assert extraction.tags == ["breakfast", "pancakes"]
        assert [(i.amount, i.unit, i.name) for i in extraction.ingredients] == [
            ("2", "cups", "flour"),
            ("", "", "salt"),
        ]
        assert [(s.step, s.description) for s in extraction.instructions] == [
            (1, "Whisk everything together."),
            (2, "Cook on a hot griddle."),
        ]

    def test_skips_broken_blocks(self) -> None:
        extraction = extract_structured_recipe(_page("{not json", {"@graph": [RECIPE_NODE]}), BASE_URL)
        assert extraction is not None
        assert extraction.title == "Fluffy Pancakes"

    def test_untitled_node_is_not_usable(self) -> None:
        untitled = {**RECIPE_NODE, "name": "  "}
        assert extract_structured_recipe(_page(untitled), BASE_URL) is None

    def test_headline_and_about_fallbacks(self) -> None:
        node = {"@type": "Recipe", "headline": "Crepes &amp; Jam", "about": "Thin pancakes."}
        extraction = extract_structured_recipe(_page(node), BASE_URL)
        assert extraction is not None
        assert extraction.title == "Crepes & Jam"
        assert extraction.description == "Thin pancakes."
        assert extraction.ingredients == []


class TestMicrodata:
    def test_title_and_description_only(self) -> None:
        body = (
            '<div itemscope itemtype="https://schema.org/Recipe">'
            '<h2 itemprop="name">Grandma Soup</h2>'
            '<p itemprop="description">Warm and simple.</p>'
            '<li itemprop="recipeIngredient">1 onion</li>'
            "</div>"
        )
        extraction = extract_structured_recipe(_page(body=body), BASE_URL)

        assert extraction is not None
        assert extraction.source == "microdata"
        assert extraction.title == "Grandma Soup"
        assert extraction.description == "Warm and simple."
        assert extraction.ingredients == []
        assert extraction.instructions == []

    def test_nested_item_properties_are_ignored(self) -> None:
        body = (
            '<div itemscope itemtype="https://schema.org/Recipe">'
            '<div itemprop="author" itemscope itemtype="https://schema.org/Person">'
            '<span itemprop="name">Jane Cook</span>'
            '<span itemprop="description">Food writer.</span>'
            "</div>"
            '<h2 itemprop="name">Lentil Stew</h2>'
            "</div>"
        )
        extraction = extract_structured_recipe(_page(body=body), BASE_URL)

        assert extraction is not None
        assert extraction.title == "Lentil Stew"
        assert extraction.description == ""

    def test_heading_and_og_description_fallbacks(self) -> None:
        page = (
            '<html><head><meta property="og:description" content="From the garden."></head>'
            '<body><h1>Tomato Salad</h1><div itemscope itemtype="http://schema.org/Recipe"></div></body></html>'
        )
        extraction = extract_structured_recipe(page, BASE_URL)

        assert extraction is not None
        assert extraction.title == "Tomato Salad"
        assert extraction.description == "From the garden."

    def test_linked_data_wins_over_microdata(self) -> None:
        body = '<div itemscope itemtype="https://schema.org/Recipe"><h2 itemprop="name">Other</h2></div>'
        extraction = extract_structured_recipe(_page(RECIPE_NODE, body=body), BASE_URL)
        assert extraction is not None
        assert extraction.title == "Fluffy Pancakes"


def test_plain_page_is_not_found() -> None:
    assert extract_structured_recipe("<html><body><h1>About us</h1></body></html>", BASE_URL) is None
