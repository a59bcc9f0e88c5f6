from __future__ import annotations

import html
import json
import logging
import re
from typing import Any, Iterator

from bs4 import BeautifulSoup

from src.services.normalizers import (
    clean_text,
    normalize_duration,
    normalize_ingredients,
    normalize_instructions,
    normalize_servings,
    normalize_tags,
    resolve_image_url,
)
from src.services.types import RawExtraction

logger = logging.getLogger(__name__)

LINKED_DATA_TYPE_PATTERN = re.compile(r"ld\+json", re.IGNORECASE)
RECIPE_TYPE = "Recipe"
CONTAINER_KEYS = ("@graph", "recipe", "mainEntity")


def _first_field(node: dict, *keys: str) -> Any:
    for key in keys:
        value = node.get(key)
        if value not in (None, "", []):
            return value
    return None


def _clean_markup_text(value: Any) -> str | None:
    text = clean_text(value)
    return html.unescape(text) if text else None


def _is_recipe_node(node: dict) -> bool:
    kind = node.get("@type") or node.get("type")
    kinds = kind if isinstance(kind, list) else [kind]
    return any(isinstance(entry, str) and entry.split(":")[-1] == RECIPE_TYPE for entry in kinds)


def find_recipe_node(data: Any) -> dict | None:
    """Locate a Recipe node in a bare object, an array, or a graph container."""
    if isinstance(data, list):
        for item in data:
            found = find_recipe_node(item)
            if found is not None:
                return found
        return None
    if not isinstance(data, dict):
        return None
    if _is_recipe_node(data):
        return data
    for key in CONTAINER_KEYS:
        nested = data.get(key)
        if isinstance(nested, (dict, list)):
            found = find_recipe_node(nested)
            if found is not None:
                return found
    return None


def _iter_linked_data(soup: BeautifulSoup) -> Iterator[Any]:
    for script in soup.find_all("script", attrs={"type": LINKED_DATA_TYPE_PATTERN}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            yield json.loads(raw, strict=False)
        except ValueError as error:
            logger.debug("Skipping unparseable linked-data block: %s", error)


def map_recipe_node(node: dict, base_url: str) -> RawExtraction | None:
    title = _clean_markup_text(_first_field(node, "name", "headline"))
    if not title:
        return None

    return RawExtraction(
        title=title,
        description=_clean_markup_text(_first_field(node, "description", "about")) or "",
        image_url=resolve_image_url(node.get("image"), base_url),
        ingredients=normalize_ingredients(_first_field(node, "recipeIngredient", "ingredients")),
        instructions=normalize_instructions(_first_field(node, "recipeInstructions", "instructions")),
        cooking_time=normalize_duration(_first_field(node, "totalTime", "cookTime", "prepTime")),
        servings=normalize_servings(_first_field(node, "recipeYield", "yield")),
        tags=normalize_tags(_first_field(node, "keywords", "recipeCategory")),
        source="json-ld",
    )


def _from_linked_data(soup: BeautifulSoup, base_url: str) -> RawExtraction | None:
    for data in _iter_linked_data(soup):
        node = find_recipe_node(data)
        if node is None:
            continue
        extraction = map_recipe_node(node, base_url)
        if extraction is not None:
            return extraction
    return None


def _owning_scope(tag, scope):
    for parent in tag.parents:
        if parent is scope or parent.has_attr("itemscope"):
            return parent
    return None


def _itemprop_value(scope, prop: str) -> str | None:
    for tag in scope.select(f'[itemprop="{prop}"]'):
        # properties of a nested item (author, nutrition) belong to that item
        if _owning_scope(tag, scope) is not scope:
            continue
        return clean_text(tag.get("content")) or clean_text(tag.get_text(" ", strip=True))
    return None


def _from_microdata(soup: BeautifulSoup) -> RawExtraction | None:
    scope = soup.select_one('[itemtype*="Recipe"]')
    if scope is None:
        return None

    title = _itemprop_value(scope, "name")
    if not title:
        heading = soup.find("h1")
        title = clean_text(heading.get_text(" ", strip=True)) if heading else None
    if not title:
        return None

    description = _itemprop_value(scope, "description")
    if not description:
        og_description = soup.find("meta", attrs={"property": "og:description"})
        description = clean_text(og_description.get("content")) if og_description else None

    return RawExtraction(title=title, description=description or "", source="microdata")


def extract_structured_recipe(page_html: str, base_url: str) -> RawExtraction | None:
    """Extract a recipe draft from embedded markup, or ``None`` when nothing usable is found.

    Linked-data blocks are tried first. Microdata is a lower-fidelity fallback that
    only yields a title and description; the assembler accepts such a draft and
    warns about the missing ingredients and instructions.
    """
    soup = BeautifulSoup(page_html, "html.parser")

    extraction = _from_linked_data(soup, base_url)
    if extraction is not None:
        logger.info("structured.linked_data title=%s", extraction.title)
        return extraction

    extraction = _from_microdata(soup)
    if extraction is not None:
        logger.info("structured.microdata title=%s", extraction.title)
        return extraction

    logger.info("structured.not_found url=%s", base_url)
    return None
