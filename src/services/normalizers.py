"""Pure normalizers that turn heterogeneous recipe fields into canonical forms.

Source markup delivers ingredients, instructions, yields and keywords as bare
strings, structured objects or nested lists. Each raw value is classified once
into a :data:`RawForm` and resolved from there, so nothing downstream has to
re-check which fields happen to exist.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Union
from urllib.parse import urljoin

from src.services.types import RawIngredient, RawInstruction

INGREDIENT_PATTERNS = (
    re.compile(r"^(\d+(?:\.\d+)?)\s*(\w+)?\s+(.+)$"),
    re.compile(r"^(\d+/\d+|\d+\.\d+|\d+)\s*(\w+)?\s+(.+)$"),
    re.compile(r"^(.+)$"),
)
DURATION_HOURS_PATTERN = re.compile(r"(\d+)H")
DURATION_MINUTES_PATTERN = re.compile(r"(\d+)M")
LEADING_NUMBER_PATTERN = re.compile(r"^[-+]?(\d+(?:\.\d*)?|\.\d+)")
MIXED_FRACTION_PATTERN = re.compile(r"^(\d+)\s+(\d+)/(\d+)")
FRACTION_PATTERN = re.compile(r"^(\d+)/(\d+)")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "should", "could",
    "may", "might", "must", "can", "this", "that", "these", "those",
})

COOKWARE_OPTIONS = (
    "Stovetop – Pan or Pot",
    "Air Fryer",
    "Oven",
    "Grill",
    "Slow Cooker",
    "Pressure Cooker",
    "Wok",
    "Other",
)
_COOKWARE_ALIASES = (
    ("air fryer", "Air Fryer"),
    ("airfryer", "Air Fryer"),
    ("slow cooker", "Slow Cooker"),
    ("crockpot", "Slow Cooker"),
    ("crock pot", "Slow Cooker"),
    ("pressure cooker", "Pressure Cooker"),
    ("instant pot", "Pressure Cooker"),
    ("stovetop", "Stovetop – Pan or Pot"),
    ("skillet", "Stovetop – Pan or Pot"),
    ("pan", "Stovetop – Pan or Pot"),
    ("pot", "Stovetop – Pan or Pot"),
    ("oven", "Oven"),
    ("grill", "Grill"),
    ("wok", "Wok"),
)

_INGREDIENT_NAME_KEYS = ("name", "food", "ingredient", "text")
_INGREDIENT_AMOUNT_KEYS = ("amount", "quantity", "value")
_INGREDIENT_UNIT_KEYS = ("unit", "unitText", "unitCode")
_STEP_POSITION_KEYS = ("position", "stepNumber", "step")
_SUB_ITEM_KEYS = ("itemListElement", "steps")


@dataclass(frozen=True)
class TextForm:
    text: str


@dataclass(frozen=True)
class StructuredForm:
    fields: dict


@dataclass(frozen=True)
class ListForm:
    items: list


@dataclass(frozen=True)
class OpaqueForm:
    value: Any


RawForm = Union[TextForm, StructuredForm, ListForm, OpaqueForm]


def classify(value: Any) -> RawForm:
    if isinstance(value, str):
        return TextForm(value)
    if isinstance(value, dict):
        return StructuredForm(value)
    if isinstance(value, (list, tuple)):
        return ListForm(list(value))
    return OpaqueForm(value)


def clean_text(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return None


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _first_text(fields: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        text = clean_text(fields.get(key))
        if text:
            return text
    return None


def _as_entries(value: Any) -> list:
    form = classify(value)
    if isinstance(form, ListForm):
        return form.items
    if isinstance(form, TextForm):
        return [line for line in form.text.splitlines() if line.strip()]
    if value is None:
        return []
    return [value]


# Ingredients

def parse_ingredient_line(line: str) -> RawIngredient:
    text = line.strip()
    for pattern in INGREDIENT_PATTERNS:
        match = pattern.match(text)
        if match is None:
            continue
        if pattern.groups == 3:
            amount, unit, name = match.groups()
            return RawIngredient(name=name.strip(), amount=amount, unit=unit or "")
        return RawIngredient(name=match.group(1).strip(), amount="", unit="")
    return RawIngredient(name=text, amount="", unit="")


def map_ingredient(entry: Any) -> RawIngredient:
    form = classify(entry)
    if isinstance(form, TextForm):
        return parse_ingredient_line(form.text)
    if isinstance(form, StructuredForm):
        name = _first_text(form.fields, _INGREDIENT_NAME_KEYS)
        amount = next(
            (form.fields[key] for key in _INGREDIENT_AMOUNT_KEYS if form.fields.get(key) not in (None, "")),
            None,
        )
        if name is None and amount is None:
            return RawIngredient(name=str(entry))
        return RawIngredient(
            name=name or "",
            amount=amount if amount is not None else "",
            unit=_first_text(form.fields, _INGREDIENT_UNIT_KEYS) or "",
        )
    return RawIngredient(name=str(entry))


def normalize_ingredients(value: Any) -> list[RawIngredient]:
    ingredients = [map_ingredient(entry) for entry in _as_entries(value)]
    return [ingredient for ingredient in ingredients if ingredient.name]


def coerce_amount(value: Any) -> float:
    """Best-effort numeric amount; ``0`` when nothing numeric leads the value."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    mixed = MIXED_FRACTION_PATTERN.match(text)
    if mixed:
        whole, numerator, denominator = (int(part) for part in mixed.groups())
        if denominator:
            return float(whole + Fraction(numerator, denominator))
    fraction = FRACTION_PATTERN.match(text)
    if fraction:
        numerator, denominator = (int(part) for part in fraction.groups())
        if denominator:
            return float(Fraction(numerator, denominator))
    number = LEADING_NUMBER_PATTERN.match(text)
    return float(number.group(0)) if number else 0.0


# Instructions

def _explicit_step(fields: dict) -> int | None:
    for key in _STEP_POSITION_KEYS:
        raw = fields.get(key)
        if isinstance(raw, bool):
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            continue
    return None


def _sub_item_text(item: Any) -> str:
    form = classify(item)
    if isinstance(form, TextForm):
        return form.text.strip()
    if isinstance(form, StructuredForm):
        return _first_text(form.fields, ("text", "name")) or ""
    return ""


def _is_how_to_step(fields: dict) -> bool:
    kind = fields.get("@type") or fields.get("type")
    if isinstance(kind, list):
        return "HowToStep" in kind
    return kind == "HowToStep"


def map_instruction(entry: Any, index: int) -> RawInstruction:
    position = index + 1
    form = classify(entry)
    if isinstance(form, TextForm):
        return RawInstruction(step=position, description=form.text.strip())
    if isinstance(form, StructuredForm):
        fields = form.fields
        text = clean_text(fields.get("text"))
        if text:
            return RawInstruction(step=_explicit_step(fields) or position, description=text)
        for key in _SUB_ITEM_KEYS:
            sub_items = classify(fields.get(key))
            if isinstance(sub_items, ListForm):
                joined = " ".join(part for part in map(_sub_item_text, sub_items.items) if part)
                return RawInstruction(step=position, description=joined)
        if _is_how_to_step(fields):
            return RawInstruction(
                step=_explicit_step(fields) or position,
                description=_first_text(fields, ("text", "name")) or "",
            )
    return RawInstruction(step=position, description=str(entry))


def normalize_instructions(value: Any) -> list[RawInstruction]:
    return [map_instruction(entry, index) for index, entry in enumerate(_as_entries(value))]


# Scalars

def _pluralize(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def normalize_duration(value: Any) -> str | None:
    """Render ``PT1H30M`` style durations as ``1 hour 30 minutes``.

    Strings that are not ``PT`` durations are assumed to be human readable
    already and are returned unchanged.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return _pluralize(int(value), "minute") if value > 0 else None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if not text.startswith("PT"):
        return text

    parts: list[str] = []
    hours = DURATION_HOURS_PATTERN.search(text)
    if hours and int(hours.group(1)):
        parts.append(_pluralize(int(hours.group(1)), "hour"))
    minutes = DURATION_MINUTES_PATTERN.search(text)
    if minutes and int(minutes.group(1)):
        parts.append(_pluralize(int(minutes.group(1)), "minute"))
    return " ".join(parts) or None


def normalize_servings(value: Any) -> str | None:
    form = classify(value)
    if isinstance(form, StructuredForm):
        return normalize_servings(form.fields.get("value"))
    if isinstance(form, ListForm):
        parts = [normalize_servings(entry) for entry in form.items]
        return ", ".join(part for part in parts if part) or None
    return clean_text(value)


def normalize_tags(value: Any) -> list[str]:
    form = classify(value)
    if isinstance(form, TextForm):
        candidates = form.text.split(",")
    elif isinstance(form, ListForm):
        candidates = [
            entry.get("name") if isinstance(entry, dict) else entry
            for entry in form.items
        ]
    else:
        return []

    tags: list[str] = []
    for candidate in candidates:
        tag = clean_text(candidate)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def resolve_image_url(value: Any, base_url: str) -> str | None:
    form = classify(value)
    if isinstance(form, ListForm):
        return resolve_image_url(form.items[0], base_url) if form.items else None
    if isinstance(form, StructuredForm):
        return resolve_image_url(form.fields.get("url") or form.fields.get("contentUrl"), base_url)
    if isinstance(form, TextForm) and form.text.strip():
        return urljoin(base_url, form.text.strip())
    return None


def normalize_cookware(value: Any) -> str | None:
    text = clean_text(value)
    if text is None:
        return None
    lowered = text.lower()
    for option in COOKWARE_OPTIONS:
        if option.lower() == lowered:
            return option
    for alias, option in _COOKWARE_ALIASES:
        if re.search(rf"\b{re.escape(alias)}s?\b", lowered):
            return option
    return "Other"


def extract_keywords(text: str) -> list[str]:
    keywords: list[str] = []
    for token in text.lower().split():
        if len(token) <= 2 or token in STOP_WORDS:
            continue
        if token not in keywords:
            keywords.append(token)
    return keywords
