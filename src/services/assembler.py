from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from src.services.errors import RecipeValidationError
from src.services.normalizers import clean_text, coerce_amount, normalize_cookware
from src.services.recipe_models import AssembledRecipe, CanonicalRecipe, Ingredient, Instruction
from src.services.types import RawExtraction

logger = logging.getLogger(__name__)

WARNING_NO_INGREDIENTS = "No ingredients found"
WARNING_NO_INSTRUCTIONS = "No instructions found"
WARNING_NO_COOKING_TIME = "Cooking time not specified"
WARNING_NO_SERVINGS = "Servings not specified"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _collect_warnings(recipe: CanonicalRecipe) -> list[str]:
    warnings: list[str] = []
    if not recipe.ingredients:
        warnings.append(WARNING_NO_INGREDIENTS)
    if not recipe.instructions:
        warnings.append(WARNING_NO_INSTRUCTIONS)
    if not recipe.cookingTime:
        warnings.append(WARNING_NO_COOKING_TIME)
    if not recipe.servings:
        warnings.append(WARNING_NO_SERVINGS)
    return warnings


def assemble_recipe(raw: RawExtraction) -> AssembledRecipe:
    """Turn a raw draft into a canonical recipe.

    The title is the only hard requirement. Missing ingredients, instructions,
    cooking time or servings are reported as warnings so a partial import can
    still be saved and finished by hand.
    """
    title = (raw.title or "").strip()
    if not title:
        raise RecipeValidationError("title", "Recipe title is required")

    timestamp = _now_utc()
    recipe = CanonicalRecipe(
        id=_new_id(),
        title=title,
        description=(raw.description or "").strip(),
        ingredients=[
            Ingredient(
                id=_new_id(),
                name=ingredient.name.strip(),
                amount=coerce_amount(ingredient.amount),
                unit=(ingredient.unit or "").strip(),
            )
            for ingredient in raw.ingredients
        ],
        instructions=[
            Instruction(
                id=_new_id(),
                step=position,
                description=(instruction.description or "").strip() or f"Step {position}",
                imageUri=None,
            )
            for position, instruction in enumerate(raw.instructions, start=1)
        ],
        tags=list(raw.tags) if isinstance(raw.tags, list) else [],
        cookingTime=clean_text(raw.cooking_time) or "",
        servings=clean_text(raw.servings) or "",
        cookware=normalize_cookware(raw.cookware),
        imageUri=raw.image_url,
        isPublic=False,
        createdAt=timestamp,
        updatedAt=timestamp,
    )

    warnings = _collect_warnings(recipe)
    for warning in warnings:
        logger.warning("assemble.warning title=%s warning=%s", title, warning)
    return AssembledRecipe(recipe=recipe, warnings=warnings)
