# src/services/recipe_models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Ingredient(BaseModel):
    id: str
    name: str
    amount: float = 0
    unit: str = ""


class Instruction(BaseModel):
    id: str
    step: int
    description: str
    imageUri: Optional[str] = None


class CanonicalRecipe(BaseModel):
    id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[Instruction] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    cookingTime: str = ""
    servings: str = ""
    cookware: Optional[str] = None
    imageUri: Optional[str] = None
    isPublic: bool = False
    createdAt: datetime
    updatedAt: datetime


class AssembledRecipe(BaseModel):
    recipe: CanonicalRecipe
    warnings: list[str] = Field(default_factory=list)
