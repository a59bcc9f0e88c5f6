from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from src.services.recipe_models import CanonicalRecipe


class IngestRequest(BaseModel):
    url: Optional[str] = None
    text: Optional[str] = None
    image: Optional[str] = None

    @property
    def source_kind(self) -> Optional[str]:
        if self.url is not None:
            return "url"
        if self.text is not None:
            return "text"
        if self.image is not None:
            return "image"
        return None


class IngestResponse(BaseModel):
    success: bool
    recipe: Optional[CanonicalRecipe] = None
    warnings: Optional[list[str]] = None
    strategy: Optional[str] = None
    error: Optional[str] = None
    statusCode: Optional[int] = None
