from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field


class IngredientRef(BaseModel):
    name: str


class RecommendationRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    ingredients: list[Union[str, IngredientRef]] = Field(default_factory=list)
    cookware: Optional[str] = None
    cuisine: Optional[str] = None
    cookingTime: Optional[str] = None

    def ingredient_names(self) -> list[str]:
        names: list[str] = []
        for item in self.ingredients:
            name = item if isinstance(item, str) else item.name
            if name.strip():
                names.append(name.strip())
        return names


class VideoItem(BaseModel):
    videoId: str
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    channelTitle: Optional[str] = None
    publishedAt: Optional[str] = None
    url: str
    embedUrl: str
    relevanceScore: float


class RecommendationResponse(BaseModel):
    searchUrl: str
    videos: list[VideoItem] = Field(default_factory=list)
