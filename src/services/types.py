from dataclasses import dataclass, field
from typing import Literal, Optional, Union


@dataclass
class RawIngredient:
    name: str
    amount: Union[str, float, int, None] = ""
    unit: str = ""


@dataclass
class RawInstruction:
    step: int
    description: str


@dataclass
class RawExtraction:
    title: str
    description: str = ""
    image_url: Optional[str] = None
    ingredients: list[RawIngredient] = field(default_factory=list)
    instructions: list[RawInstruction] = field(default_factory=list)
    cooking_time: Optional[str] = None
    servings: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    cookware: Optional[str] = None
    source: Literal["json-ld", "microdata", "llm-html", "llm-text", "llm-image"] = "json-ld"
