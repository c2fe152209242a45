"""Recipe data models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Department = Literal[
    "produce",
    "meat",
    "seafood",
    "dairy",
    "bakery",
    "frozen",
    "pantry",
    "spices",
    "beverages",
    "other",
]

# Store walking order; also the display order of grocery list sections.
DEPARTMENT_ORDER: tuple[str, ...] = (
    "produce",
    "meat",
    "seafood",
    "dairy",
    "bakery",
    "frozen",
    "pantry",
    "spices",
    "beverages",
    "other",
)


class RecipeIngredient(BaseModel):
    """Ingredient line as authored on a recipe."""

    id: Optional[int] = Field(default=None)
    ingredient_name: str = Field(min_length=1)
    quantity: float = Field(default=0.0, ge=0)
    unit: str = Field(default="")
    department: Department = Field(default="other")
    nutrition_id: Optional[str] = Field(default=None)
    order_index: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class RecipeInstruction(BaseModel):
    """Single ordered cooking step."""

    step_number: int = Field(ge=1)
    instruction: str

    model_config = ConfigDict(frozen=True)


class Recipe(BaseModel):
    """Immutable recipe snapshot consumed by the engines."""

    id: int
    title: str
    servings: int = Field(default=1, ge=0)
    serving_size: str = Field(default="")
    prep_time_minutes: Optional[int] = Field(default=None, ge=0)
    cook_time_minutes: Optional[int] = Field(default=None, ge=0)
    total_time_minutes: int = Field(default=0, ge=0)
    source: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[RecipeInstruction] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(frozen=True)
