"""Meal plan data models."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MealType = Literal["breakfast", "lunch", "snack", "dinner", "dessert"]


class MealPlanRecipe(BaseModel):
    """One meal slot on a given day."""

    id: Optional[int] = Field(default=None)
    meal_type: MealType
    recipe_id: Optional[int] = Field(default=None)
    servings: Optional[int] = Field(default=None, ge=1)
    out_of_kitchen: bool = Field(default=False)
    order_index: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class MealPlan(BaseModel):
    """All meals planned for one calendar date."""

    id: Optional[int] = Field(default=None)
    plan_date: date
    meals: list[MealPlanRecipe] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
