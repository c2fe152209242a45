"""Cookbook data models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from mise.models.recipe import Recipe


class Cookbook(BaseModel):
    """Named, owner-scoped collection of recipes."""

    id: int
    owner: str
    name: str
    description: Optional[str] = Field(default=None)
    recipes: list[Recipe] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[misc]
    @property
    def recipe_count(self) -> int:
        return len(self.recipes)
