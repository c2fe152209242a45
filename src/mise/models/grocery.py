"""Grocery list data models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mise.models.recipe import Department

ItemStatus = Literal["pending", "bought", "have_on_hand"]

ItemKey = tuple[str, Optional[str], str]


class GroceryListItem(BaseModel):
    """Shopping list line, either derived from meal plans or entered by hand."""

    id: Optional[int] = Field(default=None)
    grocery_list_id: Optional[int] = Field(default=None)
    item_name: str
    normalized_name: str
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None)
    unit_family: Optional[str] = Field(default=None)
    department: Department = Field(default="other")
    status: ItemStatus = Field(default="pending")
    is_manual: bool = Field(default=False)
    source_recipe_id: Optional[int] = Field(default=None)
    flags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> ItemKey:
        """Identity of a derived item across regenerations."""

        return (self.normalized_name, self.unit_family, self.department)


class GroceryList(BaseModel):
    """Shopping list covering an inclusive date range for one owner."""

    id: Optional[int] = Field(default=None)
    owner: str
    start_date: date
    end_date: date
    revision: int = Field(default=0, ge=0)
    items: list[GroceryListItem] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @property
    def derived_items(self) -> list[GroceryListItem]:
        return [item for item in self.items if not item.is_manual]

    @property
    def manual_items(self) -> list[GroceryListItem]:
        return [item for item in self.items if item.is_manual]
