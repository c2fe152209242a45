"""SQLAlchemy models representing Mise persistence tables."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Declarative base class for Mise ORM models."""


class RecipeORM(Base):
    """Recipe header row; ingredients, steps and tags hang off it."""

    __tablename__ = "recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    servings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    serving_size: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    prep_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    ingredients: Mapped[List["RecipeIngredientORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="RecipeIngredientORM.order_index",
    )
    instructions: Mapped[List["RecipeInstructionORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="RecipeInstructionORM.step_number",
    )
    tags: Mapped[List["RecipeTagORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="RecipeTagORM.id",
    )


class RecipeIngredientORM(Base):
    """Ingredient line on a recipe."""

    __tablename__ = "recipe_ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unit: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(32), nullable=False, default="other")
    nutrition_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RecipeInstructionORM(Base):
    __tablename__ = "recipe_instructions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)


class RecipeTagORM(Base):
    __tablename__ = "recipe_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    tag_name: Mapped[str] = mapped_column(String(64), nullable=False)


class MealPlanORM(Base):
    """One row per planned calendar date."""

    __tablename__ = "meal_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_date: Mapped[date] = mapped_column(Date, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    meals: Mapped[List["MealPlanRecipeORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="MealPlanRecipeORM.order_index",
    )


class MealPlanRecipeORM(Base):
    """Meal slot; either references a recipe or is eaten out of the kitchen."""

    __tablename__ = "meal_plan_recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meal_plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False
    )
    meal_type: Mapped[str] = mapped_column(String(16), nullable=False)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    out_of_kitchen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CookbookORM(Base):
    """Owner-scoped recipe collection."""

    __tablename__ = "cookbooks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    entries: Mapped[List["CookbookRecipeORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="CookbookRecipeORM.id",
    )


class CookbookRecipeORM(Base):
    __tablename__ = "cookbook_recipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cookbook_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cookbooks.id", ondelete="CASCADE"), nullable=False
    )
    recipe_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("cookbook_id", "recipe_id", name="uq_cookbook_recipes_pair"),
    )


class GroceryListORM(Base):
    """Grocery list for an owner and inclusive date range."""

    __tablename__ = "grocery_lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    items: Mapped[List["GroceryListItemORM"]] = relationship(
        cascade="all, delete-orphan",
        order_by="GroceryListItemORM.id",
    )

    __table_args__ = (
        UniqueConstraint("owner", "start_date", "end_date", name="uq_grocery_lists_owner_range"),
    )


class GroceryListItemORM(Base):
    """Derived or manual grocery list line."""

    __tablename__ = "grocery_list_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    grocery_list_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("grocery_lists.id", ondelete="CASCADE"), nullable=False
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    unit_family: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    department: Mapped[str] = mapped_column(String(32), nullable=False, default="other")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_recipe_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    flags: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


__all__ = [
    "Base",
    "RecipeORM",
    "RecipeIngredientORM",
    "RecipeInstructionORM",
    "RecipeTagORM",
    "MealPlanORM",
    "MealPlanRecipeORM",
    "CookbookORM",
    "CookbookRecipeORM",
    "GroceryListORM",
    "GroceryListItemORM",
]
