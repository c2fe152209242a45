"""Pydantic models defining shared data contracts."""

from mise.models.cookbook import Cookbook
from mise.models.grocery import GroceryList, GroceryListItem, ItemStatus
from mise.models.meal_plan import MealPlan, MealPlanRecipe, MealType
from mise.models.menu import RecipeRecommendation, RecommendationMeta, RecommendationResponse
from mise.models.recipe import (
    DEPARTMENT_ORDER,
    Department,
    Recipe,
    RecipeIngredient,
    RecipeInstruction,
)

__all__ = [
    "Cookbook",
    "DEPARTMENT_ORDER",
    "Department",
    "Recipe",
    "RecipeIngredient",
    "RecipeInstruction",
    "MealPlan",
    "MealPlanRecipe",
    "MealType",
    "GroceryList",
    "GroceryListItem",
    "ItemStatus",
    "RecipeRecommendation",
    "RecommendationMeta",
    "RecommendationResponse",
]
