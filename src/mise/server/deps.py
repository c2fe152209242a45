"""Dependency definitions for the Mise API server."""

from __future__ import annotations

from datetime import date
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, Request, status

from mise.config import get_settings
from mise.db.cookbooks import (
    add_recipe_to_cookbook,
    create_cookbook,
    delete_cookbook,
    get_cookbook,
    list_cookbooks,
    remove_recipe_from_cookbook,
    update_cookbook,
)
from mise.db.grocery_lists import (
    add_manual_item,
    delete_grocery_list,
    get_grocery_item,
    get_grocery_list,
    list_grocery_lists,
    update_item_status,
)
from mise.db.meal_plans import get_meal_plan, list_meal_plans, save_meal_plan
from mise.db.recipes import create_recipe, delete_recipe, get_recipe, list_recipes, update_recipe
from mise.models.cookbook import Cookbook
from mise.models.grocery import GroceryList, GroceryListItem
from mise.models.meal_plan import MealPlan
from mise.models.menu import RecommendationResponse
from mise.models.recipe import Recipe
from mise.services.grocery import regenerate_grocery_list
from mise.services.menu import recommend_from_catalog

Recommender = Callable[[List[str]], RecommendationResponse]
GroceryListGenerator = Callable[[date, date, str], GroceryList]
GroceryListFetcher = Callable[[int], Optional[GroceryList]]
GroceryListsProvider = Callable[[str], List[GroceryList]]
GroceryListDeleter = Callable[[int], None]
GroceryItemFetcher = Callable[[int], Optional[GroceryListItem]]
ManualItemCreator = Callable[[int, dict], GroceryListItem]
ItemStatusUpdater = Callable[[int, str], GroceryListItem]
RecipeCreator = Callable[[dict], Recipe]
RecipeUpdater = Callable[[int, dict], Recipe]
RecipesProvider = Callable[[], List[Recipe]]
RecipeFetcher = Callable[[int], Optional[Recipe]]
RecipeDeleter = Callable[[int], None]
MealPlanFetcher = Callable[[date], MealPlan]
MealPlanRangeProvider = Callable[[date, date], List[MealPlan]]
MealPlanSaver = Callable[[date, List[dict]], MealPlan]
CookbookCreator = Callable[[str, dict], Cookbook]
CookbookFetcher = Callable[[int], Optional[Cookbook]]
CookbooksProvider = Callable[[str], List[Cookbook]]
CookbookUpdater = Callable[[int, dict], Cookbook]
CookbookDeleter = Callable[[int], None]
CookbookMembership = Callable[[int, int], Cookbook]


def get_recommender() -> Recommender:
    """Return the catalog-backed recommendation implementation."""

    return lambda ingredients: recommend_from_catalog(ingredients)


def get_grocery_list_generator() -> GroceryListGenerator:
    return lambda start_date, end_date, owner: regenerate_grocery_list(
        start_date, end_date, owner
    )


def get_grocery_list_fetcher() -> GroceryListFetcher:
    return get_grocery_list


def get_grocery_lists_provider() -> GroceryListsProvider:
    return list_grocery_lists


def get_grocery_list_deleter() -> GroceryListDeleter:
    return delete_grocery_list


def get_grocery_item_fetcher() -> GroceryItemFetcher:
    return get_grocery_item


def get_manual_item_creator() -> ManualItemCreator:
    return lambda grocery_list_id, payload: add_manual_item(grocery_list_id, **payload)


def get_item_status_updater() -> ItemStatusUpdater:
    return update_item_status


def get_recipe_creator() -> RecipeCreator:
    return lambda payload: create_recipe(**payload)


def get_recipe_updater() -> RecipeUpdater:
    return lambda recipe_id, payload: update_recipe(recipe_id, **payload)


def get_recipes_provider() -> RecipesProvider:
    return lambda: list_recipes()


def get_recipe_fetcher() -> RecipeFetcher:
    return get_recipe


def get_recipe_deleter() -> RecipeDeleter:
    return delete_recipe


def get_meal_plan_fetcher() -> MealPlanFetcher:
    return get_meal_plan


def get_meal_plan_range_provider() -> MealPlanRangeProvider:
    return lambda start_date, end_date: list_meal_plans(start_date, end_date, fill_missing=True)


def get_meal_plan_saver() -> MealPlanSaver:
    return save_meal_plan


def get_cookbook_creator() -> CookbookCreator:
    return lambda owner, payload: create_cookbook(owner, **payload)


def get_cookbook_fetcher() -> CookbookFetcher:
    return get_cookbook


def get_cookbooks_provider() -> CookbooksProvider:
    return list_cookbooks


def get_cookbook_updater() -> CookbookUpdater:
    return lambda cookbook_id, payload: update_cookbook(cookbook_id, **payload)


def get_cookbook_deleter() -> CookbookDeleter:
    return delete_cookbook


def get_cookbook_recipe_adder() -> CookbookMembership:
    return add_recipe_to_cookbook


def get_cookbook_recipe_remover() -> CookbookMembership:
    return remove_recipe_from_cookbook


def get_owner(request: Request, settings=Depends(get_settings)) -> str:
    """Owner scoping grocery lists, from ``X-User-ID`` or the configured default."""

    owner = (request.headers.get("X-User-ID") or "").strip()
    return owner or settings.default_owner


def require_api_token(
    request: Request,
    settings=Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
