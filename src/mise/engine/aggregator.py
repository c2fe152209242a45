"""Consolidate a date range of planned meals into a grocery list.

Derived items are keyed by ``(normalized name, unit family, department)``; at most one
derived item exists per key. Regenerating against a previous list keeps the status
(and id) of every derived item whose key survives, drops derived items whose key no
longer appears, and copies manual items through untouched.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from mise.errors import InvalidArgument, NotFound
from mise.models.grocery import GroceryList, GroceryListItem, ItemKey
from mise.models.meal_plan import MealPlan, MealPlanRecipe
from mise.models.recipe import DEPARTMENT_ORDER, Recipe

from .normalizer import IngredientNormalizer, UnitFamily, get_normalizer

logger = logging.getLogger(__name__)

FLAG_ZERO_BASE_SERVINGS = "zero_base_servings"
FLAG_MIXED_UNITS = "mixed_units"

_DEPARTMENT_RANK = {name: index for index, name in enumerate(DEPARTMENT_ORDER)}


@dataclass(frozen=True)
class ScaledIngredient:
    """Recipe ingredient after serving-size scaling."""

    name: str
    normalized_name: str
    quantity: float
    unit: str
    family: UnitFamily
    department: str
    recipe_id: int
    zero_base_servings: bool = False


@dataclass
class _Group:
    first: ScaledIngredient
    total: float = 0.0
    flags: set[str] = field(default_factory=set)

    def add(self, ingredient: ScaledIngredient) -> None:
        if ingredient.family.unit == self.first.family.unit:
            self.total += ingredient.quantity
        else:
            # Same recognized family, different unit: express in the first-seen unit.
            self.total += ingredient.quantity * ingredient.family.factor / self.first.family.factor
        if ingredient.zero_base_servings:
            self.flags.add(FLAG_ZERO_BASE_SERVINGS)


def scale_factor(meal: MealPlanRecipe, recipe: Recipe) -> tuple[float, bool]:
    """Serving multiplier for a meal; ``(1.0, True)`` when the recipe has zero servings."""

    if recipe.servings <= 0:
        return 1.0, True
    servings = meal.servings if meal.servings is not None else recipe.servings
    return servings / recipe.servings, False


def collect_ingredients(
    start_date: date,
    end_date: date,
    meal_plans: Iterable[MealPlan],
    recipes: Mapping[int, Recipe],
    normalizer: IngredientNormalizer,
) -> List[ScaledIngredient]:
    """Scaled ingredients of every in-kitchen meal in range, in plan order."""

    collected: List[ScaledIngredient] = []
    for plan in sorted(meal_plans, key=lambda p: p.plan_date):
        if not start_date <= plan.plan_date <= end_date:
            continue
        for meal in plan.meals:
            if meal.out_of_kitchen or meal.recipe_id is None:
                continue
            recipe = recipes.get(meal.recipe_id)
            if recipe is None:
                raise NotFound(f"Recipe {meal.recipe_id} not found")

            factor, zero_base = scale_factor(meal, recipe)
            if zero_base:
                logger.warning(
                    "Recipe %s has zero base servings; using its quantities unscaled",
                    recipe.id,
                )
            for ingredient in recipe.ingredients:
                normalized = normalizer.normalize(ingredient.ingredient_name)
                if not normalized:
                    continue
                collected.append(
                    ScaledIngredient(
                        name=ingredient.ingredient_name.strip(),
                        normalized_name=normalized,
                        quantity=ingredient.quantity * factor,
                        unit=ingredient.unit.strip(),
                        family=normalizer.normalize_unit(ingredient.unit),
                        department=ingredient.department,
                        recipe_id=recipe.id,
                        zero_base_servings=zero_base,
                    )
                )
    return collected


def resolve_departments(ingredients: Sequence[ScaledIngredient]) -> Dict[str, str]:
    """Majority department per normalized name; ties go to the first seen."""

    votes: Dict[str, Counter[str]] = {}
    for ingredient in ingredients:
        votes.setdefault(ingredient.normalized_name, Counter())[ingredient.department] += 1

    resolved: Dict[str, str] = {}
    for name, counter in votes.items():
        # Counter preserves insertion order and max() keeps the first maximal entry.
        resolved[name] = max(counter, key=lambda dept: counter[dept])
    return resolved


def build_derived_items(ingredients: Sequence[ScaledIngredient]) -> List[GroceryListItem]:
    departments = resolve_departments(ingredients)

    groups: Dict[ItemKey, _Group] = {}
    for ingredient in ingredients:
        key = (
            ingredient.normalized_name,
            ingredient.family.key,
            departments[ingredient.normalized_name],
        )
        group = groups.get(key)
        if group is None:
            group = groups[key] = _Group(first=ingredient)
        group.add(ingredient)

    families_per_name = Counter(name for name, _, _ in groups)
    items: List[GroceryListItem] = []
    for (name, family_key, department), group in groups.items():
        flags = set(group.flags)
        if families_per_name[name] > 1:
            flags.add(FLAG_MIXED_UNITS)
        items.append(
            GroceryListItem(
                item_name=group.first.name,
                normalized_name=name,
                quantity=round(group.total, 3),
                unit=group.first.unit or None,
                unit_family=family_key,
                department=department,
                status="pending",
                is_manual=False,
                source_recipe_id=group.first.recipe_id,
                flags=sorted(flags),
            )
        )
    return items


def merge_with_existing(
    derived: Sequence[GroceryListItem], existing: Optional[GroceryList]
) -> List[GroceryListItem]:
    """Carry prior ids/statuses onto surviving derived keys and keep manual items."""

    if existing is None:
        return list(derived)

    prior: Dict[ItemKey, GroceryListItem] = {}
    for item in existing.derived_items:
        prior.setdefault(item.key, item)

    merged: List[GroceryListItem] = []
    for item in derived:
        previous = prior.get(item.key)
        update: dict[str, object] = {"grocery_list_id": existing.id}
        if previous is not None:
            update["id"] = previous.id
            update["status"] = previous.status
        merged.append(item.model_copy(update=update))

    dropped = len(prior) - sum(1 for item in derived if item.key in prior)
    if dropped:
        logger.debug("Dropping %s derived item(s) no longer planned", dropped)

    merged.extend(existing.manual_items)
    return merged


def order_items(items: Iterable[GroceryListItem]) -> List[GroceryListItem]:
    """Department order, then normalized name, derived before manual, then id."""

    return sorted(
        items,
        key=lambda item: (
            _DEPARTMENT_RANK.get(item.department, len(_DEPARTMENT_RANK)),
            item.normalized_name,
            item.is_manual,
            item.id is None,
            item.id or 0,
        ),
    )


def generate(
    start_date: date,
    end_date: date,
    meal_plans: Iterable[MealPlan],
    recipes: Union[Mapping[int, Recipe], Iterable[Recipe]],
    existing: Optional[GroceryList] = None,
    *,
    owner: str = "default",
    normalizer: Optional[IngredientNormalizer] = None,
) -> GroceryList:
    """Build the grocery list for ``[start_date, end_date]`` from a meal-plan snapshot.

    ``recipes`` must contain every recipe referenced by an in-kitchen meal in range.
    When ``existing`` is given it must cover the same range; its id, owner and
    revision are carried onto the result so the caller can write it back.
    """

    if start_date > end_date:
        raise InvalidArgument("end_date must not be before start_date")
    if existing is not None and (existing.start_date, existing.end_date) != (start_date, end_date):
        raise InvalidArgument("existing grocery list covers a different date range")

    normalizer = normalizer or get_normalizer()
    if isinstance(recipes, Mapping):
        recipes_by_id = dict(recipes)
    else:
        recipes_by_id = {recipe.id: recipe for recipe in recipes}

    ingredients = collect_ingredients(start_date, end_date, meal_plans, recipes_by_id, normalizer)
    derived = build_derived_items(ingredients)
    items = order_items(merge_with_existing(derived, existing))

    logger.debug(
        "Aggregated %s ingredient line(s) into %s derived item(s) for %s..%s",
        len(ingredients),
        len(derived),
        start_date,
        end_date,
    )

    if existing is None:
        return GroceryList(owner=owner, start_date=start_date, end_date=end_date, items=items)
    return existing.model_copy(update={"items": items})


__all__ = [
    "FLAG_MIXED_UNITS",
    "FLAG_ZERO_BASE_SERVINGS",
    "ScaledIngredient",
    "build_derived_items",
    "collect_ingredients",
    "generate",
    "merge_with_existing",
    "order_items",
    "resolve_departments",
    "scale_factor",
]
