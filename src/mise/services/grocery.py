"""Grocery list generation with optimistic write-back."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from mise import metrics
from mise.config import get_settings
from mise.db.grocery_lists import find_grocery_list, save_grocery_list
from mise.db.meal_plans import list_meal_plans
from mise.db.recipes import list_recipes
from mise.engine.aggregator import generate
from mise.errors import InvalidArgument, RevisionConflict
from mise.models.grocery import GroceryList
from mise.models.meal_plan import MealPlan

logger = logging.getLogger(__name__)


def _referenced_recipe_ids(plans: List[MealPlan]) -> set[int]:
    return {
        meal.recipe_id
        for plan in plans
        for meal in plan.meals
        if not meal.out_of_kitchen and meal.recipe_id is not None
    }


def _record_anomalies(grocery_list: GroceryList) -> None:
    for item in grocery_list.derived_items:
        for flag in item.flags:
            metrics.AGGREGATION_ANOMALIES.labels(flag=flag).inc()


def regenerate_grocery_list(
    start_date: date,
    end_date: date,
    owner: Optional[str] = None,
    *,
    max_attempts: Optional[int] = None,
) -> GroceryList:
    """Create or regenerate the owner's grocery list for ``[start_date, end_date]``.

    Each attempt reads the current list, aggregates the meal plans in range and
    writes the result back only if the list's revision is unchanged. A conflicting
    write restarts the attempt from a fresh read; :class:`RevisionConflict` is raised
    once ``max_attempts`` (default ``MISE_REGENERATE_MAX_ATTEMPTS``) are used up.
    """

    if start_date > end_date:
        raise InvalidArgument("end_date must not be before start_date")

    settings = get_settings()
    owner = owner or settings.default_owner
    attempts = max_attempts or settings.regenerate_max_attempts

    for attempt in range(1, attempts + 1):
        existing = find_grocery_list(owner, start_date, end_date)
        plans = list_meal_plans(start_date, end_date)
        recipes = list_recipes(_referenced_recipe_ids(plans))
        draft = generate(start_date, end_date, plans, recipes, existing, owner=owner)

        try:
            saved = save_grocery_list(draft)
        except RevisionConflict:
            metrics.GROCERY_GENERATIONS.labels(outcome="conflict").inc()
            logger.info(
                "Grocery list write conflicted (attempt %s/%s)",
                attempt,
                attempts,
                extra={"owner": owner, "grocery_list_id": existing.id if existing else None},
            )
            continue

        outcome = "created" if existing is None else "regenerated"
        metrics.GROCERY_GENERATIONS.labels(outcome=outcome).inc()
        _record_anomalies(saved)
        logger.info(
            "Grocery list %s for %s..%s: %s item(s), revision %s",
            outcome,
            start_date,
            end_date,
            len(saved.items),
            saved.revision,
            extra={"owner": owner, "grocery_list_id": saved.id},
        )
        return saved

    raise RevisionConflict(
        f"Grocery list for {start_date}..{end_date} kept changing; gave up after "
        f"{attempts} attempt(s)"
    )


__all__ = ["regenerate_grocery_list"]
