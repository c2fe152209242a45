"""Data access helpers for daily meal plans."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, List, Mapping, Sequence, get_args

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from mise.errors import InvalidArgument, NotFound
from mise.models.meal_plan import MealPlan, MealType

from .models import MealPlanORM, MealPlanRecipeORM, RecipeORM
from .repository import session_scope

logger = logging.getLogger(__name__)

_MEAL_TYPES = frozenset(get_args(MealType))


def _to_model(row: MealPlanORM) -> MealPlan:
    return MealPlan.model_validate(
        {
            "id": row.id,
            "plan_date": row.plan_date,
            "meals": [
                {
                    "id": meal.id,
                    "meal_type": meal.meal_type,
                    "recipe_id": meal.recipe_id,
                    "servings": meal.servings,
                    "out_of_kitchen": meal.out_of_kitchen,
                    "order_index": meal.order_index,
                }
                for meal in row.meals
            ],
        }
    )


def get_meal_plan(plan_date: date) -> MealPlan:
    """Return the plan stored for ``plan_date`` (an empty plan when none exists)."""

    with session_scope() as session:
        row = session.execute(
            select(MealPlanORM)
            .options(selectinload(MealPlanORM.meals))
            .where(MealPlanORM.plan_date == plan_date)
        ).scalar_one_or_none()
        if row is None:
            return MealPlan(plan_date=plan_date)
        return _to_model(row)


def list_meal_plans(start_date: date, end_date: date, *, fill_missing: bool = False) -> List[MealPlan]:
    """Return stored plans in ``[start_date, end_date]`` ordered by date.

    With ``fill_missing`` every date in range is present, using empty plans for gaps.
    """

    with session_scope() as session:
        rows = (
            session.execute(
                select(MealPlanORM)
                .options(selectinload(MealPlanORM.meals))
                .where(MealPlanORM.plan_date >= start_date, MealPlanORM.plan_date <= end_date)
                .order_by(MealPlanORM.plan_date.asc())
            )
            .scalars()
            .all()
        )
        plans = [_to_model(row) for row in rows]

    if not fill_missing:
        return plans

    by_date = {plan.plan_date: plan for plan in plans}
    filled: List[MealPlan] = []
    current = start_date
    while current <= end_date:
        filled.append(by_date.get(current) or MealPlan(plan_date=current))
        current += timedelta(days=1)
    return filled


def _validate_meals(meals: Sequence[Mapping[str, Any]]) -> None:
    for meal in meals:
        meal_type = meal.get("meal_type")
        if meal_type not in _MEAL_TYPES:
            raise InvalidArgument(f"unknown meal_type '{meal_type}'")
        if meal.get("out_of_kitchen"):
            if meal.get("recipe_id") is not None or meal.get("servings") is not None:
                raise InvalidArgument("out_of_kitchen meals cannot reference a recipe or servings")
            continue
        if meal.get("recipe_id") is None:
            raise InvalidArgument("recipe_id is required unless out_of_kitchen is set")
        servings = meal.get("servings")
        if servings is None or servings <= 0:
            raise InvalidArgument("servings must be greater than 0")


def save_meal_plan(plan_date: date, meals: Sequence[Mapping[str, Any]]) -> MealPlan:
    """Replace the meals planned for ``plan_date``."""

    _validate_meals(meals)
    with session_scope() as session:
        recipe_ids = {meal["recipe_id"] for meal in meals if meal.get("recipe_id") is not None}
        if recipe_ids:
            found = set(
                session.execute(select(RecipeORM.id).where(RecipeORM.id.in_(recipe_ids))).scalars()
            )
            missing = sorted(recipe_ids - found)
            if missing:
                raise NotFound(f"Recipe {missing[0]} not found")

        row = session.execute(
            select(MealPlanORM)
            .options(selectinload(MealPlanORM.meals))
            .where(MealPlanORM.plan_date == plan_date)
        ).scalar_one_or_none()
        if row is None:
            row = MealPlanORM(plan_date=plan_date)
            session.add(row)

        row.meals = [
            MealPlanRecipeORM(
                meal_type=meal["meal_type"],
                recipe_id=meal.get("recipe_id"),
                servings=meal.get("servings"),
                out_of_kitchen=bool(meal.get("out_of_kitchen", False)),
                order_index=index,
            )
            for index, meal in enumerate(meals)
        ]
        session.flush()
        logger.debug("Saved %s meal(s) for %s", len(meals), plan_date)
        return _to_model(row)


__all__ = ["get_meal_plan", "list_meal_plans", "save_meal_plan"]
