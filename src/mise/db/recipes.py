"""Recipe persistence helpers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, get_args

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, selectinload

from mise.errors import InvalidArgument, NotFound
from mise.models.recipe import Department, Recipe

from .models import (
    CookbookRecipeORM,
    MealPlanRecipeORM,
    RecipeIngredientORM,
    RecipeInstructionORM,
    RecipeORM,
    RecipeTagORM,
)
from .repository import session_scope

logger = logging.getLogger(__name__)

_DEPARTMENTS = frozenset(get_args(Department))


def _to_model(row: RecipeORM) -> Recipe:
    return Recipe.model_validate(
        {
            "id": row.id,
            "title": row.title,
            "servings": row.servings,
            "serving_size": row.serving_size,
            "prep_time_minutes": row.prep_time_minutes,
            "cook_time_minutes": row.cook_time_minutes,
            "total_time_minutes": row.total_time_minutes,
            "source": row.source,
            "notes": row.notes,
            "ingredients": [
                {
                    "id": ingredient.id,
                    "ingredient_name": ingredient.ingredient_name,
                    "quantity": ingredient.quantity,
                    "unit": ingredient.unit,
                    "department": ingredient.department,
                    "nutrition_id": ingredient.nutrition_id,
                    "order_index": ingredient.order_index,
                }
                for ingredient in row.ingredients
            ],
            "instructions": [
                {"step_number": step.step_number, "instruction": step.instruction}
                for step in row.instructions
            ],
            "tags": [tag.tag_name for tag in row.tags],
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _recipe_query():
    return select(RecipeORM).options(
        selectinload(RecipeORM.ingredients),
        selectinload(RecipeORM.instructions),
        selectinload(RecipeORM.tags),
    )


def _validate_recipe(
    title: str,
    servings: int,
    serving_size: str,
    ingredients: Sequence[Mapping[str, Any]],
    instructions: Sequence[Mapping[str, Any]],
    prep_time_minutes: Optional[int],
    cook_time_minutes: Optional[int],
) -> None:
    title = (title or "").strip()
    if not title:
        raise InvalidArgument("title is required")
    if len(title) > 200:
        raise InvalidArgument("title must be at most 200 characters")
    if servings is None or servings <= 0:
        raise InvalidArgument("servings must be greater than 0")
    if not (serving_size or "").strip():
        raise InvalidArgument("serving_size is required")
    if (prep_time_minutes or 0) < 0 or (cook_time_minutes or 0) < 0:
        raise InvalidArgument("times cannot be negative")
    if not ingredients:
        raise InvalidArgument("at least one ingredient is required")
    if any(not str(ingredient.get("ingredient_name") or "").strip() for ingredient in ingredients):
        raise InvalidArgument("ingredient_name cannot be empty")
    for ingredient in ingredients:
        department = ingredient.get("department") or "other"
        if department not in _DEPARTMENTS:
            raise InvalidArgument(f"unknown department '{department}'")
    if not instructions:
        raise InvalidArgument("at least one instruction is required")


def _replace_children(
    row: RecipeORM,
    ingredients: Sequence[Mapping[str, Any]],
    instructions: Sequence[Mapping[str, Any]],
    tags: Iterable[str],
) -> None:
    row.ingredients = [
        RecipeIngredientORM(
            ingredient_name=str(ingredient["ingredient_name"]).strip(),
            quantity=float(ingredient.get("quantity") or 0.0),
            unit=(ingredient.get("unit") or "").strip(),
            department=ingredient.get("department") or "other",
            nutrition_id=ingredient.get("nutrition_id"),
            order_index=index,
        )
        for index, ingredient in enumerate(ingredients)
    ]
    row.instructions = [
        RecipeInstructionORM(
            step_number=int(step.get("step_number") or index + 1),
            instruction=str(step["instruction"]).strip(),
        )
        for index, step in enumerate(instructions)
    ]
    unique_tags = dict.fromkeys(tag.strip() for tag in tags if tag and tag.strip())
    row.tags = [RecipeTagORM(tag_name=tag) for tag in unique_tags]

def create_recipe(
    *,
    title: str,
    servings: int,
    serving_size: str,
    ingredients: Sequence[Mapping[str, Any]],
    instructions: Sequence[Mapping[str, Any]],
    tags: Iterable[str] = (),
    prep_time_minutes: Optional[int] = None,
    cook_time_minutes: Optional[int] = None,
    source: Optional[str] = None,
    notes: Optional[str] = None,
) -> Recipe:
    """Store a recipe with its ingredients, steps and tags."""

    _validate_recipe(
        title,
        servings,
        serving_size,
        ingredients,
        instructions,
        prep_time_minutes,
        cook_time_minutes,
    )
    with session_scope() as session:
        row = RecipeORM(
            title=title.strip(),
            servings=servings,
            serving_size=serving_size.strip(),
            prep_time_minutes=prep_time_minutes,
            cook_time_minutes=cook_time_minutes,
            total_time_minutes=(prep_time_minutes or 0) + (cook_time_minutes or 0),
            source=source,
            notes=notes,
        )
        _replace_children(row, ingredients, instructions, tags)
        session.add(row)
        session.flush()
        session.refresh(row)
        logger.info("Created recipe id=%s title=%s", row.id, row.title)
        return _to_model(row)


def update_recipe(
    recipe_id: int,
    *,
    title: str,
    servings: int,
    serving_size: str,
    ingredients: Sequence[Mapping[str, Any]],
    instructions: Sequence[Mapping[str, Any]],
    tags: Iterable[str] = (),
    prep_time_minutes: Optional[int] = None,
    cook_time_minutes: Optional[int] = None,
    source: Optional[str] = None,
    notes: Optional[str] = None,
) -> Recipe:
    """Replace a stored recipe wholesale; children are rewritten, the id is kept.

    Grocery lists are not touched here. They pick up the new quantities the next
    time they are regenerated.
    """

    _validate_recipe(
        title,
        servings,
        serving_size,
        ingredients,
        instructions,
        prep_time_minutes,
        cook_time_minutes,
    )
    with session_scope() as session:
        row = session.execute(_recipe_query().where(RecipeORM.id == recipe_id)).scalar_one_or_none()
        if row is None:
            raise NotFound(f"Recipe {recipe_id} not found")
        row.title = title.strip()
        row.servings = servings
        row.serving_size = serving_size.strip()
        row.prep_time_minutes = prep_time_minutes
        row.cook_time_minutes = cook_time_minutes
        row.total_time_minutes = (prep_time_minutes or 0) + (cook_time_minutes or 0)
        row.source = source
        row.notes = notes
        _replace_children(row, ingredients, instructions, tags)
        session.flush()
        session.refresh(row)
        logger.info("Updated recipe id=%s title=%s", row.id, row.title)
        return _to_model(row)


def get_recipe(recipe_id: int) -> Optional[Recipe]:
    with session_scope() as session:
        row = session.execute(_recipe_query().where(RecipeORM.id == recipe_id)).scalar_one_or_none()
        if row is None:
            return None
        return _to_model(row)


def list_recipes(recipe_ids: Optional[Iterable[int]] = None) -> List[Recipe]:
    """Return recipes ordered by title (optionally restricted to ``recipe_ids``)."""

    with session_scope() as session:
        return _load_recipes(session, recipe_ids)


def _load_recipes(session: Session, recipe_ids: Optional[Iterable[int]] = None) -> List[Recipe]:
    query = _recipe_query().order_by(RecipeORM.title.asc(), RecipeORM.id.asc())
    if recipe_ids is not None:
        ids = set(recipe_ids)
        if not ids:
            return []
        query = query.where(RecipeORM.id.in_(ids))
    rows = session.execute(query).scalars().all()
    return [_to_model(row) for row in rows]


def delete_recipe(recipe_id: int) -> None:
    """Delete a recipe. Meal entries keep their slot with no recipe; cookbooks drop it."""

    with session_scope() as session:
        row = session.get(RecipeORM, recipe_id)
        if row is None:
            raise NotFound(f"Recipe {recipe_id} not found")
        detached = session.execute(
            update(MealPlanRecipeORM)
            .where(MealPlanRecipeORM.recipe_id == recipe_id)
            .values(recipe_id=None)
        ).rowcount
        session.execute(delete(CookbookRecipeORM).where(CookbookRecipeORM.recipe_id == recipe_id))
        session.delete(row)
        logger.info("Deleted recipe id=%s (detached from %s meal(s))", recipe_id, detached)


__all__ = [
    "create_recipe",
    "update_recipe",
    "get_recipe",
    "list_recipes",
    "delete_recipe",
]
