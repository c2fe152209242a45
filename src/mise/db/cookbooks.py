"""Cookbook persistence helpers."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from mise.errors import InvalidArgument, NotFound
from mise.models.cookbook import Cookbook

from .models import CookbookORM, CookbookRecipeORM, RecipeORM
from .recipes import _load_recipes
from .repository import session_scope

logger = logging.getLogger(__name__)


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("name is required")
    if len(name) > 200:
        raise InvalidArgument("name must be at most 200 characters")
    return name


def _to_model(session: Session, row: CookbookORM) -> Cookbook:
    recipe_ids = [entry.recipe_id for entry in row.entries]
    return Cookbook(
        id=row.id,
        owner=row.owner,
        name=row.name,
        description=row.description,
        recipes=_load_recipes(session, recipe_ids),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _load_cookbook(session: Session, cookbook_id: int) -> Optional[CookbookORM]:
    return session.execute(
        select(CookbookORM)
        .options(selectinload(CookbookORM.entries))
        .where(CookbookORM.id == cookbook_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def create_cookbook(owner: str, *, name: str, description: Optional[str] = None) -> Cookbook:
    name = _validate_name(name)
    with session_scope() as session:
        row = CookbookORM(owner=owner, name=name, description=description)
        session.add(row)
        session.flush()
        session.refresh(row)
        logger.info("Created cookbook id=%s for %s", row.id, owner)
        return _to_model(session, row)


def get_cookbook(cookbook_id: int) -> Optional[Cookbook]:
    with session_scope() as session:
        row = _load_cookbook(session, cookbook_id)
        if row is None:
            return None
        return _to_model(session, row)


def list_cookbooks(owner: str) -> List[Cookbook]:
    """Return the owner's cookbooks ordered by name."""

    with session_scope() as session:
        rows = (
            session.execute(
                select(CookbookORM)
                .options(selectinload(CookbookORM.entries))
                .where(CookbookORM.owner == owner)
                .order_by(CookbookORM.name.asc(), CookbookORM.id.asc())
            )
            .scalars()
            .all()
        )
        return [_to_model(session, row) for row in rows]


def update_cookbook(
    cookbook_id: int, *, name: str, description: Optional[str] = None
) -> Cookbook:
    name = _validate_name(name)
    with session_scope() as session:
        row = _load_cookbook(session, cookbook_id)
        if row is None:
            raise NotFound(f"Cookbook {cookbook_id} not found")
        row.name = name
        row.description = description
        session.flush()
        session.refresh(row)
        return _to_model(session, row)


def delete_cookbook(cookbook_id: int) -> None:
    """Delete a cookbook; its recipes stay in the catalog."""

    with session_scope() as session:
        row = session.get(CookbookORM, cookbook_id)
        if row is None:
            raise NotFound(f"Cookbook {cookbook_id} not found")
        session.delete(row)


def add_recipe_to_cookbook(cookbook_id: int, recipe_id: int) -> Cookbook:
    """Add ``recipe_id`` to the cookbook; adding a member again is a no-op."""

    with session_scope() as session:
        row = _load_cookbook(session, cookbook_id)
        if row is None:
            raise NotFound(f"Cookbook {cookbook_id} not found")
        if session.get(RecipeORM, recipe_id) is None:
            raise NotFound(f"Recipe {recipe_id} not found")
        if all(entry.recipe_id != recipe_id for entry in row.entries):
            row.entries.append(CookbookRecipeORM(recipe_id=recipe_id))
            session.flush()
        return _to_model(session, _load_cookbook(session, cookbook_id))


def remove_recipe_from_cookbook(cookbook_id: int, recipe_id: int) -> Cookbook:
    with session_scope() as session:
        if session.get(CookbookORM, cookbook_id) is None:
            raise NotFound(f"Cookbook {cookbook_id} not found")
        removed = session.execute(
            delete(CookbookRecipeORM)
            .where(
                CookbookRecipeORM.cookbook_id == cookbook_id,
                CookbookRecipeORM.recipe_id == recipe_id,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        if not removed:
            raise NotFound(f"Recipe {recipe_id} is not in cookbook {cookbook_id}")
        return _to_model(session, _load_cookbook(session, cookbook_id))


__all__ = [
    "add_recipe_to_cookbook",
    "create_cookbook",
    "delete_cookbook",
    "get_cookbook",
    "list_cookbooks",
    "remove_recipe_from_cookbook",
    "update_cookbook",
]
