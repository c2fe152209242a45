"""Grocery list persistence helpers.

Every write to a list bumps ``grocery_lists.revision``. :func:`save_grocery_list`
writes a regenerated list back only if the revision still matches the one it was
computed from, which serializes regenerations against each other and against
status/manual-item edits without holding a lock across the computation.
"""
# mypy: ignore-errors

from __future__ import annotations

import json
import logging
from datetime import date
from typing import List, Optional, get_args

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from mise.engine.aggregator import order_items
from mise.engine.normalizer import get_normalizer
from mise.errors import InvalidArgument, NotFound, RevisionConflict
from mise.models.grocery import GroceryList, GroceryListItem, ItemStatus
from mise.models.recipe import Department

from .models import GroceryListItemORM, GroceryListORM
from .repository import session_scope

logger = logging.getLogger(__name__)

_STATUSES = frozenset(get_args(ItemStatus))
_DEPARTMENTS = frozenset(get_args(Department))


def _to_item(row: GroceryListItemORM) -> GroceryListItem:
    return GroceryListItem.model_validate(
        {
            "id": row.id,
            "grocery_list_id": row.grocery_list_id,
            "item_name": row.item_name,
            "normalized_name": row.normalized_name,
            "quantity": row.quantity,
            "unit": row.unit,
            "unit_family": row.unit_family,
            "department": row.department,
            "status": row.status,
            "is_manual": row.is_manual,
            "source_recipe_id": row.source_recipe_id,
            "flags": json.loads(row.flags) if row.flags else [],
        }
    )


def _to_model(row: GroceryListORM) -> GroceryList:
    return GroceryList.model_validate(
        {
            "id": row.id,
            "owner": row.owner,
            "start_date": row.start_date,
            "end_date": row.end_date,
            "revision": row.revision,
            "items": order_items(_to_item(item) for item in row.items),
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _item_row(grocery_list_id: int, item: GroceryListItem) -> GroceryListItemORM:
    return GroceryListItemORM(
        grocery_list_id=grocery_list_id,
        item_name=item.item_name,
        normalized_name=item.normalized_name,
        quantity=item.quantity,
        unit=item.unit,
        unit_family=item.unit_family,
        department=item.department,
        status=item.status,
        is_manual=item.is_manual,
        source_recipe_id=item.source_recipe_id,
        flags=json.dumps(item.flags) if item.flags else None,
    )


def _load_list(session: Session, grocery_list_id: int) -> Optional[GroceryListORM]:
    return session.execute(
        select(GroceryListORM)
        .options(selectinload(GroceryListORM.items))
        .where(GroceryListORM.id == grocery_list_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _bump_revision(session: Session, grocery_list_id: int) -> None:
    session.execute(
        update(GroceryListORM)
        .where(GroceryListORM.id == grocery_list_id)
        .values(revision=GroceryListORM.revision + 1, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )


def get_grocery_list(grocery_list_id: int) -> Optional[GroceryList]:
    with session_scope() as session:
        row = _load_list(session, grocery_list_id)
        if row is None:
            return None
        return _to_model(row)


def find_grocery_list(owner: str, start_date: date, end_date: date) -> Optional[GroceryList]:
    """Return the owner's list for exactly ``[start_date, end_date]``, if any."""

    with session_scope() as session:
        row = session.execute(
            select(GroceryListORM)
            .options(selectinload(GroceryListORM.items))
            .where(
                GroceryListORM.owner == owner,
                GroceryListORM.start_date == start_date,
                GroceryListORM.end_date == end_date,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return _to_model(row)


def list_grocery_lists(owner: str) -> List[GroceryList]:
    """Return the owner's lists, most recent range first."""

    with session_scope() as session:
        rows = (
            session.execute(
                select(GroceryListORM)
                .options(selectinload(GroceryListORM.items))
                .where(GroceryListORM.owner == owner)
                .order_by(GroceryListORM.start_date.desc(), GroceryListORM.id.desc())
            )
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


def delete_grocery_list(grocery_list_id: int) -> None:
    with session_scope() as session:
        row = session.get(GroceryListORM, grocery_list_id)
        if row is None:
            raise NotFound(f"Grocery list {grocery_list_id} not found")
        session.delete(row)


def save_grocery_list(grocery_list: GroceryList) -> GroceryList:
    """Persist a generated list.

    New lists (``id is None``) are inserted at revision 1. Existing lists are written
    only if their stored revision still equals ``grocery_list.revision``; derived rows
    are reconciled by id and manual rows are left alone. Raises
    :class:`RevisionConflict` when the stored list moved on or a concurrent insert for
    the same owner and range won.
    """

    if grocery_list.id is None:
        return _insert_list(grocery_list)

    with session_scope() as session:
        result = session.execute(
            update(GroceryListORM)
            .where(
                GroceryListORM.id == grocery_list.id,
                GroceryListORM.revision == grocery_list.revision,
            )
            .values(revision=GroceryListORM.revision + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise RevisionConflict(
                f"Grocery list {grocery_list.id} changed since revision {grocery_list.revision}"
            )

        stored = {
            row.id: row
            for row in session.execute(
                select(GroceryListItemORM).where(
                    GroceryListItemORM.grocery_list_id == grocery_list.id,
                    GroceryListItemORM.is_manual.is_(False),
                )
            ).scalars()
        }
        keep = {item.id for item in grocery_list.derived_items if item.id is not None}
        for item_id, row in stored.items():
            if item_id not in keep:
                session.delete(row)

        for item in grocery_list.derived_items:
            row = stored.get(item.id) if item.id is not None else None
            if row is None:
                session.add(_item_row(grocery_list.id, item))
                continue
            row.item_name = item.item_name
            row.quantity = item.quantity
            row.unit = item.unit
            row.status = item.status
            row.source_recipe_id = item.source_recipe_id
            row.flags = json.dumps(item.flags) if item.flags else None

        session.flush()
        saved = _load_list(session, grocery_list.id)
        logger.debug(
            "Wrote grocery list %s at revision %s (%s stale derived item(s) removed)",
            saved.id,
            saved.revision,
            len(set(stored) - keep),
        )
        return _to_model(saved)


def _insert_list(grocery_list: GroceryList) -> GroceryList:
    try:
        with session_scope() as session:
            row = GroceryListORM(
                owner=grocery_list.owner,
                start_date=grocery_list.start_date,
                end_date=grocery_list.end_date,
                revision=1,
            )
            session.add(row)
            session.flush()
            for item in grocery_list.items:
                session.add(_item_row(row.id, item))
            session.flush()
            saved = _load_list(session, row.id)
            return _to_model(saved)
    except IntegrityError as exc:
        raise RevisionConflict(
            f"Grocery list for {grocery_list.owner} "
            f"{grocery_list.start_date}..{grocery_list.end_date} already exists"
        ) from exc


def add_manual_item(
    grocery_list_id: int,
    *,
    item_name: str,
    quantity: Optional[float] = None,
    unit: Optional[str] = None,
    department: Optional[str] = None,
) -> GroceryListItem:
    """Append a user-entered item; regeneration never touches it."""

    name = (item_name or "").strip()
    if not name:
        raise InvalidArgument("item_name is required")
    department = department or "other"
    if department not in _DEPARTMENTS:
        raise InvalidArgument(f"unknown department '{department}'")
    if quantity is not None and quantity < 0:
        raise InvalidArgument("quantity cannot be negative")

    normalizer = get_normalizer()
    unit = unit.strip() if unit else None
    with session_scope() as session:
        if session.get(GroceryListORM, grocery_list_id) is None:
            raise NotFound(f"Grocery list {grocery_list_id} not found")
        row = GroceryListItemORM(
            grocery_list_id=grocery_list_id,
            item_name=name,
            normalized_name=normalizer.normalize(name),
            quantity=float(quantity) if quantity is not None else None,
            unit=unit,
            unit_family=normalizer.normalize_unit(unit).key if unit else None,
            department=department,
            status="pending",
            is_manual=True,
        )
        session.add(row)
        _bump_revision(session, grocery_list_id)
        session.flush()
        return _to_item(row)


def get_grocery_item(item_id: int) -> Optional[GroceryListItem]:
    with session_scope() as session:
        row = session.get(GroceryListItemORM, item_id)
        if row is None:
            return None
        return _to_item(row)


def update_item_status(item_id: int, status: str) -> GroceryListItem:
    if status not in _STATUSES:
        raise InvalidArgument(f"unknown status '{status}'")

    with session_scope() as session:
        row = session.get(GroceryListItemORM, item_id)
        if row is None:
            raise NotFound(f"Grocery list item {item_id} not found")
        row.status = status
        _bump_revision(session, row.grocery_list_id)
        session.flush()
        return _to_item(row)


__all__ = [
    "add_manual_item",
    "delete_grocery_list",
    "find_grocery_list",
    "get_grocery_item",
    "get_grocery_list",
    "list_grocery_lists",
    "save_grocery_list",
    "update_item_status",
]
