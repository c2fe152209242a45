"""Shared pytest fixtures for the Mise test suite."""

from __future__ import annotations

from typing import Callable, Dict, Generator, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mise.config import get_settings
from mise.db.recipes import create_recipe
from mise.db.repository import reset_repository_state
from mise.engine.normalizer import get_normalizer
from mise.models.recipe import Recipe, RecipeIngredient
from mise.server.app import create_app


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def auth_headers() -> Callable[[], Dict[str, str]]:
    """Headers carrying the configured API token, if any."""

    def _headers() -> Dict[str, str]:
        token = get_settings().api_token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def make_recipe() -> Callable[..., Recipe]:
    """Build in-memory recipes from names or ``(name, quantity, unit, department)`` tuples."""

    counter = {"next_id": 1}

    def _make(
        title: str,
        ingredients: List[tuple],
        *,
        servings: int = 4,
        recipe_id: Optional[int] = None,
    ) -> Recipe:
        if recipe_id is None:
            recipe_id = counter["next_id"]
        counter["next_id"] = max(counter["next_id"], recipe_id) + 1
        defaults = (None, 1.0, "", "other")
        lines = []
        for index, entry in enumerate(ingredients):
            entry = (entry,) if isinstance(entry, str) else tuple(entry)
            name, quantity, unit, department = entry + defaults[len(entry):]
            lines.append(
                RecipeIngredient(
                    ingredient_name=name,
                    quantity=quantity,
                    unit=unit,
                    department=department,
                    order_index=index,
                )
            )
        return Recipe(id=recipe_id, title=title, servings=servings, ingredients=lines)

    return _make


@pytest.fixture()
def stored_recipe() -> Callable[..., Recipe]:
    """Persist a recipe with sensible defaults and return it."""

    def _store(
        title: str,
        ingredients: List[dict],
        *,
        servings: int = 4,
        tags: tuple = (),
    ) -> Recipe:
        return create_recipe(
            title=title,
            servings=servings,
            serving_size="1 plate",
            ingredients=ingredients,
            instructions=[{"instruction": f"Make the {title.lower()}."}],
            tags=tags,
        )

    return _store


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_mise.db"
    monkeypatch.setenv("MISE_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("MISE_API_TOKEN", raising=False)
    get_settings.cache_clear()
    get_normalizer.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("MISE_DATABASE_PATH", raising=False)
    get_settings.cache_clear()
    get_normalizer.cache_clear()
