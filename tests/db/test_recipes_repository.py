"""Unit tests for the recipe repository helpers."""

from __future__ import annotations

from datetime import date

import pytest

from mise.db.meal_plans import get_meal_plan, save_meal_plan
from mise.db.recipes import create_recipe, delete_recipe, get_recipe, list_recipes, update_recipe
from mise.errors import InvalidArgument, NotFound


def test_create_and_fetch_recipe_round_trips_children():
    created = create_recipe(
        title="  Shakshuka ",
        servings=2,
        serving_size="1 skillet",
        prep_time_minutes=10,
        cook_time_minutes=20,
        ingredients=[
            {"ingredient_name": "eggs", "quantity": 4, "unit": "", "department": "dairy"},
            {"ingredient_name": "crushed tomatoes", "quantity": 1, "unit": "can", "department": "pantry"},
        ],
        instructions=[
            {"instruction": "Simmer the tomatoes."},
            {"instruction": "Crack in the eggs."},
        ],
        tags=["breakfast", "vegetarian", "breakfast"],
    )

    assert created.id
    assert created.title == "Shakshuka"
    assert created.total_time_minutes == 30
    assert created.tags == ["breakfast", "vegetarian"]
    assert [step.step_number for step in created.instructions] == [1, 2]

    fetched = get_recipe(created.id)
    assert fetched == created
    assert [ingredient.ingredient_name for ingredient in fetched.ingredients] == [
        "eggs",
        "crushed tomatoes",
    ]
    assert fetched.ingredients[1].department == "pantry"


def test_list_recipes_orders_by_title_and_filters_ids(stored_recipe):
    soup = stored_recipe("Soup", [{"ingredient_name": "water"}])
    apple = stored_recipe("Apple Pie", [{"ingredient_name": "apple"}])

    assert [recipe.title for recipe in list_recipes()] == ["Apple Pie", "Soup"]
    assert [recipe.id for recipe in list_recipes([soup.id])] == [soup.id]
    assert list_recipes([]) == []
    assert apple.ingredients[0].department == "other"


def test_get_missing_recipe_returns_none():
    assert get_recipe(404) is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"title": "x" * 201},
        {"servings": 0},
        {"serving_size": ""},
        {"prep_time_minutes": -1},
        {"ingredients": []},
        {"ingredients": [{"ingredient_name": " "}]},
        {"instructions": []},
    ],
)
def test_create_recipe_rejects_invalid_payloads(overrides):
    payload = {
        "title": "Toast",
        "servings": 1,
        "serving_size": "1 slice",
        "ingredients": [{"ingredient_name": "bread"}],
        "instructions": [{"instruction": "Toast it."}],
    }
    payload.update(overrides)
    with pytest.raises(InvalidArgument):
        create_recipe(**payload)


def test_delete_recipe_detaches_meal_plan_entries(stored_recipe):
    recipe = stored_recipe("Chili", [{"ingredient_name": "beans"}])
    day = date(2024, 3, 1)
    save_meal_plan(day, [{"meal_type": "dinner", "recipe_id": recipe.id, "servings": 2}])

    delete_recipe(recipe.id)

    assert get_recipe(recipe.id) is None
    [meal] = get_meal_plan(day).meals
    assert meal.recipe_id is None
    assert meal.servings == 2


def test_delete_missing_recipe_raises():
    with pytest.raises(NotFound):
        delete_recipe(999)


def test_update_recipe_replaces_fields_and_children(stored_recipe):
    recipe = stored_recipe("Chili", [{"ingredient_name": "beans", "quantity": 2}], tags=("spicy",))

    updated = update_recipe(
        recipe.id,
        title="Mild Chili",
        servings=6,
        serving_size="1 bowl",
        cook_time_minutes=45,
        ingredients=[
            {"ingredient_name": "beans", "quantity": 3, "unit": "can", "department": "pantry"},
            {"ingredient_name": "onion", "quantity": 1, "department": "produce"},
        ],
        instructions=[{"instruction": "Simmer."}],
        tags=["weeknight"],
    )

    assert updated.id == recipe.id
    assert (updated.title, updated.servings, updated.total_time_minutes) == ("Mild Chili", 6, 45)
    assert [(line.ingredient_name, line.quantity) for line in updated.ingredients] == [
        ("beans", 3.0),
        ("onion", 1.0),
    ]
    assert updated.tags == ["weeknight"]
    assert get_recipe(recipe.id) == updated


def test_update_recipe_validates_and_requires_existing_recipe(stored_recipe):
    recipe = stored_recipe("Chili", [{"ingredient_name": "beans"}])
    payload = {
        "title": "Chili",
        "servings": 2,
        "serving_size": "1 bowl",
        "ingredients": [{"ingredient_name": "beans"}],
        "instructions": [{"instruction": "Simmer."}],
    }

    with pytest.raises(InvalidArgument):
        update_recipe(recipe.id, **{**payload, "ingredients": []})
    assert get_recipe(recipe.id).ingredients[0].ingredient_name == "beans"

    with pytest.raises(NotFound):
        update_recipe(recipe.id + 1, **payload)
