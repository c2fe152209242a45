"""Unit tests for grocery list aggregation and regeneration merges."""

from __future__ import annotations

from datetime import date

import pytest

from mise.engine.aggregator import (
    FLAG_MIXED_UNITS,
    FLAG_ZERO_BASE_SERVINGS,
    generate,
    order_items,
)
from mise.errors import InvalidArgument, NotFound
from mise.models.grocery import GroceryList, GroceryListItem
from mise.models.meal_plan import MealPlan, MealPlanRecipe

WEEK = (date(2024, 1, 1), date(2024, 1, 7))


def dinner(recipe_id, servings=None, **kwargs):
    return MealPlanRecipe(meal_type="dinner", recipe_id=recipe_id, servings=servings, **kwargs)


def plan(day, *meals):
    return MealPlan(plan_date=date(2024, 1, day), meals=list(meals))


def persisted(grocery_list: GroceryList) -> GroceryList:
    """Pretend ``grocery_list`` was stored: give it and its items ids."""

    items = [
        item.model_copy(update={"id": index + 1, "grocery_list_id": 1})
        for index, item in enumerate(grocery_list.items)
    ]
    return grocery_list.model_copy(update={"id": 1, "revision": 1, "items": items})


def derived_view(grocery_list: GroceryList):
    return [
        (item.normalized_name, item.quantity, item.unit, item.department, item.status)
        for item in grocery_list.derived_items
    ]


def test_two_dinners_of_flour_consolidate(make_recipe):
    bread = make_recipe("Bread", [("flour", 2, "cup", "pantry")], servings=4)
    plans = [plan(2, dinner(bread.id, 4)), plan(5, dinner(bread.id, 4))]

    result = generate(*WEEK, plans, [bread])

    assert derived_view(result) == [("flour", 4.0, "cup", "pantry", "pending")]
    [item] = result.items
    assert item.is_manual is False
    assert item.source_recipe_id == bread.id
    assert item.flags == []


def test_out_of_kitchen_meal_contributes_nothing(make_recipe):
    stew = make_recipe("Stew", [("beef", 500, "g", "meat")])
    plans = [
        plan(1, MealPlanRecipe(meal_type="dinner", out_of_kitchen=True)),
        plan(2, dinner(stew.id, 4, out_of_kitchen=True)),
    ]

    result = generate(*WEEK, plans, [stew])

    assert result.items == []


def test_meals_without_recipe_are_skipped(make_recipe):
    stew = make_recipe("Stew", [("beef", 500, "g", "meat")])
    plans = [plan(1, MealPlanRecipe(meal_type="lunch"), dinner(stew.id, 4))]

    result = generate(*WEEK, plans, [stew])

    assert derived_view(result) == [("beef", 500.0, "g", "meat", "pending")]


def test_quantities_scale_with_meal_servings(make_recipe):
    curry = make_recipe("Curry", [("rice", 300, "g", "pantry")], servings=4)
    plans = [plan(1, dinner(curry.id, 2)), plan(2, dinner(curry.id))]

    result = generate(*WEEK, plans, [curry])

    # 2/4 of the recipe on day one, the recipe's own 4 servings on day two.
    assert derived_view(result) == [("rice", 450.0, "g", "pantry", "pending")]


def test_zero_base_servings_is_unscaled_and_flagged(make_recipe):
    odd = make_recipe("Odd", [("salt", 1, "tsp", "spices")], servings=0)
    plans = [plan(3, dinner(odd.id, 6))]

    [item] = generate(*WEEK, plans, [odd]).items

    assert item.quantity == 1.0
    assert item.flags == [FLAG_ZERO_BASE_SERVINGS]


def test_units_in_one_family_are_converted_to_first_seen_unit(make_recipe):
    cake = make_recipe("Cake", [("sugar", 1, "cup", "pantry")], servings=1)
    cookies = make_recipe("Cookies", [("Sugar", 8, "tablespoons", "pantry")], servings=1)
    plans = [plan(1, dinner(cake.id, 1)), plan(2, dinner(cookies.id, 1))]

    [item] = generate(*WEEK, plans, [cake, cookies]).items

    assert item.unit == "cup"
    assert item.unit_family == "volume"
    assert item.quantity == pytest.approx(1.5)


def test_tablespoon_and_teaspoon_shorthands_are_not_summed_as_one_unit(make_recipe):
    cake = make_recipe("Cake", [("sugar", 1, "T", "pantry")], servings=1)
    tea = make_recipe("Tea", [("sugar", 1, "t", "pantry")], servings=1)
    plans = [plan(1, dinner(cake.id, 1), dinner(tea.id, 1))]

    [item] = generate(*WEEK, plans, [cake, tea]).items

    assert item.unit == "T"
    assert item.unit_family == "volume"
    assert item.quantity == pytest.approx(1.333, abs=1e-3)


def test_different_unit_families_stay_separate_and_flagged(make_recipe):
    bread = make_recipe("Bread", [("flour", 2, "cup", "pantry")], servings=1)
    pasta = make_recipe("Pasta", [("flour", 200, "g", "pantry")], servings=1)
    plans = [plan(1, dinner(bread.id, 1)), plan(2, dinner(pasta.id, 1))]

    items = generate(*WEEK, plans, [bread, pasta]).items

    assert sorted((item.unit_family, item.quantity) for item in items) == [
        ("volume", 2.0),
        ("weight", 200.0),
    ]
    assert all(item.flags == [FLAG_MIXED_UNITS] for item in items)
    assert len({item.key for item in items}) == 2


def test_unrecognized_units_group_by_exact_unit(make_recipe):
    soup = make_recipe("Soup", [("garlic", 2, "cloves", "produce"), ("garlic", 1, "head", "produce")])
    plans = [plan(1, dinner(soup.id, 4)), plan(2, dinner(soup.id, 4))]

    items = generate(*WEEK, plans, [soup]).items

    assert sorted((item.unit_family, item.quantity) for item in items) == [
        ("other:clove", 4.0),
        ("other:head", 2.0),
    ]


def test_department_majority_with_first_seen_tie_break(make_recipe):
    a = make_recipe("A", [("butter", 1, "tbsp", "dairy"), ("nuts", 1, "cup", "pantry")], servings=1)
    b = make_recipe("B", [("butter", 1, "tbsp", "pantry"), ("nuts", 1, "cup", "produce")], servings=1)
    c = make_recipe("C", [("butter", 1, "tbsp", "pantry")], servings=1)
    plans = [plan(1, dinner(a.id, 1), dinner(b.id, 1), dinner(c.id, 1))]

    items = {item.normalized_name: item for item in generate(*WEEK, plans, [a, b, c]).items}

    assert items["butter"].department == "pantry"
    assert items["butter"].quantity == 3.0
    assert items["nut"].department == "pantry"


def test_items_ordered_by_department_then_name(make_recipe):
    recipe = make_recipe(
        "Everything",
        [
            ("soda", 1, "l", "beverages"),
            ("tomato", 2, "", "produce"),
            ("chicken", 1, "lb", "meat"),
            ("apple", 3, "", "produce"),
            ("paper towel", 1, "", "other"),
            ("milk", 1, "l", "dairy"),
        ],
    )
    result = generate(*WEEK, [plan(1, dinner(recipe.id, 4))], [recipe])

    assert [(item.department, item.normalized_name) for item in result.items] == [
        ("produce", "apple"),
        ("produce", "tomato"),
        ("meat", "chicken"),
        ("dairy", "milk"),
        ("beverages", "soda"),
        ("other", "paper towel"),
    ]


def test_regeneration_carries_status_and_manual_items(make_recipe):
    bread = make_recipe("Bread", [("flour", 2, "cup", "pantry"), ("yeast", 1, "tsp", "pantry")])
    plans = [plan(1, dinner(bread.id, 4))]
    first = persisted(generate(*WEEK, plans, [bread]))

    flour = next(item for item in first.items if item.normalized_name == "flour")
    manual = GroceryListItem(
        id=99,
        grocery_list_id=1,
        item_name="Dish soap",
        normalized_name="dish soap",
        department="other",
        is_manual=True,
        status="bought",
    )
    existing = first.model_copy(
        update={
            "items": [
                item.model_copy(update={"status": "bought"}) if item.id == flour.id else item
                for item in first.items
            ]
            + [manual]
        }
    )

    # Yeast drops out, butter is new.
    bread_v2 = make_recipe(
        "Bread",
        [("flour", 2, "cup", "pantry"), ("butter", 1, "tbsp", "dairy")],
        recipe_id=bread.id,
    )
    regenerated = generate(*WEEK, plans, [bread_v2], existing)

    by_name = {item.normalized_name: item for item in regenerated.items}
    assert set(by_name) == {"flour", "butter", "dish soap"}
    assert by_name["flour"].status == "bought"
    assert by_name["flour"].id == flour.id
    assert by_name["butter"].status == "pending"
    assert by_name["butter"].id is None
    assert by_name["dish soap"] == manual
    assert regenerated.id == existing.id
    assert regenerated.revision == existing.revision


def test_regeneration_is_idempotent(make_recipe):
    bread = make_recipe("Bread", [("flour", 2, "cup", "pantry"), ("salt", 1, "tsp", "spices")])
    plans = [plan(1, dinner(bread.id, 4)), plan(4, dinner(bread.id, 2))]

    first = persisted(generate(*WEEK, plans, [bread]))
    second = generate(*WEEK, plans, [bread], first)

    assert second.items == first.items


def test_no_meals_yields_empty_list_but_keeps_manual_items():
    manual = GroceryListItem(
        id=5, grocery_list_id=1, item_name="Coffee", normalized_name="coffee", is_manual=True
    )
    existing = GroceryList(id=1, owner="default", start_date=WEEK[0], end_date=WEEK[1], items=[manual])

    result = generate(*WEEK, [], [], existing)

    assert result.items == [manual]


def test_plans_outside_range_are_ignored(make_recipe):
    bread = make_recipe("Bread", [("flour", 2, "cup", "pantry")])
    plans = [MealPlan(plan_date=date(2024, 1, 8), meals=[dinner(bread.id, 4)])]

    assert generate(*WEEK, plans, [bread]).items == []


def test_missing_recipe_is_not_found():
    with pytest.raises(NotFound):
        generate(*WEEK, [plan(1, dinner(42, 2))], [])


def test_inverted_range_is_invalid():
    with pytest.raises(InvalidArgument):
        generate(date(2024, 1, 7), date(2024, 1, 1), [], [])


def test_existing_list_must_cover_same_range():
    existing = GroceryList(id=1, owner="default", start_date=date(2024, 1, 1), end_date=date(2024, 1, 3))
    with pytest.raises(InvalidArgument):
        generate(*WEEK, [], [], existing)


def test_order_items_puts_derived_before_manual_for_same_name():
    derived = GroceryListItem(id=2, item_name="Milk", normalized_name="milk", department="dairy")
    manual = GroceryListItem(
        id=1, item_name="milk", normalized_name="milk", department="dairy", is_manual=True
    )
    assert order_items([manual, derived]) == [derived, manual]
