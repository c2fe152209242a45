"""Unit tests for the recommendation scorer."""

from __future__ import annotations

import pytest

from mise.engine.normalizer import normalize
from mise.engine.scorer import normalize_pantry, recommend
from mise.errors import InvalidArgument


def test_two_of_three_ingredients_scores_two_thirds(make_recipe):
    recipe = make_recipe("Pancakes", ["egg", "milk", "flour"])

    [result] = recommend(["egg", "milk"], [recipe])

    assert result.match_score == pytest.approx(66.67, abs=0.01)
    assert result.match_percent == 67
    assert result.matched_ingredients == ["egg", "milk"]
    assert result.missing_ingredients == ["flour"]
    assert result.recipe.id == recipe.id


def test_matched_and_missing_partition_distinct_ingredients(make_recipe):
    recipe = make_recipe(
        "Frittata", ["Eggs", "egg", "Spinach", "Feta Cheese", "scallions", "Olive Oil"]
    )

    [result] = recommend(["egg", "green onion", "olive oil"], [recipe])

    matched = {normalize(name) for name in result.matched_ingredients}
    missing = {normalize(name) for name in result.missing_ingredients}
    distinct = {normalize(ingredient.ingredient_name) for ingredient in recipe.ingredients}
    assert matched | missing == distinct
    assert not matched & missing
    # Duplicates count once and report the first spelling.
    assert result.matched_ingredients == ["Eggs", "scallions", "Olive Oil"]
    assert result.match_score == pytest.approx(60.0)


def test_full_coverage_scores_one_hundred(make_recipe):
    recipe = make_recipe("Toast", ["bread", "butter"])

    [result] = recommend(["Butter", "Bread", "jam"], [recipe])

    assert result.match_score == 100
    assert result.missing_ingredients == []


def test_results_sorted_by_score_then_matched_count_then_title(make_recipe):
    small = make_recipe("Zesty Salad", ["lettuce", "radish"])
    large = make_recipe("Big Salad", ["lettuce", "tomato", "radish", "cucumber"])
    banana = make_recipe("Banana Bread", ["banana", "flour"])
    apple = make_recipe("Apple Cake", ["apple", "flour"])
    full = make_recipe("Plain Lettuce", ["lettuce"])

    pantry = ["lettuce", "tomato", "flour"]
    results = recommend(pantry, [small, large, banana, apple, full])

    assert [rec.recipe.title for rec in results] == [
        "Plain Lettuce",
        "Big Salad",
        "Apple Cake",
        "Banana Bread",
        "Zesty Salad",
    ]
    assert recommend(pantry, [small, large, banana, apple, full]) == results


def test_recipes_without_ingredients_are_excluded(make_recipe):
    empty = make_recipe("Air", [])
    soup = make_recipe("Soup", ["water", "salt"])

    results = recommend(["salt"], [empty, soup])

    assert [rec.recipe.title for rec in results] == ["Soup"]


def test_unmatched_recipes_can_be_dropped(make_recipe):
    soup = make_recipe("Soup", ["water", "salt"])
    cake = make_recipe("Cake", ["flour", "sugar"])

    assert len(recommend(["salt"], [soup, cake])) == 2
    kept = recommend(["salt"], [soup, cake], include_unmatched=False)
    assert [rec.recipe.title for rec in kept] == ["Soup"]


def test_empty_catalog_returns_empty_list():
    assert recommend(["egg"], []) == []


def test_empty_pantry_is_invalid(make_recipe):
    with pytest.raises(InvalidArgument):
        recommend([], [make_recipe("Toast", ["bread"])])


def test_blank_pantry_entry_is_invalid():
    with pytest.raises(InvalidArgument):
        normalize_pantry(["egg", "  "])
