"""Tests for cookbook persistence helpers."""

from __future__ import annotations

import pytest

from mise.db.cookbooks import (
    add_recipe_to_cookbook,
    create_cookbook,
    delete_cookbook,
    get_cookbook,
    list_cookbooks,
    remove_recipe_from_cookbook,
    update_cookbook,
)
from mise.db.recipes import delete_recipe, get_recipe
from mise.errors import InvalidArgument, NotFound


def test_create_list_and_update_cookbooks():
    soups = create_cookbook("alex", name="  Soups ", description="Winter")
    create_cookbook("alex", name="Baking")
    create_cookbook("sam", name="Salads")

    assert soups.name == "Soups"
    assert soups.recipe_count == 0
    assert [cookbook.name for cookbook in list_cookbooks("alex")] == ["Baking", "Soups"]

    renamed = update_cookbook(soups.id, name="Stews")
    assert (renamed.name, renamed.description) == ("Stews", None)
    assert get_cookbook(soups.id) == renamed


@pytest.mark.parametrize("name", ["", "   ", "x" * 201])
def test_cookbook_names_are_validated(name):
    with pytest.raises(InvalidArgument):
        create_cookbook("alex", name=name)


def test_membership_is_idempotent_and_follows_recipe_deletion(stored_recipe):
    soup = stored_recipe("Soup", [{"ingredient_name": "water"}])
    bread = stored_recipe("Bread", [{"ingredient_name": "flour"}])
    cookbook = create_cookbook("alex", name="Basics")

    add_recipe_to_cookbook(cookbook.id, soup.id)
    add_recipe_to_cookbook(cookbook.id, soup.id)
    filled = add_recipe_to_cookbook(cookbook.id, bread.id)
    assert [recipe.title for recipe in filled.recipes] == ["Bread", "Soup"]

    delete_recipe(bread.id)
    assert [recipe.id for recipe in get_cookbook(cookbook.id).recipes] == [soup.id]

    emptied = remove_recipe_from_cookbook(cookbook.id, soup.id)
    assert emptied.recipe_count == 0
    with pytest.raises(NotFound):
        remove_recipe_from_cookbook(cookbook.id, soup.id)

    delete_cookbook(cookbook.id)
    assert get_cookbook(cookbook.id) is None
    assert get_recipe(soup.id) is not None


def test_missing_cookbook_or_recipe_raises(stored_recipe):
    soup = stored_recipe("Soup", [{"ingredient_name": "water"}])
    cookbook = create_cookbook("alex", name="Basics")

    with pytest.raises(NotFound):
        add_recipe_to_cookbook(cookbook.id + 1, soup.id)
    with pytest.raises(NotFound):
        add_recipe_to_cookbook(cookbook.id, soup.id + 1)
    with pytest.raises(NotFound):
        update_cookbook(cookbook.id + 1, name="Other")
    with pytest.raises(NotFound):
        delete_cookbook(cookbook.id + 1)
