"""Rank recipes by how much of each one a pantry already covers."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from mise.errors import InvalidArgument
from mise.models.menu import RecipeRecommendation
from mise.models.recipe import Recipe

from .normalizer import IngredientNormalizer, get_normalizer

logger = logging.getLogger(__name__)


def normalize_pantry(
    pantry: Sequence[str], normalizer: Optional[IngredientNormalizer] = None
) -> set[str]:
    """Validate pantry entries and return their normalized names."""

    if not pantry:
        raise InvalidArgument("at least one ingredient is required")
    normalizer = normalizer or get_normalizer()
    normalized: set[str] = set()
    for entry in pantry:
        key = normalizer.normalize(entry or "")
        if not key:
            raise InvalidArgument("ingredient names cannot be empty")
        normalized.add(key)
    return normalized


def score_recipe(
    recipe: Recipe, pantry_keys: set[str], normalizer: IngredientNormalizer
) -> Optional[RecipeRecommendation]:
    """Partition a recipe's distinct ingredients into matched and missing.

    Returns ``None`` for recipes without ingredients, whose score is undefined.
    """

    matched: List[str] = []
    missing: List[str] = []
    seen: set[str] = set()
    for ingredient in recipe.ingredients:
        key = normalizer.normalize(ingredient.ingredient_name)
        if not key or key in seen:
            continue
        seen.add(key)
        original = ingredient.ingredient_name.strip()
        if key in pantry_keys:
            matched.append(original)
        else:
            missing.append(original)

    if not seen:
        return None

    return RecipeRecommendation(
        recipe=recipe,
        match_score=100.0 * len(matched) / len(seen),
        matched_ingredients=matched,
        missing_ingredients=missing,
    )


def rank(recommendations: Iterable[RecipeRecommendation]) -> List[RecipeRecommendation]:
    """Score desc, then matched count desc, then title asc."""

    return sorted(
        recommendations,
        key=lambda rec: (
            -rec.match_score,
            -len(rec.matched_ingredients),
            rec.recipe.title,
            rec.recipe.id,
        ),
    )


def recommend(
    pantry: Sequence[str],
    recipes: Iterable[Recipe],
    *,
    include_unmatched: bool = True,
    normalizer: Optional[IngredientNormalizer] = None,
) -> List[RecipeRecommendation]:
    """Rank ``recipes`` against ``pantry``.

    Recipes with no ingredients are skipped. With ``include_unmatched=False`` recipes
    sharing nothing with the pantry are dropped as well.
    """

    normalizer = normalizer or get_normalizer()
    pantry_keys = normalize_pantry(pantry, normalizer)

    scored: List[RecipeRecommendation] = []
    skipped = 0
    for recipe in recipes:
        recommendation = score_recipe(recipe, pantry_keys, normalizer)
        if recommendation is None:
            skipped += 1
            continue
        if not include_unmatched and not recommendation.matched_ingredients:
            continue
        scored.append(recommendation)

    if skipped:
        logger.debug("Skipped %s recipe(s) without ingredients", skipped)
    return rank(scored)


__all__ = ["normalize_pantry", "rank", "recommend", "score_recipe"]
