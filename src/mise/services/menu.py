"""Recipe recommendations against the stored catalog."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from mise import metrics
from mise.config import get_settings
from mise.db.recipes import list_recipes
from mise.engine.scorer import recommend
from mise.models.menu import RecommendationMeta, RecommendationResponse
from mise.models.recipe import Recipe

logger = logging.getLogger(__name__)


def recommend_from_catalog(
    ingredients: Sequence[str],
    *,
    include_unmatched: Optional[bool] = None,
    recipes: Optional[Iterable[Recipe]] = None,
) -> RecommendationResponse:
    """Rank the recipe catalog (or ``recipes``) against the provided pantry."""

    if include_unmatched is None:
        include_unmatched = get_settings().recommend_include_unmatched
    catalog = list(recipes) if recipes is not None else list_recipes()

    ranked = recommend(ingredients, catalog, include_unmatched=include_unmatched)
    metrics.RECOMMENDATIONS.inc()
    logger.info(
        "Recommended %s of %s recipe(s) for %s pantry ingredient(s)",
        len(ranked),
        len(catalog),
        len(ingredients),
    )
    return RecommendationResponse(
        data=ranked,
        meta=RecommendationMeta(
            provided_ingredients=[entry.strip() for entry in ingredients],
            total_recipes_found=len(ranked),
        ),
    )


__all__ = ["recommend_from_catalog"]
