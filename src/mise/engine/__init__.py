"""Pure ingredient engines: normalization, recommendation scoring and grocery aggregation."""

from mise.engine.aggregator import generate
from mise.engine.normalizer import (
    IngredientNormalizer,
    IngredientTables,
    UnitFamily,
    get_normalizer,
    normalize,
    normalize_unit,
)
from mise.engine.scorer import recommend

__all__ = [
    "IngredientNormalizer",
    "IngredientTables",
    "UnitFamily",
    "generate",
    "get_normalizer",
    "normalize",
    "normalize_unit",
    "recommend",
]
