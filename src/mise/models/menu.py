"""Recipe recommendation models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

from mise.models.recipe import Recipe


class RecipeRecommendation(BaseModel):
    """Recipe ranked against a pantry, with the overlap spelled out."""

    recipe: Recipe
    match_score: float = Field(ge=0, le=100)
    matched_ingredients: list[str] = Field(default_factory=list)
    missing_ingredients: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def match_percent(self) -> int:
        """Score rounded for display; sorting always uses ``match_score``."""

        return round(self.match_score)


class RecommendationMeta(BaseModel):
    provided_ingredients: list[str] = Field(default_factory=list)
    total_recipes_found: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class RecommendationResponse(BaseModel):
    """Envelope returned by ``POST /menu/recommend``."""

    data: list[RecipeRecommendation] = Field(default_factory=list)
    meta: RecommendationMeta = Field(default_factory=RecommendationMeta)

    model_config = ConfigDict(frozen=True)
