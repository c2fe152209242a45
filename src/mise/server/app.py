"""ASGI application for Mise."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field, model_validator

from mise import __version__, metrics
from mise.config import Settings, get_settings
from mise.errors import InvalidArgument, MiseError, NotFound, RevisionConflict
from mise.logging_utils import configure_logging as configure_app_logging
from mise.models.cookbook import Cookbook
from mise.models.grocery import GroceryList, GroceryListItem, ItemStatus
from mise.models.meal_plan import MealPlan, MealType
from mise.models.menu import RecommendationResponse
from mise.models.recipe import Department, Recipe
from mise.server import deps

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    RevisionConflict: status.HTTP_409_CONFLICT,
}


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _configure_logging(settings: Settings) -> None:
    configure_app_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def _route_path(request: Request) -> str:
    # Label metrics by route template so ids in the URL don't explode cardinality.
    route = request.scope.get("route")
    return getattr(route, "path_format", None) or request.url.path


def _owned_list(
    grocery_list_id: int, owner: str, fetcher: deps.GroceryListFetcher
) -> GroceryList:
    grocery_list = fetcher(grocery_list_id)
    if grocery_list is None or grocery_list.owner != owner:
        raise NotFound(f"Grocery list {grocery_list_id} not found")
    return grocery_list


def _owned_cookbook(cookbook_id: int, owner: str, fetcher: deps.CookbookFetcher) -> Cookbook:
    cookbook = fetcher(cookbook_id)
    if cookbook is None or cookbook.owner != owner:
        raise NotFound(f"Cookbook {cookbook_id} not found")
    return cookbook


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Mise Kitchen Service", version=__version__)
    logger.debug("Application created with log level %s", settings.log_level)

    access_logger = logging.getLogger("mise.access")

    @application.middleware("http")
    async def log_request_response(request: Request, call_next):
        """Tag the request with an id, then record access logs and metrics."""

        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = perf_counter()
        method = request.method
        try:
            response: Response = await call_next(request)
        except Exception:
            duration = perf_counter() - start
            path = _route_path(request)
            access_logger.exception(
                "HTTP %s %s status=500 duration_ms=%.2f",
                method,
                request.url.path,
                duration * 1000,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration)
            raise

        duration = perf_counter() - start
        path = _route_path(request)
        response.headers.setdefault("X-Request-ID", request_id)
        if settings.log_requests:
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                request.url.path,
                response.status_code,
                duration * 1000,
                extra={"request_id": request_id},
            )
        metrics.REQUEST_COUNT.labels(
            method=method, path=path, status=str(response.status_code)
        ).inc()
        metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration)
        return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body_preview: Optional[str] = None
        try:
            raw_body = await request.body()
        except RuntimeError:  # pragma: no cover - stream already consumed
            raw_body = b""
            body_preview = "<unable to read body>"
        if raw_body:
            body_preview = raw_body.decode("utf-8", errors="replace")
            if len(body_preview) > 2048:
                body_preview = body_preview[:2048] + "...(truncated)"

        logger.warning(
            "Validation error on %s %s: %s | body=%s",
            request.method,
            request.url.path,
            exc.errors(),
            body_preview,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": _json_safe(exc.errors())},
        )

    @application.exception_handler(MiseError)
    async def domain_exception_handler(request: Request, exc: MiseError):
        status_code = next(
            (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
            status.HTTP_400_BAD_REQUEST,
        )
        logger.info(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @application.post(
        "/menu/recommend",
        response_model=RecommendationResponse,
        summary="Rank recipes against pantry ingredients",
    )
    def menu_recommend(
        payload: RecommendRequest,
        recommender: deps.Recommender = Depends(deps.get_recommender),
    ) -> RecommendationResponse:
        return recommender(payload.ingredients)

    @application.post(
        "/grocery-lists",
        response_model=GroceryListEnvelope,
        status_code=status.HTTP_201_CREATED,
        summary="Generate or regenerate a grocery list for a date range",
    )
    def grocery_lists_generate(
        payload: GroceryListCreateRequest,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        generator: deps.GroceryListGenerator = Depends(deps.get_grocery_list_generator),
    ) -> GroceryListEnvelope:
        return GroceryListEnvelope(data=generator(payload.start_date, payload.end_date, owner))

    @application.get(
        "/grocery-lists",
        response_model=GroceryListCollection,
        summary="List the caller's grocery lists",
    )
    def grocery_lists_list(
        owner: str = Depends(deps.get_owner),
        provider: deps.GroceryListsProvider = Depends(deps.get_grocery_lists_provider),
    ) -> GroceryListCollection:
        return GroceryListCollection(data=provider(owner))

    @application.get(
        "/grocery-lists/{grocery_list_id}",
        response_model=GroceryListEnvelope,
        summary="Fetch a grocery list",
    )
    def grocery_lists_get(
        grocery_list_id: int,
        owner: str = Depends(deps.get_owner),
        fetcher: deps.GroceryListFetcher = Depends(deps.get_grocery_list_fetcher),
    ) -> GroceryListEnvelope:
        return GroceryListEnvelope(data=_owned_list(grocery_list_id, owner, fetcher))

    @application.delete(
        "/grocery-lists/{grocery_list_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a grocery list",
    )
    def grocery_lists_delete(
        grocery_list_id: int,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.GroceryListFetcher = Depends(deps.get_grocery_list_fetcher),
        deleter: deps.GroceryListDeleter = Depends(deps.get_grocery_list_deleter),
    ) -> Response:
        _owned_list(grocery_list_id, owner, fetcher)
        deleter(grocery_list_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @application.post(
        "/grocery-lists/{grocery_list_id}/items",
        response_model=GroceryItemEnvelope,
        status_code=status.HTTP_201_CREATED,
        summary="Add a manual item to a grocery list",
    )
    def grocery_lists_add_item(
        grocery_list_id: int,
        payload: ManualItemRequest,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.GroceryListFetcher = Depends(deps.get_grocery_list_fetcher),
        creator: deps.ManualItemCreator = Depends(deps.get_manual_item_creator),
    ) -> GroceryItemEnvelope:
        _owned_list(grocery_list_id, owner, fetcher)
        return GroceryItemEnvelope(data=creator(grocery_list_id, payload.model_dump()))

    @application.patch(
        "/grocery-lists/items/{item_id}",
        response_model=GroceryItemEnvelope,
        summary="Update a grocery list item's status",
    )
    def grocery_items_update_status(
        item_id: int,
        payload: ItemStatusUpdateRequest,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        item_fetcher: deps.GroceryItemFetcher = Depends(deps.get_grocery_item_fetcher),
        fetcher: deps.GroceryListFetcher = Depends(deps.get_grocery_list_fetcher),
        updater: deps.ItemStatusUpdater = Depends(deps.get_item_status_updater),
    ) -> GroceryItemEnvelope:
        item = item_fetcher(item_id)
        if item is None:
            raise NotFound(f"Grocery list item {item_id} not found")
        _owned_list(item.grocery_list_id, owner, fetcher)
        return GroceryItemEnvelope(data=updater(item_id, payload.status))

    @application.post(
        "/recipes",
        response_model=RecipeEnvelope,
        status_code=status.HTTP_201_CREATED,
        summary="Create a recipe",
    )
    def recipes_create(
        payload: RecipeCreateRequest,
        auth: None = Depends(deps.require_api_token),
        creator: deps.RecipeCreator = Depends(deps.get_recipe_creator),
    ) -> RecipeEnvelope:
        return RecipeEnvelope(data=creator(payload.model_dump()))

    @application.get(
        "/recipes",
        response_model=RecipeCollection,
        summary="List recipes",
    )
    def recipes_list(
        provider: deps.RecipesProvider = Depends(deps.get_recipes_provider),
    ) -> RecipeCollection:
        return RecipeCollection(data=provider())

    @application.get(
        "/recipes/{recipe_id}",
        response_model=RecipeEnvelope,
        summary="Fetch a recipe",
    )
    def recipes_get(
        recipe_id: int,
        fetcher: deps.RecipeFetcher = Depends(deps.get_recipe_fetcher),
    ) -> RecipeEnvelope:
        recipe = fetcher(recipe_id)
        if recipe is None:
            raise NotFound(f"Recipe {recipe_id} not found")
        return RecipeEnvelope(data=recipe)

    @application.put(
        "/recipes/{recipe_id}",
        response_model=RecipeEnvelope,
        summary="Replace a recipe",
    )
    def recipes_update(
        recipe_id: int,
        payload: RecipeCreateRequest,
        auth: None = Depends(deps.require_api_token),
        updater: deps.RecipeUpdater = Depends(deps.get_recipe_updater),
    ) -> RecipeEnvelope:
        return RecipeEnvelope(data=updater(recipe_id, payload.model_dump()))

    @application.delete(
        "/recipes/{recipe_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a recipe",
    )
    def recipes_delete(
        recipe_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.RecipeDeleter = Depends(deps.get_recipe_deleter),
    ) -> Response:
        deleter(recipe_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @application.post(
        "/cookbooks",
        response_model=CookbookEnvelope,
        status_code=status.HTTP_201_CREATED,
        summary="Create a cookbook",
    )
    def cookbooks_create(
        payload: CookbookRequest,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        creator: deps.CookbookCreator = Depends(deps.get_cookbook_creator),
    ) -> CookbookEnvelope:
        return CookbookEnvelope(data=creator(owner, payload.model_dump()))

    @application.get(
        "/cookbooks",
        response_model=CookbookCollection,
        summary="List the caller's cookbooks",
    )
    def cookbooks_list(
        owner: str = Depends(deps.get_owner),
        provider: deps.CookbooksProvider = Depends(deps.get_cookbooks_provider),
    ) -> CookbookCollection:
        return CookbookCollection(data=provider(owner))

    @application.get(
        "/cookbooks/{cookbook_id}",
        response_model=CookbookEnvelope,
        summary="Fetch a cookbook with its recipes",
    )
    def cookbooks_get(
        cookbook_id: int,
        owner: str = Depends(deps.get_owner),
        fetcher: deps.CookbookFetcher = Depends(deps.get_cookbook_fetcher),
    ) -> CookbookEnvelope:
        return CookbookEnvelope(data=_owned_cookbook(cookbook_id, owner, fetcher))

    @application.put(
        "/cookbooks/{cookbook_id}",
        response_model=CookbookEnvelope,
        summary="Rename or re-describe a cookbook",
    )
    def cookbooks_update(
        cookbook_id: int,
        payload: CookbookRequest,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.CookbookFetcher = Depends(deps.get_cookbook_fetcher),
        updater: deps.CookbookUpdater = Depends(deps.get_cookbook_updater),
    ) -> CookbookEnvelope:
        _owned_cookbook(cookbook_id, owner, fetcher)
        return CookbookEnvelope(data=updater(cookbook_id, payload.model_dump()))

    @application.delete(
        "/cookbooks/{cookbook_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a cookbook",
    )
    def cookbooks_delete(
        cookbook_id: int,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.CookbookFetcher = Depends(deps.get_cookbook_fetcher),
        deleter: deps.CookbookDeleter = Depends(deps.get_cookbook_deleter),
    ) -> Response:
        _owned_cookbook(cookbook_id, owner, fetcher)
        deleter(cookbook_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @application.post(
        "/cookbooks/{cookbook_id}/recipes/{recipe_id}",
        response_model=CookbookEnvelope,
        summary="Add a recipe to a cookbook",
    )
    def cookbooks_add_recipe(
        cookbook_id: int,
        recipe_id: int,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.CookbookFetcher = Depends(deps.get_cookbook_fetcher),
        adder: deps.CookbookMembership = Depends(deps.get_cookbook_recipe_adder),
    ) -> CookbookEnvelope:
        _owned_cookbook(cookbook_id, owner, fetcher)
        return CookbookEnvelope(data=adder(cookbook_id, recipe_id))

    @application.delete(
        "/cookbooks/{cookbook_id}/recipes/{recipe_id}",
        response_model=CookbookEnvelope,
        summary="Remove a recipe from a cookbook",
    )
    def cookbooks_remove_recipe(
        cookbook_id: int,
        recipe_id: int,
        owner: str = Depends(deps.get_owner),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.CookbookFetcher = Depends(deps.get_cookbook_fetcher),
        remover: deps.CookbookMembership = Depends(deps.get_cookbook_recipe_remover),
    ) -> CookbookEnvelope:
        _owned_cookbook(cookbook_id, owner, fetcher)
        return CookbookEnvelope(data=remover(cookbook_id, recipe_id))

    @application.get(
        "/meal-plans",
        response_model=MealPlanCollection,
        summary="List meal plans in a date range",
    )
    def meal_plans_list(
        start_date: date = Query(...),
        end_date: date = Query(...),
        provider: deps.MealPlanRangeProvider = Depends(deps.get_meal_plan_range_provider),
    ) -> MealPlanCollection:
        if start_date > end_date:
            raise InvalidArgument("end_date must not be before start_date")
        span = (end_date - start_date).days + 1
        if span > settings.meal_plan_max_range_days:
            raise InvalidArgument(
                f"date range spans {span} days; at most {settings.meal_plan_max_range_days} allowed"
            )
        return MealPlanCollection(data=provider(start_date, end_date))

    @application.get(
        "/meal-plans/{plan_date}",
        response_model=MealPlanEnvelope,
        summary="Fetch the meal plan for a date",
    )
    def meal_plans_get(
        plan_date: date,
        fetcher: deps.MealPlanFetcher = Depends(deps.get_meal_plan_fetcher),
    ) -> MealPlanEnvelope:
        return MealPlanEnvelope(data=fetcher(plan_date))

    @application.put(
        "/meal-plans/{plan_date}",
        response_model=MealPlanEnvelope,
        summary="Replace the meals planned for a date",
    )
    def meal_plans_put(
        plan_date: date,
        payload: MealPlanUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        saver: deps.MealPlanSaver = Depends(deps.get_meal_plan_saver),
    ) -> MealPlanEnvelope:
        meals = [meal.model_dump() for meal in payload.meals]
        return MealPlanEnvelope(data=saver(plan_date, meals))

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return application


class RecommendRequest(BaseModel):
    ingredients: list[str] = Field(default_factory=list)


class GroceryListCreateRequest(BaseModel):
    start_date: date
    end_date: date


class ManualItemRequest(BaseModel):
    item_name: str = Field(min_length=1, max_length=255)
    quantity: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=64)
    department: Optional[Department] = None


class ItemStatusUpdateRequest(BaseModel):
    status: ItemStatus


class RecipeIngredientRequest(BaseModel):
    ingredient_name: str = Field(min_length=1, max_length=255)
    quantity: float = Field(default=0.0, ge=0)
    unit: str = Field(default="", max_length=64)
    department: Department = "other"
    nutrition_id: Optional[str] = Field(default=None, max_length=64)


class RecipeInstructionRequest(BaseModel):
    step_number: Optional[int] = Field(default=None, ge=1)
    instruction: str = Field(min_length=1)


class RecipeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    servings: int = Field(gt=0)
    serving_size: str = Field(min_length=1, max_length=128)
    prep_time_minutes: Optional[int] = Field(default=None, ge=0)
    cook_time_minutes: Optional[int] = Field(default=None, ge=0)
    source: Optional[str] = Field(default=None, max_length=1024)
    notes: Optional[str] = None
    ingredients: list[RecipeIngredientRequest] = Field(min_length=1)
    instructions: list[RecipeInstructionRequest] = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def reject_blank_text(self) -> "RecipeCreateRequest":
        if not self.title.strip():
            raise ValueError("title cannot be blank")
        if not self.serving_size.strip():
            raise ValueError("serving_size cannot be blank")
        if any(not ingredient.ingredient_name.strip() for ingredient in self.ingredients):
            raise ValueError("ingredient_name cannot be blank")
        return self


class CookbookRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class MealEntryRequest(BaseModel):
    meal_type: MealType
    recipe_id: Optional[int] = None
    servings: Optional[int] = None
    out_of_kitchen: bool = False

    @model_validator(mode="after")
    def check_recipe_reference(self) -> "MealEntryRequest":
        """Out-of-kitchen meals carry no recipe; home-cooked ones need recipe and servings."""

        if self.out_of_kitchen:
            if self.recipe_id is not None or self.servings is not None:
                raise ValueError("out_of_kitchen meals cannot reference a recipe or servings")
            return self
        if self.recipe_id is None:
            raise ValueError("recipe_id is required unless out_of_kitchen is set")
        if self.servings is None or self.servings <= 0:
            raise ValueError("servings must be greater than 0")
        return self


class MealPlanUpdateRequest(BaseModel):
    meals: list[MealEntryRequest] = Field(default_factory=list)


class GroceryListEnvelope(BaseModel):
    data: GroceryList


class GroceryListCollection(BaseModel):
    data: list[GroceryList]


class GroceryItemEnvelope(BaseModel):
    data: GroceryListItem


class RecipeEnvelope(BaseModel):
    data: Recipe


class RecipeCollection(BaseModel):
    data: list[Recipe]


class CookbookEnvelope(BaseModel):
    data: Cookbook


class CookbookCollection(BaseModel):
    data: list[Cookbook]


class MealPlanEnvelope(BaseModel):
    data: MealPlan


class MealPlanCollection(BaseModel):
    data: list[MealPlan]


app = create_app()

__all__ = ["app", "create_app"]
