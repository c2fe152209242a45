"""Command-line interface for Mise."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import typer

from mise.config import get_settings
from mise.db.recipes import create_recipe
from mise.errors import MiseError
from mise.models.recipe import Recipe
from mise.services.grocery import regenerate_grocery_list
from mise.services.menu import recommend_from_catalog

app = typer.Typer(help="Mise recipe recommendation and grocery list commands.")


def _load_json(path: Path) -> object:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _load_catalog(path: Path) -> List[Recipe]:
    payload = _load_json(path)
    if not isinstance(payload, list):
        raise typer.BadParameter("catalog must be a JSON array of recipes", param_hint="--catalog")
    # Catalog files may omit ids; number them by position.
    return [Recipe.model_validate({"id": index + 1, **entry}) for index, entry in enumerate(payload)]


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter(f"'{value}' is not a YYYY-MM-DD date") from exc


def _echo(payload: object, pretty: bool) -> None:
    typer.echo(json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty))


@app.command()
def recommend(
    ingredients: List[str] = typer.Option(
        ..., "--ingredient", "-i", help="Pantry ingredient; repeat for several."
    ),
    catalog: Optional[Path] = typer.Option(
        None,
        "--catalog",
        exists=True,
        dir_okay=False,
        help="JSON recipe catalog to rank instead of the database.",
    ),
    include_unmatched: bool = typer.Option(
        False, "--include-unmatched", help="Also list recipes sharing no ingredient."
    ),
    pretty: bool = typer.Option(False, "--pretty", help="Pretty-print output JSON."),
) -> None:
    """Rank recipes by how much of each the pantry already covers."""

    recipes = _load_catalog(catalog) if catalog is not None else None
    try:
        response = recommend_from_catalog(
            ingredients, include_unmatched=include_unmatched, recipes=recipes
        )
    except MiseError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    _echo(response.model_dump(mode="json"), pretty)


@app.command("grocery-list")
def grocery_list(
    start: str = typer.Argument(..., help="First date of the range (YYYY-MM-DD)."),
    end: str = typer.Argument(..., help="Last date of the range (YYYY-MM-DD)."),
    owner: Optional[str] = typer.Option(None, "--owner", help="List owner."),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print output JSON."),
) -> None:
    """Generate or regenerate the grocery list for a date range."""

    try:
        result = regenerate_grocery_list(_parse_date(start), _parse_date(end), owner)
    except MiseError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    _echo(result.model_dump(mode="json"), pretty)


@app.command("import-recipes")
def import_recipes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of recipes."),
) -> None:
    """Store every recipe in a JSON file."""

    payload = _load_json(path)
    if not isinstance(payload, list):
        raise typer.BadParameter("expected a JSON array of recipes", param_hint="PATH")

    imported = 0
    for index, entry in enumerate(payload):
        try:
            recipe = create_recipe(
                title=entry.get("title", ""),
                servings=entry.get("servings", 0),
                serving_size=entry.get("serving_size", ""),
                ingredients=entry.get("ingredients", []),
                instructions=entry.get("instructions", []),
                tags=entry.get("tags", []),
                prep_time_minutes=entry.get("prep_time_minutes"),
                cook_time_minutes=entry.get("cook_time_minutes"),
                source=entry.get("source"),
                notes=entry.get("notes"),
            )
        except MiseError as exc:
            typer.secho(f"Skipping entry {index}: {exc}", fg=typer.colors.YELLOW, err=True)
            continue
        imported += 1
        typer.echo(f"Imported recipe {recipe.id}: {recipe.title}")

    typer.echo(f"Imported {imported} of {len(payload)} recipe(s) into {get_settings().database_path}")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``mise`` console script."""
    app(prog_name="mise", args=argv)


if __name__ == "__main__":
    main()
