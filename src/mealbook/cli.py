"""Command-line interface for Mealbook."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from mealbook.config import get_settings
from mealbook.db.meals import create_meal
from mealbook.ingest import PaprikaImporter, RecipeImportError, UrlRecipeImporter
from mealbook.logging_utils import configure_logging
from mealbook.models.meal import CanonicalMeal, RecipeTextDraft
from mealbook.ocr import RecipePhotoReader, RecipeTextParser

app = typer.Typer(help="Mealbook recipe import commands.")

_PRETTY = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print output JSON.")
_SAVE = typer.Option(False, "--save", help="Store the imported meal(s) in the meal database.")


@app.callback()
def _configure(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG.")) -> None:
    if verbose:
        settings = get_settings()
        configure_logging("DEBUG", settings.log_format, [settings.api_token or ""])


def _echo(payload: object, pretty: bool) -> None:
    typer.echo(json.dumps(payload, indent=2 if pretty else None, ensure_ascii=False))


def _fail(exc: Exception) -> NoReturn:
    typer.secho(f"Import failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _store(meals: List[CanonicalMeal]) -> None:
    for meal in meals:
        stored = create_meal(meal)
        typer.secho(f"Saved meal {stored.id}: {stored.name}", fg=typer.colors.GREEN, err=True)


@app.command("import-url")
def import_url(
    url: str = typer.Argument(..., help="Recipe page URL."),
    pretty: bool = _PRETTY,
    save: bool = _SAVE,
) -> None:
    """Import a recipe from a web page."""

    try:
        meal = UrlRecipeImporter().import_url(url)
    except RecipeImportError as exc:
        _fail(exc)
    _echo(meal.model_dump(mode="json"), pretty)
    if save:
        _store([meal])


@app.command("import-paprika")
def import_paprika(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Paprika export file."),
    pretty: bool = _PRETTY,
    save: bool = _SAVE,
) -> None:
    """Import every recipe in a Paprika export (.json, .xml or .paprikarecipes)."""

    try:
        meals = PaprikaImporter().import_bytes(path.read_bytes())
    except RecipeImportError as exc:
        _fail(exc)
    _echo({"meals": [meal.model_dump(mode="json") for meal in meals]}, pretty)
    if save:
        _store(meals)


@app.command("import-ocr")
def import_ocr(
    path: str = typer.Argument(..., help="Text file with recognized text, or - for stdin."),
    pretty: bool = _PRETTY,
    save: bool = _SAVE,
) -> None:
    """Draft a recipe from OCR text."""

    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    meal = RecipeTextParser().parse(text)
    _echo(RecipeTextDraft.from_meal(meal).model_dump(mode="json"), pretty)
    if save:
        _store([meal])


@app.command("import-photo")
def import_photo(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Photo of a cookbook page."),
    lang: Optional[str] = typer.Option(None, "--lang", help="Tesseract language code to use."),
    pretty: bool = _PRETTY,
    save: bool = _SAVE,
) -> None:
    """Recognize a cookbook photo and draft a recipe from it."""

    try:
        recognition = RecipePhotoReader(lang=lang).read(path.read_bytes())
    except RecipeImportError as exc:
        _fail(exc)
    _echo(
        {
            "text": recognition.text,
            "draft": RecipeTextDraft.from_meal(recognition.meal).model_dump(mode="json"),
        },
        pretty,
    )
    if save:
        _store([recognition.meal])


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``mealbook`` console script."""
    app(prog_name="mealbook", args=argv)


if __name__ == "__main__":
    main()
