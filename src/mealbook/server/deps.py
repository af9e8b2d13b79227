"""Dependency definitions for the Mealbook API server."""

from __future__ import annotations

from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, Request, status

from mealbook.config import get_settings
from mealbook.db.meals import create_meal, delete_meal, get_meal, list_meals, update_meal
from mealbook.ingest import PaprikaImporter, UrlRecipeImporter
from mealbook.models.meal import CanonicalMeal, Meal, MealUpdate
from mealbook.ocr import PhotoRecognition, RecipePhotoReader, RecipeTextParser

UrlImporter = Callable[[str], CanonicalMeal]
PaprikaLoader = Callable[[bytes], List[CanonicalMeal]]
TextParser = Callable[[str], CanonicalMeal]
PhotoReader = Callable[[bytes, Optional[str]], PhotoRecognition]
MealsProvider = Callable[[], List[Meal]]
MealCreator = Callable[[CanonicalMeal], Meal]
MealFetcher = Callable[[int], Meal]
MealUpdater = Callable[[int, MealUpdate], Meal]
MealDeleter = Callable[[int], None]


def get_url_importer() -> UrlImporter:
    """Return the default URL importer."""

    return UrlRecipeImporter().import_url


def get_paprika_loader() -> PaprikaLoader:
    return PaprikaImporter().import_bytes


def get_text_parser() -> TextParser:
    return RecipeTextParser().parse


def get_photo_reader() -> PhotoReader:
    settings = get_settings()
    return RecipePhotoReader(lang=settings.ocr_default_lang).read


def get_meals_provider() -> MealsProvider:
    return list_meals


def get_meal_creator() -> MealCreator:
    return create_meal


def get_meal_fetcher() -> MealFetcher:
    return get_meal


def get_meal_updater() -> MealUpdater:
    return update_meal


def get_meal_deleter() -> MealDeleter:
    return delete_meal


def require_api_token(
    request: Request,
    settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
