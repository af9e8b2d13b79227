"""Pydantic models defining shared data contracts."""

from mealbook.models.meal import (
    PLACEHOLDER_NAME,
    CanonicalMeal,
    Ingredient,
    ManualProvenance,
    Meal,
    MealUpdate,
    OcrProvenance,
    PaprikaImportResult,
    PaprikaProvenance,
    Provenance,
    RecipeTextDraft,
    UrlProvenance,
)

__all__ = [
    "PLACEHOLDER_NAME",
    "CanonicalMeal",
    "Ingredient",
    "ManualProvenance",
    "Meal",
    "MealUpdate",
    "OcrProvenance",
    "PaprikaImportResult",
    "PaprikaProvenance",
    "Provenance",
    "RecipeTextDraft",
    "UrlProvenance",
]
