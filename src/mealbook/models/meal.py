"""Canonical meal data models shared by every importer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

PLACEHOLDER_NAME = "Untitled Recipe"


def _drop_blank(values: List[Any]) -> List[Any]:
    kept: List[Any] = []
    for value in values:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        kept.append(value)
    return kept


def _finite_json(value: Any) -> Any:
    """Replace NaN and infinite floats, which JSON cannot carry, with None."""

    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, list):
        return [_finite_json(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _finite_json(entry) for key, entry in value.items()}
    return value


class Ingredient(BaseModel):
    """Single ingredient line in recipe order."""

    name: str = Field(min_length=1)
    amount: Optional[str] = None
    unit: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("ingredient name must not be blank")
        return stripped


class UrlProvenance(BaseModel):
    """Meal scraped from a recipe web page."""

    kind: Literal["url"] = "url"
    source_url: str
    raw_payload: Any = None

    model_config = ConfigDict(frozen=True)


class PaprikaProvenance(BaseModel):
    """Meal read from a Paprika export file."""

    kind: Literal["paprika"] = "paprika"
    raw_payload: Any = None

    model_config = ConfigDict(frozen=True)

    @field_serializer("raw_payload", when_used="json")
    def _serialize_payload(self, value: Any) -> Any:
        return _finite_json(value)


class OcrProvenance(BaseModel):
    """Meal drafted from recognized cookbook text."""

    kind: Literal["ocr"] = "ocr"

    model_config = ConfigDict(frozen=True)


class ManualProvenance(BaseModel):
    """Meal entered by hand."""

    kind: Literal["manual"] = "manual"

    model_config = ConfigDict(frozen=True)


Provenance = Annotated[
    Union[UrlProvenance, PaprikaProvenance, OcrProvenance, ManualProvenance],
    Field(discriminator="kind"),
]


class CanonicalMeal(BaseModel):
    """Normalized recipe produced by an importer and handed to the meal store."""

    name: str = PLACEHOLDER_NAME
    photo_url: str = ""
    estimated_minutes: int = Field(default=0, ge=0)
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    provenance: Provenance = Field(default_factory=ManualProvenance)
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return PLACEHOLDER_NAME
        return value.strip() if isinstance(value, str) else value

    @field_validator("photo_url", mode="before")
    @classmethod
    def _default_photo(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("instructions", "tags", mode="before")
    @classmethod
    def _strip_blank_entries(cls, value: Any) -> Any:
        if isinstance(value, list):
            return _drop_blank(value)
        return value

    @field_validator("ingredients", mode="before")
    @classmethod
    def _coerce_ingredients(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        coerced: List[Any] = []
        for entry in _drop_blank(value):
            if isinstance(entry, str):
                entry = {"name": entry}
            elif isinstance(entry, dict) and not str(entry.get("name") or "").strip():
                continue
            coerced.append(entry)
        return coerced

    @property
    def is_sparse(self) -> bool:
        """True when nothing structured was recovered beyond the name."""

        return not self.ingredients and not self.instructions


class Meal(CanonicalMeal):
    """Canonical meal after persistence."""

    id: int
    created_at: datetime
    updated_at: datetime


class MealUpdate(BaseModel):
    """Partial update payload for a stored meal."""

    name: Optional[str] = Field(default=None, min_length=1)
    photo_url: Optional[str] = None
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    ingredients: Optional[list[Ingredient]] = None
    instructions: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class RecipeTextDraft(BaseModel):
    """Simplified projection returned for OCR imports."""

    name: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    estimated_cooking_time: int = Field(default=0, ge=0)

    @classmethod
    def from_meal(cls, meal: CanonicalMeal) -> "RecipeTextDraft":
        return cls(
            name=meal.name,
            ingredients=[ingredient.name for ingredient in meal.ingredients],
            instructions=list(meal.instructions),
            estimated_cooking_time=meal.estimated_minutes,
        )


class PaprikaImportResult(BaseModel):
    """Batch of meals read from one Paprika export."""

    meals: list[CanonicalMeal] = Field(default_factory=list)
