"""Heuristic parser turning OCR'd cookbook text into a draft meal."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from mealbook import metrics
from mealbook.ingest.normalize import clean_text
from mealbook.models.meal import PLACEHOLDER_NAME, CanonicalMeal, Ingredient, OcrProvenance

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_GUESSED_INGREDIENTS = 20
MIN_GUESSED_STEP_LENGTH = 10

_INGREDIENTS_HEADER = re.compile(r"^\W*ingredients?\b", re.IGNORECASE)
_INSTRUCTIONS_HEADER = re.compile(
    r"^\W*(?:instructions?|directions?|method|steps?)\b(?!\s*\d)",
    re.IGNORECASE,
)
# Lines inside the ingredient section that open another section.
_NON_INGREDIENT_HEADER = re.compile(
    r"^\W*(?:instructions?|directions?|method|steps?|preparation|cooking)\b",
    re.IGNORECASE,
)
# Lines inside the instruction section that open another section.
_NON_INSTRUCTION_HEADER = re.compile(
    r"^\W*(?:ingredients?|nutrition(?:al)?|serv(?:es|ings?)|yields?|"
    r"(?:prep|cook|total)(?:ing)?\s*time)\b",
    re.IGNORECASE,
)

_LEADING_QUANTITY = re.compile(r"^(?:\d|[½⅓⅔¼¾⅛])")
_UNIT_TOKEN = re.compile(
    r"\b(?:cups?|tbsps?|tsps?|oz|lbs?|grams?|kg|ml|l|pounds?|ounces?|teaspoons?|tablespoons?)\b",
    re.IGNORECASE,
)
_STEP_PREFIX = re.compile(r"^(?:\d+[.)]|step\s+\d+)", re.IGNORECASE)
_STRIP_STEP_PREFIX = re.compile(r"^(?:\d+[.)]\s*|step\s+\d+\s*[:.)\-]?\s*)", re.IGNORECASE)
_STRIP_BULLET = re.compile(r"^(?:[•●▪◦\-*]+\s*|\d+[.)](?!\d)\s*)")
_NUMBERED_FIRST_LINE = re.compile(r"^\d+[/.]")
_DURATION = re.compile(r"(?<!\d)(\d{1,6})\s*(min(?:ute)?s?|hours?|hrs?)\b", re.IGNORECASE)


def _strip_bullet(line: str) -> str:
    return _STRIP_BULLET.sub("", line).strip()


def _strip_step(line: str) -> str:
    return _STRIP_STEP_PREFIX.sub("", line).strip()


def _find(lines: List[str], pattern: re.Pattern[str]) -> Optional[int]:
    for index, line in enumerate(lines):
        if pattern.match(line):
            return index
    return None


def _section(lines: List[str], start: int, other: Optional[int]) -> List[str]:
    """Lines after header ``start`` up to the other header when that comes later."""

    end = other if other is not None and other > start else len(lines)
    return lines[start + 1 : end]


class RecipeTextParser:
    """Segment recognized text into name, ingredients and instructions.

    Parsing never raises. Text that defeats every heuristic still yields a meal
    (named "Untitled Recipe" if nothing better is found) for a human to fix.
    """

    def parse(self, text: Optional[str]) -> CanonicalMeal:
        lines = [clean_text(line) for line in (text or "").splitlines()]
        lines = [line for line in lines if line]

        name = self._infer_name(lines)
        ingredients_at = _find(lines, _INGREDIENTS_HEADER)
        instructions_at = _find(lines, _INSTRUCTIONS_HEADER)

        if ingredients_at is not None:
            ingredients = [
                _strip_bullet(line)
                for line in _section(lines, ingredients_at, instructions_at)
                if not _NON_INGREDIENT_HEADER.match(line)
            ]
        else:
            ingredients = [
                _strip_bullet(line)
                for line in lines
                if _LEADING_QUANTITY.match(line) or _UNIT_TOKEN.search(line)
            ][:MAX_GUESSED_INGREDIENTS]

        if instructions_at is not None:
            instructions = [
                _strip_step(line)
                for line in _section(lines, instructions_at, ingredients_at)
                if not _NON_INSTRUCTION_HEADER.match(line)
            ]
        else:
            instructions = [_strip_step(line) for line in lines if _STEP_PREFIX.match(line)]

        ingredients = [line for line in ingredients if line]
        instructions = [line for line in instructions if line]

        if not ingredients and not instructions and lines:
            # Crude last resort: first half of the page as ingredients, second half as steps.
            logger.debug("No recipe structure recognized; splitting %s lines in half", len(lines))
            midpoint = len(lines) // 2
            ingredients = [line for line in lines[:midpoint] if len(line) < MAX_NAME_LENGTH]
            instructions = [line for line in lines[midpoint:] if len(line) > MIN_GUESSED_STEP_LENGTH]

        meal = CanonicalMeal(
            name=name or PLACEHOLDER_NAME,
            estimated_minutes=self._estimate_minutes(text or ""),
            ingredients=[Ingredient(name=line) for line in ingredients],
            instructions=instructions,
            provenance=OcrProvenance(),
        )
        metrics.IMPORTS.labels(source="ocr", outcome="sparse" if meal.is_sparse else "succeeded").inc()
        return meal

    @staticmethod
    def _infer_name(lines: List[str]) -> str:
        if not lines:
            return ""
        first = lines[0]
        if len(first) >= MAX_NAME_LENGTH or _NUMBERED_FIRST_LINE.match(first):
            return ""
        if _INGREDIENTS_HEADER.match(first) or _INSTRUCTIONS_HEADER.match(first):
            return ""
        return first

    @staticmethod
    def _estimate_minutes(text: str) -> int:
        match = _DURATION.search(text)
        if not match:
            return 0
        value = int(match.group(1))
        if match.group(2).lower().startswith("h"):
            value *= 60
        return value


def parse_recipe_text(text: Optional[str]) -> CanonicalMeal:
    """Parse OCR text with the default heuristics."""

    return RecipeTextParser().parse(text)


__all__ = ["RecipeTextParser", "parse_recipe_text"]
