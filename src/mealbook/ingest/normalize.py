"""Pure conversions shared by the URL, Paprika and OCR importers."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Union

from mealbook.models.meal import Ingredient

_HOURS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*h", re.IGNORECASE)
_MINUTES_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*m", re.IGNORECASE)

_BULLET_GLYPHS = re.compile(r"[•●▪◦‣]")
_LEADING_BULLET = re.compile(r"^[-*–—]+\s*")

# A step number starts the line or follows the end of the previous sentence.
_STEP_BOUNDARY = re.compile(r"(?:^|(?<=[.!?)]\s))\s*\d{1,2}\.(?=\s)")
_LEADING_STEP_NUMBER = re.compile(r"^\d{1,3}[.)](?!\d)\s*")

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: str) -> str:
    """Collapse internal whitespace and trim."""

    return _WHITESPACE.sub(" ", value).strip()


def _whole_minutes(value: float) -> int:
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(round(value))


def parse_duration_to_minutes(value: Union[str, int, float, None]) -> int:
    """Convert a free-text or numeric duration into whole minutes.

    Numbers are taken as minutes already. Text is scanned for an hour count and a
    minute count independently, so ``"1h 30m"``, ``"PT1H30M"`` and
    ``"1 hour 30 minutes"`` all give 90. Text without an hour or minute unit,
    negative values and non-finite numbers give 0.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return _whole_minutes(value)
    if not isinstance(value, str):
        return 0

    hours_match = _HOURS_PATTERN.search(value)
    minutes_match = _MINUTES_PATTERN.search(value)
    hours = float(hours_match.group(1)) if hours_match else 0.0
    minutes = float(minutes_match.group(1)) if minutes_match else 0.0
    return _whole_minutes(hours * 60 + minutes)


def split_ingredient_block(text: str) -> List[str]:
    """Split a block of ingredient text on newlines and bullet glyphs."""

    entries: List[str] = []
    for line in text.splitlines():
        for piece in _BULLET_GLYPHS.split(line):
            piece = _LEADING_BULLET.sub("", piece.strip()).strip()
            if piece:
                entries.append(piece)
    return entries


def split_instruction_block(text: str) -> List[str]:
    """Split a block of directions on newlines and ``N.`` step numbers."""

    steps: List[str] = []
    for line in text.splitlines():
        for piece in _STEP_BOUNDARY.split(line):
            piece = _LEADING_STEP_NUMBER.sub("", piece.strip()).strip()
            if piece:
                steps.append(piece)
    return steps


def _entry_text(entry: Any, keys: Iterable[str]) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        for key in keys:
            candidate = entry.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate
    return str(entry)


def to_ingredients(value: Any) -> List[Ingredient]:
    """Map a list or a text block of ingredients onto ``Ingredient`` entries.

    List entries are kept one-to-one (no further splitting); objects contribute
    their ``name`` or ``text`` field. A string is treated as one block.
    """

    if isinstance(value, str):
        lines = split_ingredient_block(value)
    elif isinstance(value, list):
        lines = [clean_text(_entry_text(entry, ("name", "text"))) for entry in value if entry is not None]
    else:
        return []
    return [Ingredient(name=line) for line in lines if line]


def to_instructions(value: Any) -> List[str]:
    """Flatten a directions field into ordered step strings."""

    if isinstance(value, str):
        return split_instruction_block(value)
    if not isinstance(value, list):
        return []

    steps: List[str] = []
    for entry in value:
        if entry is None:
            continue
        if isinstance(entry, dict) and "text" not in entry and isinstance(
            entry.get("itemListElement"), list
        ):
            steps.extend(to_instructions(entry["itemListElement"]))
            continue
        step = clean_text(_entry_text(entry, ("text",)))
        if step:
            steps.append(step)
    return steps


def coerce_tags(value: Any) -> List[str]:
    """Coerce a category field (string or list) into a de-duplicated tag list."""

    if value is None:
        return []
    raw: List[Any] = value if isinstance(value, list) else [value]
    tags: List[str] = []
    for entry in raw:
        if entry is None:
            continue
        tag = clean_text(str(entry))
        if tag and tag not in tags:
            tags.append(tag)
    return tags


__all__ = [
    "clean_text",
    "coerce_tags",
    "parse_duration_to_minutes",
    "split_ingredient_block",
    "split_instruction_block",
    "to_ingredients",
    "to_instructions",
]
