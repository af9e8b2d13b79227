"""Batch recipe import from Paprika export files.

Accepted payloads, tried in order:

* ``.paprikarecipes`` archives (a zip of gzipped JSON recipes) and single
  gzipped ``.paprikarecipe`` files;
* JSON, either a bare list of recipes or an object with a ``recipes`` list;
* the legacy XML export, read by matching ``<recipe>`` tag boundaries rather
  than with a validating parser, since those exports are flat and often not
  well-formed.

A record with odd fields degrades to mostly-empty values; only an unrecognized
top-level payload raises :class:`FormatError`.
"""

from __future__ import annotations

import gzip
import html
import io
import json
import logging
import re
import zipfile
from typing import Any, Dict, List, Mapping, Optional

from mealbook import metrics
from mealbook.ingest.errors import FormatError
from mealbook.ingest.normalize import (
    coerce_tags,
    parse_duration_to_minutes,
    to_ingredients,
    to_instructions,
)
from mealbook.models.meal import PLACEHOLDER_NAME, CanonicalMeal, PaprikaProvenance

logger = logging.getLogger(__name__)

XML_FIELDS = ("name", "image", "total_time", "ingredients", "directions", "categories")

_RECIPE_BLOCK = re.compile(r"<recipe\b[^>]*>.*?</recipe\s*>", re.IGNORECASE | re.DOTALL)
_CDATA = re.compile(r"^<!\[CDATA\[(.*)\]\]>$", re.DOTALL)
_GZIP_MAGIC = b"\x1f\x8b"
_ZIP_MAGIC = b"PK\x03\x04"


def _first(recipe: Mapping[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys``."""

    for key in keys:
        value = recipe.get(key)
        if value not in (None, "", []):
            return value
    return None


def _xml_child_text(block: str, tag: str) -> str:
    match = re.search(
        rf"<{tag}\b[^>]*>(.*?)</{tag}\s*>",
        block,
        re.IGNORECASE | re.DOTALL,
    )
    if not match:
        return ""
    value = match.group(1).strip()
    cdata = _CDATA.match(value)
    if cdata:
        return cdata.group(1).strip()
    return html.unescape(value)


def parse_xml_recipes(text: str) -> List[Dict[str, str]]:
    """Extract flat recipe records from the legacy XML export."""

    blocks = _RECIPE_BLOCK.findall(text)
    if not blocks:
        raise FormatError("No recipes found in Paprika XML export.")
    return [{tag: _xml_child_text(block, tag) for tag in XML_FIELDS} for block in blocks]


def _decode(payload: bytes) -> str:
    return payload.decode("utf-8-sig", errors="replace")


def _load_json_record(payload: bytes) -> Any:
    if payload[:2] == _GZIP_MAGIC:
        payload = gzip.decompress(payload)
    return json.loads(_decode(payload))


def _read_archive(payload: bytes) -> List[Any]:
    recipes: List[Any] = []
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            for entry in archive.infolist():
                if entry.is_dir():
                    continue
                raw = archive.read(entry)
                try:
                    recipes.append(_load_json_record(raw))
                except (OSError, EOFError, ValueError) as exc:
                    logger.warning("Skipping unreadable archive entry %s: %s", entry.filename, exc)
                    recipes.append({})
    except zipfile.BadZipFile as exc:
        raise FormatError(f"Paprika archive is corrupt: {exc}") from exc
    if not recipes:
        raise FormatError("Paprika archive contains no recipes.")
    return recipes


class PaprikaImporter:
    """Read Paprika exports into canonical meals, preserving export order."""

    def load_recipes(self, payload: bytes) -> List[Any]:
        """Detect the export dialect and return the raw recipe records."""

        if not payload or not payload.strip():
            raise FormatError("Paprika export is empty.")

        if payload[:4] == _ZIP_MAGIC:
            logger.debug("Reading Paprika zip archive (%s bytes)", len(payload))
            return _read_archive(payload)

        if payload[:2] == _GZIP_MAGIC:
            try:
                record = _load_json_record(payload)
            except (OSError, EOFError, ValueError) as exc:
                raise FormatError(f"Unreadable gzipped Paprika recipe: {exc}") from exc
            return record if isinstance(record, list) else [record]

        text = _decode(payload)
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Payload is not JSON; trying legacy XML export")
            return parse_xml_recipes(text)

        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("recipes"), list):
            return data["recipes"]
        raise FormatError("Invalid Paprika export format: expected a list of recipes.")

    def import_bytes(self, payload: bytes) -> List[CanonicalMeal]:
        try:
            records = self.load_recipes(payload)
        except FormatError:
            metrics.IMPORTS.labels(source="paprika", outcome="failed").inc()
            raise

        meals = [self.to_meal(record) for record in records]
        for meal in meals:
            outcome = "sparse" if meal.is_sparse else "succeeded"
            metrics.IMPORTS.labels(source="paprika", outcome=outcome).inc()
        logger.info("Imported %s Paprika recipe(s)", len(meals))
        return meals

    def to_meal(self, record: Any) -> CanonicalMeal:
        """Normalize one export record; unexpected shapes give empty fields."""

        recipe: Mapping[str, Any] = record if isinstance(record, dict) else {}

        name = _first(recipe, "name", "Name")
        photo = _first(recipe, "image_url", "image", "Image")
        total = _first(recipe, "total_time", "TotalTime")
        if total is not None:
            minutes = parse_duration_to_minutes(total)
        else:
            minutes = parse_duration_to_minutes(
                _first(recipe, "prep_time", "PrepTime")
            ) + parse_duration_to_minutes(_first(recipe, "cook_time", "CookTime"))

        return CanonicalMeal(
            name=name if isinstance(name, str) else PLACEHOLDER_NAME,
            photo_url=photo if isinstance(photo, str) else "",
            estimated_minutes=minutes,
            ingredients=to_ingredients(_first(recipe, "ingredients", "Ingredients")),
            instructions=to_instructions(
                _first(recipe, "directions", "Directions", "instructions", "Instructions")
            ),
            provenance=PaprikaProvenance(raw_payload=record),
            tags=coerce_tags(_first(recipe, "categories", "Categories")),
        )


def import_paprika(payload: bytes, importer: Optional[PaprikaImporter] = None) -> List[CanonicalMeal]:
    """Convenience wrapper around :meth:`PaprikaImporter.import_bytes`."""

    return (importer or PaprikaImporter()).import_bytes(payload)


__all__ = ["PaprikaImporter", "import_paprika", "parse_xml_recipes", "XML_FIELDS"]
