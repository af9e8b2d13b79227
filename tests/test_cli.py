"""Tests for the ``mealbook`` command-line interface."""

from __future__ import annotations

import io
import json

import pytest
from PIL import Image
from typer.testing import CliRunner

from mealbook import cli
from mealbook.db.meals import list_meals
from mealbook.ingest.errors import FetchError
from mealbook.models.meal import CanonicalMeal, UrlProvenance

runner = CliRunner()

OCR_TEXT = "Pancakes\nIngredients\n1 cup flour\n1 egg\nDirections\n1. Whisk.\n2. Fry 3 minutes.\n"


class _StubUrlImporter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def import_url(self, url: str) -> CanonicalMeal:
        if self.fail:
            raise FetchError(url, "HTTP 404 Not Found")
        return CanonicalMeal(
            name="Weeknight Chili",
            ingredients=["1 lb beef"],
            instructions=["Brown the beef."],
            provenance=UrlProvenance(source_url=url),
        )


def test_import_url_prints_meal(monkeypatch):
    monkeypatch.setattr(cli, "UrlRecipeImporter", lambda: _StubUrlImporter())

    result = runner.invoke(cli.app, ["import-url", "https://example.com/chili", "--no-pretty"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["name"] == "Weeknight Chili"
    assert payload["provenance"]["source_url"] == "https://example.com/chili"


def test_import_url_failure_exits_non_zero(monkeypatch):
    monkeypatch.setattr(cli, "UrlRecipeImporter", lambda: _StubUrlImporter(fail=True))

    result = runner.invoke(cli.app, ["import-url", "https://example.com/missing"])

    assert result.exit_code == 1
    assert "Failed to fetch recipe from https://example.com/missing" in result.output


def test_import_paprika_prints_all_meals(tmp_path, paprika_fixture):
    export = tmp_path / "export.json"
    export.write_bytes(paprika_fixture("export.json"))

    result = runner.invoke(cli.app, ["import-paprika", str(export)])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [meal["name"] for meal in payload["meals"]] == ["Shakshuka", "Overnight Oats"]


def test_import_paprika_rejects_bad_export(tmp_path):
    export = tmp_path / "notes.txt"
    export.write_text("shopping list", encoding="utf-8")

    result = runner.invoke(cli.app, ["import-paprika", str(export)])

    assert result.exit_code == 1
    assert "Import failed" in result.output


def test_import_paprika_save_stores_meals(tmp_path, paprika_fixture):
    export = tmp_path / "legacy_export.xml"
    export.write_bytes(paprika_fixture("legacy_export.xml"))

    result = runner.invoke(cli.app, ["import-paprika", str(export), "--save"])

    assert result.exit_code == 0
    assert sorted(meal.name for meal in list_meals()) == ["Mac & Cheese", "Tomato Soup"]


@pytest.mark.parametrize("from_stdin", [False, True])
def test_import_ocr_prints_draft(tmp_path, from_stdin):
    if from_stdin:
        result = runner.invoke(cli.app, ["import-ocr", "-"], input=OCR_TEXT)
    else:
        source = tmp_path / "page.txt"
        source.write_text(OCR_TEXT, encoding="utf-8")
        result = runner.invoke(cli.app, ["import-ocr", str(source)])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {
        "name": "Pancakes",
        "ingredients": ["1 cup flour", "1 egg"],
        "instructions": ["Whisk.", "Fry 3 minutes."],
        "estimated_cooking_time": 3,
    }


def test_import_photo_prints_text_and_draft(tmp_path, monkeypatch):
    from mealbook.ocr import pipeline

    class DummyPytesseract:
        @staticmethod
        def image_to_string(image, lang):
            assert lang == "fra"
            return OCR_TEXT

        @staticmethod
        def image_to_osd(image, lang):
            return "Rotate: 0"

    monkeypatch.setattr(pipeline, "pytesseract", DummyPytesseract())

    photo = tmp_path / "page.png"
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(255, 255, 255)).save(buffer, format="PNG")
    photo.write_bytes(buffer.getvalue())

    result = runner.invoke(cli.app, ["import-photo", str(photo), "--lang", "fra"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["text"] == OCR_TEXT.strip()
    assert payload["draft"]["name"] == "Pancakes"
