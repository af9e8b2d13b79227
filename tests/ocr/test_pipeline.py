"""Tests for cookbook photo recognition."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from mealbook.ingest.errors import FormatError
from mealbook.ocr.pipeline import RecipePhotoReader, UnsupportedPhotoError

RECOGNIZED_TEXT = """
  Tomato Toast
Ingredients
2 slices bread
1 tomato
Directions
1. Toast the bread.
2. Top with sliced tomato.
"""


def _create_image_bytes(fmt: str = "PNG") -> bytes:
    image = Image.new("RGB", (32, 32), color=(255, 255, 255))
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class DummyPytesseract:
    def __init__(self, rotation: int = 0) -> None:
        self.rotation = rotation
        self.calls: list[tuple[str, str]] = []
        self.seen_sizes: list[tuple[int, int]] = []

    def image_to_string(self, image, lang):
        self.calls.append((image.mode, lang))
        self.seen_sizes.append(image.size)
        return RECOGNIZED_TEXT

    def image_to_osd(self, image, lang):
        return f"Page number: 0\nRotate: {self.rotation}\n"


@pytest.fixture()
def dummy_tesseract(monkeypatch):
    from mealbook.ocr import pipeline

    dummy = DummyPytesseract()
    monkeypatch.setattr(pipeline, "pytesseract", dummy)
    return dummy


def test_read_recognizes_and_parses_photo(dummy_tesseract):
    recognition = RecipePhotoReader(lang="eng").read(_create_image_bytes(), "image/png")

    assert recognition.text.startswith("Tomato Toast")
    assert recognition.meal.name == "Tomato Toast"
    assert [ingredient.name for ingredient in recognition.meal.ingredients] == [
        "2 slices bread",
        "1 tomato",
    ]
    assert recognition.meal.instructions == ["Toast the bread.", "Top with sliced tomato."]
    assert dummy_tesseract.calls == [("L", "eng")]


def test_reader_uses_configured_language(monkeypatch, dummy_tesseract):
    from mealbook.config import get_settings

    monkeypatch.setenv("MEALBOOK_OCR_LANG", "deu")
    get_settings.cache_clear()

    RecipePhotoReader().read(_create_image_bytes("JPEG"), "image/jpeg")

    assert dummy_tesseract.calls == [("L", "deu")]


def test_rotated_photo_is_straightened(dummy_tesseract):
    dummy_tesseract.rotation = 90
    image = Image.new("RGB", (40, 20), color=(255, 255, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")

    RecipePhotoReader(lang="eng").recognize(buffer.getvalue(), "image/png")

    assert dummy_tesseract.seen_sizes == [(20, 40)]


def test_unsupported_content_type_is_rejected(dummy_tesseract):
    with pytest.raises(UnsupportedPhotoError, match="Unsupported image type"):
        RecipePhotoReader(lang="eng").read(_create_image_bytes(), "image/svg+xml")
    assert dummy_tesseract.calls == []


def test_undecodable_upload_is_a_format_error(dummy_tesseract):
    with pytest.raises(FormatError):
        RecipePhotoReader(lang="eng").read(b"definitely not an image", "image/png")


@pytest.mark.parametrize(
    "osd, expected",
    [("Rotate: 180", 180), ("Rotate: 450", 90), ("Orientation confidence: 2.1", 0)],
)
def test_parse_rotation_from_osd(osd, expected):
    assert RecipePhotoReader._parse_rotation_from_osd(osd) == expected
