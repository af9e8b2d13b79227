"""Cookbook photo recognition using Tesseract."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

try:  # pragma: no cover - import guarded for environments without pytesseract
    import pytesseract
except ImportError:  # pragma: no cover
    pytesseract = None  # type: ignore[assignment]

from mealbook.ingest.errors import FormatError
from mealbook.models.meal import CanonicalMeal
from mealbook.ocr.parser import RecipeTextParser

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/bmp",
    "image/tiff",
    "image/webp",
}


class UnsupportedPhotoError(FormatError):
    """Raised when an upload cannot be decoded or recognized as an image."""


@dataclass(frozen=True)
class PhotoRecognition:
    text: str
    meal: CanonicalMeal


class RecipePhotoReader:
    """Recognize text on a cookbook photo and hand it to the text parser."""

    def __init__(self, *, lang: str | None = None, parser: Optional[RecipeTextParser] = None) -> None:
        if lang is None:
            from mealbook.config import get_settings

            lang = get_settings().ocr_default_lang
        self._lang = lang
        self._parser = parser or RecipeTextParser()

    def read(self, content: bytes, content_type: str | None = None) -> PhotoRecognition:
        text = self.recognize(content, content_type)
        return PhotoRecognition(text=text, meal=self._parser.parse(text))

    def recognize(self, content: bytes, content_type: str | None = None) -> str:
        if pytesseract is None:  # pragma: no cover - guard for missing dependency
            raise UnsupportedPhotoError(
                "pytesseract is not installed. Install OCR extras to enable photo import."
            )
        normalized_type = (content_type or "").split(";")[0].strip().lower()
        if normalized_type and normalized_type.startswith("image/") and (
            normalized_type not in SUPPORTED_IMAGE_TYPES
        ):
            raise UnsupportedPhotoError(f"Unsupported image type {content_type}.")

        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise UnsupportedPhotoError("Upload is not an image format supported by OCR.") from exc

        processed = self._preprocess_image(image)
        text = pytesseract.image_to_string(processed, lang=self._lang)
        logger.debug("Recognized %s characters from photo", len(text))
        return text.strip()

    def _preprocess_image(self, image: Image.Image) -> Image.Image:
        processed = ImageOps.exif_transpose(image)
        processed = ImageOps.grayscale(processed)
        processed = ImageOps.autocontrast(processed)
        processed = processed.filter(ImageFilter.MedianFilter(size=3))

        try:
            osd = pytesseract.image_to_osd(processed, lang=self._lang)
            rotation = self._parse_rotation_from_osd(osd)
            if rotation:
                processed = processed.rotate(-rotation, expand=True, fillcolor=255)
        except Exception as exc:  # pragma: no cover - orientation detection best effort
            logger.debug("Orientation detection skipped: %s", exc)
        return processed

    @staticmethod
    def _parse_rotation_from_osd(osd: str) -> int:
        match = re.search(r"Rotate: (\d+)", osd)
        if not match:
            return 0
        return int(match.group(1)) % 360


__all__ = ["PhotoRecognition", "RecipePhotoReader", "UnsupportedPhotoError"]
