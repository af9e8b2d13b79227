"""OCR helpers for cookbook pages."""

from .parser import RecipeTextParser, parse_recipe_text
from .pipeline import PhotoRecognition, RecipePhotoReader, UnsupportedPhotoError

__all__ = [
    "PhotoRecognition",
    "RecipePhotoReader",
    "RecipeTextParser",
    "UnsupportedPhotoError",
    "parse_recipe_text",
]
