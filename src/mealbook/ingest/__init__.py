"""Recipe importers converging on :class:`~mealbook.models.meal.CanonicalMeal`."""

from .errors import FetchError, FormatError, RecipeImportError
from .paprika import PaprikaImporter, import_paprika
from .url import PageFetcher, UrlRecipeImporter

__all__ = [
    "FetchError",
    "FormatError",
    "PageFetcher",
    "PaprikaImporter",
    "RecipeImportError",
    "UrlRecipeImporter",
    "import_paprika",
]
