"""
Mealbook meal-planning package.

The package exposes recipe importers that normalize web pages, Paprika exports and
OCR'd cookbook pages into one canonical meal shape, plus the API and persistence
layers that hand those meals to the rest of the application.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
