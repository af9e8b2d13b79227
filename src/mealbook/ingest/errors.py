"""Terminal failures raised by the recipe importers."""

from __future__ import annotations


class RecipeImportError(RuntimeError):
    """Raised when an import cannot produce any meal at all."""


class FetchError(RecipeImportError):
    """Raised when a recipe page cannot be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch recipe from {url}: {reason}")


class FormatError(RecipeImportError):
    """Raised when a payload matches none of the recognized dialects."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


__all__ = ["RecipeImportError", "FetchError", "FormatError"]
