"""Recipe import from web pages.

A page is fetched once and then handed to an ordered list of extraction
strategies. The first strategy that returns a result wins:

1. :class:`JsonLdStrategy` scans ``application/ld+json`` blocks in document order
   for the first node typed ``Recipe`` (including nodes under ``@graph``). A
   block that fails to parse is skipped.
2. :class:`DomHeuristicStrategy` scrapes headings, Open Graph tags and elements
   carrying well-known ingredient/instruction classes. It never returns ``None``,
   so a reachable page always yields a meal, possibly an empty one.
"""

from __future__ import annotations

import html as html_lib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from mealbook import metrics
from mealbook.config import get_settings
from mealbook.ingest.errors import FetchError
from mealbook.ingest.normalize import (
    clean_text,
    coerce_tags,
    parse_duration_to_minutes,
    to_ingredients,
    to_instructions,
)
from mealbook.models.meal import PLACEHOLDER_NAME, CanonicalMeal, UrlProvenance

logger = logging.getLogger(__name__)

INGREDIENT_SELECTORS = ", ".join(
    (
        '[itemprop="recipeIngredient"]',
        ".ingredient",
        ".ingredients li",
        ".wprm-recipe-ingredient",
        ".tasty-recipes-ingredients li",
        ".recipe-ingredients li",
    )
)
INSTRUCTION_SELECTORS = ", ".join(
    (
        '[itemprop="recipeInstructions"] li',
        ".instructions li",
        ".steps li",
        ".directions li",
        ".wprm-recipe-instruction",
        ".tasty-recipes-instructions li",
        ".recipe-directions li",
    )
)

_LD_JSON_TYPE = re.compile(r"ld\+json", re.IGNORECASE)
_NESTED_KEYS = ("@graph", "mainEntity")


@dataclass(frozen=True)
class RecipePage:
    """Fetched page plus its parsed DOM."""

    url: str
    soup: BeautifulSoup

    @classmethod
    def parse(cls, url: str, markup: str) -> "RecipePage":
        return cls(url=url, soup=BeautifulSoup(markup, "html.parser"))

    def first_heading(self) -> str:
        heading = self.soup.find("h1")
        return clean_text(heading.get_text(" ")) if heading else ""

    def document_title(self) -> str:
        title = self.soup.find("title")
        return clean_text(title.get_text(" ")) if title else ""

    def og_image(self) -> str:
        meta = self.soup.find("meta", attrs={"property": "og:image"})
        if meta and meta.get("content"):
            return self.absolute(meta["content"])
        return ""

    def first_image(self) -> str:
        for img in self.soup.find_all("img"):
            src = img.get("src") or img.get("data-src") or ""
            if src and not src.startswith("data:"):
                return self.absolute(src)
        return ""

    def absolute(self, link: str) -> str:
        link = link.strip()
        return urljoin(self.url, link) if link else ""


@dataclass
class ExtractedRecipe:
    """Unnormalized fields recovered by one extraction strategy."""

    strategy: str
    name: str = ""
    image: str = ""
    total_time: Any = None
    prep_time: Any = None
    cook_time: Any = None
    ingredients: Any = None
    instructions: Any = None
    tags: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)


class ExtractionStrategy(Protocol):
    name: str

    def extract(self, page: RecipePage) -> Optional[ExtractedRecipe]:
        ...


def _is_recipe_type(value: Any) -> bool:
    if isinstance(value, str):
        return value == "Recipe" or value.endswith("/Recipe")
    if isinstance(value, list):
        return any(_is_recipe_type(entry) for entry in value)
    return False


def find_recipe_node(data: Any) -> Optional[Dict[str, Any]]:
    """Return the first ``Recipe``-typed node in a JSON-LD document, depth first."""

    if isinstance(data, list):
        for entry in data:
            found = find_recipe_node(entry)
            if found is not None:
                return found
        return None
    if not isinstance(data, dict):
        return None
    if _is_recipe_type(data.get("@type")):
        return data
    for key in _NESTED_KEYS:
        if key in data:
            found = find_recipe_node(data[key])
            if found is not None:
                return found
    return None


def _image_link(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        for entry in value:
            link = _image_link(entry)
            if link:
                return link
        return ""
    if isinstance(value, dict):
        return _image_link(value.get("url") or value.get("contentUrl"))
    return ""


def _unescape(value: Any) -> Any:
    if isinstance(value, str):
        return html_lib.unescape(value)
    if isinstance(value, list):
        return [_unescape(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _unescape(entry) for key, entry in value.items()}
    return value


class JsonLdStrategy:
    """Read schema.org ``Recipe`` metadata embedded as JSON-LD."""

    name = "json-ld"

    def extract(self, page: RecipePage) -> Optional[ExtractedRecipe]:
        blocks = page.soup.find_all("script", attrs={"type": _LD_JSON_TYPE})
        for index, block in enumerate(blocks):
            payload = block.string or block.get_text()
            if not payload or not payload.strip():
                continue
            try:
                data = json.loads(payload, strict=False)
            except json.JSONDecodeError as exc:
                logger.debug("Skipping malformed JSON-LD block %s on %s: %s", index, page.url, exc)
                continue
            node = find_recipe_node(data)
            if node is not None:
                return self._to_extracted(page, node)
        return None

    def _to_extracted(self, page: RecipePage, node: Dict[str, Any]) -> ExtractedRecipe:
        name = node.get("name")
        ingredients = node.get("recipeIngredient")
        if ingredients is None:
            ingredients = node.get("ingredients")
        if isinstance(ingredients, str):
            ingredients = [ingredients]
        return ExtractedRecipe(
            strategy=self.name,
            name=clean_text(html_lib.unescape(name)) if isinstance(name, str) else "",
            image=page.absolute(_image_link(node.get("image"))),
            total_time=node.get("totalTime"),
            prep_time=node.get("prepTime"),
            cook_time=node.get("cookTime"),
            ingredients=_unescape(ingredients),
            instructions=_unescape(node.get("recipeInstructions")),
            tags=coerce_tags(node.get("recipeCategory")) + coerce_tags(node.get("recipeCuisine")),
            raw=node,
        )


class DomHeuristicStrategy:
    """Best-effort scrape of pages without structured metadata."""

    name = "dom-heuristic"

    def __init__(
        self,
        *,
        ingredient_selectors: str = INGREDIENT_SELECTORS,
        instruction_selectors: str = INSTRUCTION_SELECTORS,
    ) -> None:
        self._ingredient_selectors = ingredient_selectors
        self._instruction_selectors = instruction_selectors

    def extract(self, page: RecipePage) -> Optional[ExtractedRecipe]:
        name = page.first_heading() or page.document_title()
        image = page.og_image() or page.first_image()
        ingredients = self._select_text(page.soup, self._ingredient_selectors)
        instructions = self._select_text(page.soup, self._instruction_selectors)
        return ExtractedRecipe(
            strategy=self.name,
            name=name,
            image=image,
            ingredients=ingredients,
            instructions=instructions,
            raw={
                "name": name,
                "image": image,
                "ingredients": ingredients,
                "instructions": instructions,
            },
        )

    @staticmethod
    def _select_text(soup: BeautifulSoup, selectors: str) -> List[str]:
        matches = soup.select(selectors)
        matched = {id(element) for element in matches}
        texts: List[str] = []
        for element in matches:
            # Outer containers give way to the more specific matches inside them.
            if any(id(child) in matched for child in element.find_all(True)):
                continue
            text = clean_text(element.get_text(" "))
            if text:
                texts.append(text)
        return texts


def default_strategies() -> List[ExtractionStrategy]:
    return [JsonLdStrategy(), DomHeuristicStrategy()]


class PageFetcher:
    """Retrieve page bodies with a browser-like user agent and no retries."""

    def __init__(
        self,
        *,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._user_agent = user_agent or settings.import_user_agent
        self._timeout = timeout if timeout is not None else settings.import_timeout
        self._transport = transport

    def fetch(self, url: str) -> str:
        if urlparse(url).scheme not in {"http", "https"}:
            raise FetchError(url, "URL must start with http:// or https://")

        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }
        try:
            with httpx.Client(
                headers=headers,
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            reason = f"HTTP {response.status_code}"
            if response.reason_phrase:
                reason = f"{reason} {response.reason_phrase}"
            raise FetchError(url, reason)
        return response.text


class UrlRecipeImporter:
    """Turn a recipe URL into one canonical meal."""

    def __init__(
        self,
        *,
        fetcher: Optional[PageFetcher] = None,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
    ) -> None:
        self._fetcher = fetcher or PageFetcher()
        self._strategies = list(strategies) if strategies is not None else default_strategies()

    def import_url(self, url: str) -> CanonicalMeal:
        url = url.strip()
        try:
            markup = self._fetcher.fetch(url)
        except FetchError as exc:
            logger.warning("Recipe fetch failed url=%s reason=%s", url, exc.reason)
            metrics.IMPORTS.labels(source="url", outcome="failed").inc()
            raise
        return self.import_html(markup, url)

    def import_html(self, markup: str, url: str) -> CanonicalMeal:
        page = RecipePage.parse(url, markup)
        extracted = self._extract(page)

        if extracted.total_time:
            minutes = parse_duration_to_minutes(extracted.total_time)
        else:
            minutes = parse_duration_to_minutes(extracted.prep_time) + parse_duration_to_minutes(
                extracted.cook_time
            )

        meal = CanonicalMeal(
            name=extracted.name or page.first_heading() or page.document_title() or PLACEHOLDER_NAME,
            photo_url=extracted.image or page.og_image(),
            estimated_minutes=minutes,
            ingredients=to_ingredients(extracted.ingredients),
            instructions=to_instructions(extracted.instructions),
            provenance=UrlProvenance(source_url=url, raw_payload=extracted.raw),
            tags=coerce_tags(extracted.tags),
        )

        outcome = "sparse" if meal.is_sparse else "succeeded"
        metrics.IMPORTS.labels(source="url", outcome=outcome).inc()
        logger.info(
            "Imported recipe url=%s strategy=%s ingredients=%s steps=%s",
            url,
            extracted.strategy,
            len(meal.ingredients),
            len(meal.instructions),
        )
        return meal

    def _extract(self, page: RecipePage) -> ExtractedRecipe:
        for strategy in self._strategies:
            extracted = strategy.extract(page)
            if extracted is not None:
                metrics.IMPORT_STRATEGY.labels(strategy=strategy.name).inc()
                logger.debug("Strategy %s matched %s", strategy.name, page.url)
                return extracted
        return ExtractedRecipe(strategy="none")


__all__ = [
    "DomHeuristicStrategy",
    "ExtractedRecipe",
    "ExtractionStrategy",
    "JsonLdStrategy",
    "PageFetcher",
    "RecipePage",
    "UrlRecipeImporter",
    "default_strategies",
    "find_recipe_node",
]
