"""Prometheus metrics definitions for Mealbook."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "mealbook_http_requests_total",
    "Total number of HTTP requests processed by the Mealbook API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "mealbook_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Mealbook API",
    ["method", "path"],
)

IMPORTS = Counter(
    "mealbook_imports_total",
    "Number of recipe imports by source and outcome",
    ["source", "outcome"],
)

IMPORT_STRATEGY = Counter(
    "mealbook_import_strategy_total",
    "URL imports grouped by the extraction strategy that produced the meal",
    ["strategy"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "IMPORTS",
    "IMPORT_STRATEGY",
]
