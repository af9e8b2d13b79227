"""Integration tests for the recipe import endpoints."""

from __future__ import annotations

import httpx
import pytest
from fastapi import status
from prometheus_client import REGISTRY

from mealbook.ingest.errors import FetchError
from mealbook.ingest.url import PageFetcher, UrlRecipeImporter
from mealbook.models.meal import CanonicalMeal, OcrProvenance
from mealbook.ocr.pipeline import PhotoRecognition, UnsupportedPhotoError
from mealbook.server import deps
from tests.integration.utils import auth_headers, file_upload


def _import_count(source: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value("mealbook_imports_total", {"source": source, "outcome": outcome})
    return value or 0.0


def test_import_url_returns_canonical_meal(app, client, page_fixture):
    markup = page_fixture("jsonld_recipe.html")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=markup)

    fetcher = PageFetcher(transport=httpx.MockTransport(handler))
    app.dependency_overrides[deps.get_url_importer] = lambda: UrlRecipeImporter(fetcher=fetcher).import_url

    response = client.post(
        "/import/url",
        json={"url": "https://example.com/recipes/chili"},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["name"] == "Weeknight Chili & Cornbread"
    assert body["estimated_minutes"] == 60
    assert body["ingredients"][0] == {"name": "1 lb ground beef", "amount": None, "unit": None}
    assert body["provenance"]["kind"] == "url"
    assert body["provenance"]["source_url"] == "https://example.com/recipes/chili"


def test_import_url_fetch_failure_is_client_error(app, client):
    def failing_importer(url: str) -> CanonicalMeal:
        raise FetchError(url, "HTTP 404 Not Found")

    app.dependency_overrides[deps.get_url_importer] = lambda: failing_importer

    response = client.post("/import/url", json={"url": "https://example.com/missing"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {
        "error": "Failed to fetch recipe from https://example.com/missing: HTTP 404 Not Found"
    }


def test_import_url_unexpected_failure_is_server_error(app, client):
    def broken_importer(url: str) -> CanonicalMeal:
        raise KeyError("boom")

    app.dependency_overrides[deps.get_url_importer] = lambda: broken_importer
    before = _import_count("url", "failed")

    response = client.post("/import/url", json={"url": "https://example.com/broken"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "error" in response.json()
    assert _import_count("url", "failed") == before + 1


@pytest.mark.parametrize("payload", [{}, {"url": ""}, {"url": "   "}])
def test_import_url_requires_url(client, payload):
    response = client.post("/import/url", json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "URL is required"}


def test_import_url_malformed_body_uses_error_envelope(client):
    response = client.post("/import/url", json={"url": ["https://example.com"]})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("Invalid url:")


def test_import_paprika_upload(client, paprika_fixture):
    response = client.post(
        "/import/paprika",
        files={"file": ("export.json", paprika_fixture("export.json"), "application/json")},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    meals = response.json()["meals"]
    assert [meal["name"] for meal in meals] == ["Shakshuka", "Overnight Oats"]
    assert meals[0]["provenance"]["kind"] == "paprika"


def test_import_paprika_rejects_unrecognized_export(client):
    response = client.post(
        "/import/paprika",
        files={"file": ("notes.txt", b"nothing to see", "text/plain")},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "No recipes found in Paprika XML export."}


def test_import_paprika_rejects_empty_upload(client):
    response = client.post(
        "/import/paprika",
        files={"file": ("empty.json", b"", "application/json")},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Uploaded file is empty."}


@pytest.mark.parametrize("route", ["/import/paprika", "/import/photo"])
def test_import_upload_requires_file(client, route):
    response = client.post(route, data={"note": "no file attached"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("Invalid file:")


def test_import_paprika_non_finite_time_still_imports(client):
    response = client.post(
        "/import/paprika",
        files=file_upload("export.json", b'[{"name": "Slow Roast", "total_time": 1e400}]'),
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    meal = response.json()["meals"][0]
    assert meal["name"] == "Slow Roast"
    assert meal["estimated_minutes"] == 0
    assert meal["provenance"]["raw_payload"] == {"name": "Slow Roast", "total_time": None}


def test_import_paprika_enforces_upload_limit(monkeypatch, client):
    from mealbook.config import get_settings

    monkeypatch.setenv("MEALBOOK_MAX_UPLOAD_BYTES", "16")
    get_settings.cache_clear()

    response = client.post(
        "/import/paprika",
        files={"file": ("big.json", b"[" + b"{}," * 20 + b"{}]", "application/json")},
    )
    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    assert response.json() == {"error": "Upload exceeds 16 byte limit."}


def test_import_ocr_returns_draft(client):
    text = "Pancakes\nIngredients\n1 cup flour\n1 egg\nDirections\n1. Whisk.\n2. Fry 3 minutes."

    response = client.post("/import/ocr", json={"text": text}, headers=auth_headers())

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "name": "Pancakes",
        "ingredients": ["1 cup flour", "1 egg"],
        "instructions": ["Whisk.", "Fry 3 minutes."],
        "estimated_cooking_time": 3,
    }


def test_import_ocr_tolerates_empty_text(client):
    response = client.post("/import/ocr", json={"text": ""})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "Untitled Recipe"


def test_import_photo_returns_text_and_draft(app, client):
    seen: list[tuple[bytes, str | None]] = []

    def reader(content: bytes, content_type: str | None) -> PhotoRecognition:
        seen.append((content, content_type))
        meal = CanonicalMeal(
            name="Toast",
            ingredients=["1 slice bread"],
            instructions=["Toast it."],
            provenance=OcrProvenance(),
        )
        return PhotoRecognition(text="Toast\n1 slice bread\n1. Toast it.", meal=meal)

    app.dependency_overrides[deps.get_photo_reader] = lambda: reader

    response = client.post(
        "/import/photo",
        files={"file": ("page.png", b"fake-png-bytes", "image/png")},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "text": "Toast\n1 slice bread\n1. Toast it.",
        "draft": {
            "name": "Toast",
            "ingredients": ["1 slice bread"],
            "instructions": ["Toast it."],
            "estimated_cooking_time": 0,
        },
    }
    assert seen == [(b"fake-png-bytes", "image/png")]


def test_import_photo_rejects_non_image(app, client):
    def reader(content: bytes, content_type: str | None) -> PhotoRecognition:
        raise UnsupportedPhotoError("Upload is not an image format supported by OCR.")

    app.dependency_overrides[deps.get_photo_reader] = lambda: reader

    response = client.post(
        "/import/photo",
        files={"file": ("page.txt", b"hello", "text/plain")},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Upload is not an image format supported by OCR."}
