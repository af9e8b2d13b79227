"""Shared pytest fixtures for the Mealbook test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mealbook.config import get_settings
from mealbook.db.repository import reset_repository_state
from mealbook.server.app import create_app

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_mealbook.db"
    monkeypatch.setenv("MEALBOOK_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("MEALBOOK_API_TOKEN", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def page_fixture():
    """Load an HTML page from ``tests/fixtures/pages``."""

    def _load(name: str) -> str:
        return (FIXTURES_DIR / "pages" / name).read_text(encoding="utf-8")

    return _load


@pytest.fixture()
def paprika_fixture():
    """Load raw bytes of a Paprika export from ``tests/fixtures/paprika``."""

    def _load(name: str) -> bytes:
        return (FIXTURES_DIR / "paprika" / name).read_bytes()

    return _load
