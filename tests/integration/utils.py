"""Helpers shared by the integration tests."""

from __future__ import annotations

from mealbook.config import get_settings


def auth_headers() -> dict[str, str]:
    """Bearer header for the configured API token, or nothing when auth is off."""

    token = get_settings().api_token
    return {"Authorization": f"Bearer {token}"} if token else {}


def file_upload(filename: str, content: bytes, content_type: str = "application/json") -> dict:
    """Multipart ``files`` mapping for the upload routes."""

    return {"file": (filename, content, content_type)}
