"""ASGI application factory and dependencies for the Mealbook server."""

from mealbook.server.app import app, create_app

__all__ = ["app", "create_app"]
