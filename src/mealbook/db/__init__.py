"""Persistence helpers backing the meal-creation endpoints."""

from .meals import create_meal, delete_meal, get_meal, list_meals, update_meal

__all__ = ["create_meal", "delete_meal", "get_meal", "list_meals", "update_meal"]
