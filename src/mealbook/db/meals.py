"""Data access helpers for stored meals."""

from __future__ import annotations

import json
import logging
from typing import Any, List

from sqlalchemy import select

from mealbook.models.meal import CanonicalMeal, Meal, MealUpdate

from .models import MealORM
from .repository import session_scope

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def _decode(payload: str | None, fallback: Any) -> Any:
    if not payload:
        return fallback
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Discarding undecodable meal column payload=%r", payload[:80])
        return fallback


def _to_model(row: MealORM) -> Meal:
    return Meal.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "photo_url": row.photo_url,
            "estimated_minutes": row.estimated_minutes,
            "ingredients": _decode(row.ingredients, []),
            "instructions": _decode(row.instructions, []),
            "provenance": _decode(row.provenance, {"kind": "manual"}),
            "tags": _decode(row.tags, []),
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def create_meal(meal: CanonicalMeal) -> Meal:
    """Persist an imported or hand-entered meal and return the stored record."""

    payload = meal.model_dump(mode="json")
    with session_scope() as session:
        row = MealORM(
            name=payload["name"],
            photo_url=payload["photo_url"],
            estimated_minutes=payload["estimated_minutes"],
            ingredients=_encode(payload["ingredients"]),
            instructions=_encode(payload["instructions"]),
            provenance=_encode(payload["provenance"]),
            tags=_encode(payload["tags"]),
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        logger.debug("Stored meal id=%s source=%s", row.id, meal.provenance.kind)
        return _to_model(row)


def list_meals() -> List[Meal]:
    """Return all meals, newest first."""

    with session_scope() as session:
        rows = (
            session.execute(select(MealORM).order_by(MealORM.created_at.desc(), MealORM.id.desc()))
            .scalars()
            .all()
        )
        return [_to_model(row) for row in rows]


def get_meal(meal_id: int) -> Meal:
    """Return one meal or raise ``ValueError`` when it does not exist."""

    with session_scope() as session:
        row = session.get(MealORM, meal_id)
        if row is None:
            raise ValueError(f"Meal {meal_id} not found")
        return _to_model(row)


def update_meal(meal_id: int, changes: MealUpdate) -> Meal:
    """Apply a partial update; provenance is never rewritten."""

    fields = changes.model_dump(mode="json", exclude_unset=True)
    with session_scope() as session:
        row = session.get(MealORM, meal_id)
        if row is None:
            raise ValueError(f"Meal {meal_id} not found")
        for key, value in fields.items():
            if value is None:
                continue
            if key in {"ingredients", "instructions", "tags"}:
                value = _encode(value)
            setattr(row, key, value)
        session.flush()
        session.refresh(row)
        return _to_model(row)


def delete_meal(meal_id: int) -> None:
    """Remove a meal or raise ``ValueError`` when it does not exist."""

    with session_scope() as session:
        row = session.get(MealORM, meal_id)
        if row is None:
            raise ValueError(f"Meal {meal_id} not found")
        session.delete(row)
