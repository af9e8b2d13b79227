"""SQLAlchemy models representing Mealbook persistence tables."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for Mealbook ORM models."""


class MealORM(Base):
    """Stored meal; list-shaped fields are JSON-encoded text."""

    __tablename__ = "meals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    estimated_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ingredients: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    instructions: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    provenance: Mapped[str] = mapped_column(Text, nullable=False, default='{"kind": "manual"}')
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
