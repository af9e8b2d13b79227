"""SQLite engine and session lifecycle for the meal store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from mealbook.config import get_settings
from mealbook.db.models import Base

logger = logging.getLogger(__name__)


class _State:
    engine: Optional[Engine] = None
    sessions: Optional[sessionmaker[Session]] = None


def _database_url(database_path: Path) -> str:
    if str(database_path) == ":memory:":
        return "sqlite://"
    database_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{database_path}"


def get_engine(database_path: Path | None = None) -> Engine:
    """Return the shared engine, creating the schema on first use."""

    if _State.engine is not None:
        return _State.engine

    db_path = database_path or get_settings().database_path
    engine = create_engine(
        _database_url(db_path),
        future=True,
        # FastAPI runs sync routes on a threadpool.
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    logger.debug("Meal store ready at %s", db_path)

    _State.engine = engine
    _State.sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    return engine


def get_session() -> Session:
    """Return a new SQLAlchemy session."""

    if _State.sessions is None:
        get_engine()
    assert _State.sessions is not None
    return _State.sessions()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error."""

    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_repository_state() -> None:
    """Dispose the cached engine (tests switch database paths between cases)."""

    if _State.engine is not None:
        _State.engine.dispose()
    _State.engine = None
    _State.sessions = None


__all__ = ["get_engine", "get_session", "session_scope", "reset_repository_state"]
