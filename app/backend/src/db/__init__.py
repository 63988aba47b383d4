"""Read-only session helpers for the lesson store."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .session import SessionLocal, engine as _engine


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield a session whose work is always rolled back.

    Insights never write; rolling back on exit releases any read transaction
    the snapshot queries opened.
    """

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def get_session_dependency() -> Iterator[Session]:
    """FastAPI dependency wrapping :func:`get_session`."""

    with get_session() as session:
        yield session


def get_engine() -> Engine:
    return _engine


__all__ = ["get_engine", "get_session", "get_session_dependency"]
