"""SQLAlchemy engine and session factory for the lesson store."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import sessionmaker

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[4]


def _resolve_database_url(raw_url: str) -> URL:
    """Anchor relative SQLite paths at the project root."""

    url = make_url(raw_url)
    if not url.drivername.startswith("sqlite"):
        return url

    database = url.database or ""
    if database in {"", ":memory:"} or Path(database).is_absolute():
        return url

    resolved = (PROJECT_ROOT / database).resolve()
    LOGGER.info("database_path_normalized", original=database, resolved=str(resolved))
    return url.set(database=str(resolved))


def build_engine(raw_url: str) -> Engine:
    """Create an engine for ``raw_url`` with SQLite thread checks relaxed."""

    url = _resolve_database_url(raw_url)
    connect_args: dict[str, object] = {}
    if url.drivername.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(get_settings().database_url)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)

LOGGER.info("database_engine_initialized", url=str(engine.url))

__all__ = ["SessionLocal", "build_engine", "engine"]
