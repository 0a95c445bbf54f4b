"""Database configuration and connection management."""

from functools import lru_cache
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.models import metadata


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a sync engine for the given URL.

    In-memory SQLite shares one connection across threads so every
    session sees the same database.
    """
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **options)
        event.listen(engine, "connect", set_sqlite_pragma)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
    )


def set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
    """Set database connection parameters."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache
def get_engine() -> Engine:
    """Get the application engine."""
    return build_engine(settings.database_url, echo=settings.debug)


def init_db(engine: Engine) -> None:
    """Create all tables."""
    metadata.create_all(engine)


def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
