# src/donotghostme/db/session.py
"""Engine, session factory and request-scoped session dependency."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from donotghostme.core.settings import settings

# Seconds a SQLite writer waits on a locked file before failing.
SQLITE_BUSY_TIMEOUT = 15


class Base(DeclarativeBase):
    """Declarative base for companies, reports and limiter tables."""


# Register every model on Base.metadata before create_all or alembic runs.
import donotghostme.models  # noqa: E402,F401


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine tuned for ``url``'s backend.

    SQLite connections are shared across the worker threads FastAPI runs sync
    routes on, and get foreign keys enforced. Other backends ping pooled
    connections before handing them out.
    """
    kwargs: dict[str, Any]
    if _is_sqlite(url):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
    else:
        kwargs = {"pool_pre_ping": True}

    new_engine = create_engine(url, echo=echo, **kwargs)

    if _is_sqlite(url):

        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create every table from the ORM metadata, skipping existing ones."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop every table known to the ORM metadata."""
    Base.metadata.drop_all(bind=engine)
