# src/donotghostme/scripts/ensure_db.py
"""Create the configured Postgres database when it does not exist yet."""

from __future__ import annotations

import argparse
import logging
import sys
from urllib.parse import urlsplit, urlunsplit

import psycopg
from psycopg import sql

from donotghostme.core.settings import settings

logger = logging.getLogger(__name__)


def normalize_to_psycopg(uri: str) -> str:
    """Return a Postgres URI suitable for ``psycopg.connect()``.

    Quotes and whitespace are stripped and SQLAlchemy driver suffixes
    (``postgresql+psycopg``) are reduced to plain ``postgresql``.

    Raises:
        ValueError: If the URI is empty or not a Postgres URI.
    """
    uri = (uri or "").strip().strip("'\"")
    if not uri:
        raise ValueError("DATABASE_URL is empty")

    parts = urlsplit(uri)
    scheme = parts.scheme.split("+", 1)[0]
    if scheme != "postgresql":
        raise ValueError(f"Not a Postgres URL: {parts.scheme or '<no scheme>'}")
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def split_maintenance_url(db_url: str) -> tuple[str, str]:
    """Return ``(maintenance_url, target_db)`` for ``db_url``."""
    parts = urlsplit(normalize_to_psycopg(db_url))
    target_db = parts.path.lstrip("/") or "postgres"
    if parts.netloc:
        admin_url = urlunsplit(("postgresql", parts.netloc, "/postgres", parts.query, parts.fragment))
    else:
        admin_url = "postgresql:///postgres"
    return admin_url, target_db


def ensure_database_exists(db_url: str) -> bool:
    """Create the target database if missing; return True when it was created."""
    admin_url, target_db = split_maintenance_url(db_url)
    with psycopg.connect(admin_url, autocommit=True) as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
        if cur.fetchone() is not None:
            logger.info("Database already exists", extra={"database": target_db})
            return False
        cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(target_db)))
    logger.info("Created database", extra={"database": target_db})
    return True


def main() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    parser = argparse.ArgumentParser(description="Ensure the configured Postgres database exists")
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to the effective settings URL)",
    )
    args = parser.parse_args()

    try:
        ensure_database_exists(args.url or settings.effective_database_url)
    except (ValueError, psycopg.Error):
        logger.error("Could not ensure database", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
