# src/donotghostme/init_db.py
"""Create every table directly from the ORM metadata (development only)."""

from __future__ import annotations

import logging

from donotghostme.core.settings import settings
from donotghostme.db.session import create_tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()
    logger.info("Database initialized", extra={"env": settings.app_env})


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    init_db()
