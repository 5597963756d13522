# src/donotghostme/db/__init__.py
"""Database engine, sessions and clock helpers."""

from .session import Base, SessionLocal, engine, get_db
from .time import now_ms, utcnow

__all__ = ["Base", "SessionLocal", "engine", "get_db", "now_ms", "utcnow"]
