# src/donotghostme/db/time.py
"""Time utilities for database models and limiters."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(utcnow().timestamp() * 1000)


def to_utc_day_key(moment: datetime) -> str:
    """Return the UTC calendar day of ``moment`` formatted as ``YYYY-MM-DD``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).strftime("%Y-%m-%d")
