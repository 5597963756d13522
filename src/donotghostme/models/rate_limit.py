# src/donotghostme/models/rate_limit.py
"""Models backing report quotas and the shared admin login limiter.

Every identifier column holds a salted hash, never a raw client address.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from donotghostme.db.session import Base
from donotghostme.db.time import utcnow


class ReportIpDailyLimit(Base):
    """Accepted report count per hashed address and UTC day."""

    __tablename__ = "report_ip_daily_limit"
    __table_args__ = (
        UniqueConstraint("ip_hash", "day", name="uq_ip_day"),
        Index("idx_day", "day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    # UTC calendar day formatted as YYYY-MM-DD.
    day: Mapped[str] = mapped_column(String(10), nullable=False)
    # Attribute renamed so it does not shadow Row.count on result rows.
    report_count: Mapped[int] = mapped_column("count", Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class ReportIpCompanyLimit(Base):
    """Claim row: one accepted report per (address, company, position)."""

    __tablename__ = "report_ip_company_limit"
    __table_args__ = (
        UniqueConstraint("ip_hash", "company_id", "position_key", name="uq_ip_company_position"),
        Index("idx_ip_company", "ip_hash", "company_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    position_key: Mapped[str] = mapped_column(String(160), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class AdminLoginRateLimit(Base):
    """Failed admin login attempts for a hashed address.

    Timestamps are epoch milliseconds so the state machine can be evaluated
    with the same integer clock as the in-memory backend.
    """

    __tablename__ = "admin_login_rate_limit"

    ip_hash: Mapped[str] = mapped_column(String(128), primary_key=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_attempt_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    locked_until: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
