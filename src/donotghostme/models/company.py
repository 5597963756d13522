# src/donotghostme/models/company.py
"""SQLAlchemy models for companies and the reports filed against them."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from donotghostme.db.session import Base
from donotghostme.db.time import utcnow
from donotghostme.models.enums import JobLevel, PositionCategory, ReportStatus, Stage


def _new_id() -> str:
    return str(uuid.uuid4())


class Company(Base):
    """A company scoped by its normalized name and country.

    The same normalized name may exist once per country.
    """

    __tablename__ = "company"
    __table_args__ = (
        UniqueConstraint("normalized_name", "country", name="uq_company_name_country"),
        Index("idx_company_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(120), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    reports: Mapped[list[Report]] = relationship(
        back_populates="company",
        cascade="all, delete-orphan",
    )


class Report(Base):
    """A single anonymous ghosting report."""

    __tablename__ = "report"
    __table_args__ = (
        Index("idx_report_company_id", "company_id"),
        Index("idx_report_status_company", "status", "company_id"),
        Index("idx_report_status_flagged_at", "status", "flagged_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("company.id", ondelete="CASCADE"),
        nullable=False,
    )
    stage: Mapped[Stage] = mapped_column(Enum(Stage, native_enum=False, length=32), nullable=False)
    job_level: Mapped[JobLevel] = mapped_column(
        Enum(JobLevel, native_enum=False, length=32),
        nullable=False,
    )
    position_category: Mapped[PositionCategory] = mapped_column(
        Enum(PositionCategory, native_enum=False, length=32),
        nullable=False,
    )
    position_detail: Mapped[str] = mapped_column(String(80), nullable=False)
    days_without_reply: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Moderation state; DELETED is a soft delete, hard deletes remove the row.
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus, native_enum=False, length=16),
        nullable=False,
        default=ReportStatus.ACTIVE,
    )
    flagged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    flagged_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    company: Mapped[Company] = relationship(back_populates="reports")
