# src/donotghostme/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from donotghostme.models.enums import JobLevel, PositionCategory, ReportStatus, Stage


class ModerationAction(StrEnum):
    """Actions an administrator can apply to a report."""

    FLAG = "flag"
    RESTORE = "restore"
    DELETE = "delete"
    HARD_DELETE = "hard-delete"


class ModerationResult(BaseModel):
    """Outcome of a moderation action."""

    id: str
    action: ModerationAction
    status: ReportStatus | None = Field(None, description="New status; None after a hard delete")


class AdminReportResponse(BaseModel):
    """Report row as listed on the moderation dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    stage: Stage
    job_level: JobLevel
    position_category: PositionCategory
    position_detail: str
    days_without_reply: int | None
    status: ReportStatus
    flagged_at: datetime | None
    flagged_reason: str | None
    deleted_at: datetime | None
    created_at: datetime
