# src/donotghostme/services/moderation.py
"""Moderation services for administrators."""

from __future__ import annotations

import logging
from typing import assert_never

from sqlalchemy import select
from sqlalchemy.orm import Session

from donotghostme.db.time import utcnow
from donotghostme.models import Report, ReportStatus
from donotghostme.schemas.moderation import ModerationAction, ModerationResult

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 255


class ReportNotFoundError(LookupError):
    """Raised when a moderation target does not exist."""


class ModerationService:
    """Service handling moderation state transitions."""

    @staticmethod
    def list_reports(db: Session, status: ReportStatus | None = None, limit: int = 100) -> list[Report]:
        """Return the newest reports, optionally filtered by status."""
        stmt = select(Report).order_by(Report.created_at.desc(), Report.id.asc()).limit(limit)
        if status is not None:
            stmt = stmt.where(Report.status == status)
        return list(db.execute(stmt).scalars())

    @staticmethod
    def apply(
        db: Session,
        report_id: str,
        action: ModerationAction,
        reason: str | None = None,
    ) -> ModerationResult:
        """Apply ``action`` to a report and commit.

        Args:
            db: Database session
            report_id: Identifier of the report to moderate
            action: Moderation action to apply
            reason: Optional free-text reason, stored for flags only

        Raises:
            ReportNotFoundError: If the report does not exist.
        """
        report = db.get(Report, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        now = utcnow()
        status: ReportStatus | None
        match action:
            case ModerationAction.FLAG:
                report.status = ReportStatus.FLAGGED
                report.flagged_at = now
                report.flagged_reason = _normalize_reason(reason)
                status = report.status
            case ModerationAction.RESTORE:
                report.status = ReportStatus.ACTIVE
                report.flagged_at = None
                report.flagged_reason = None
                report.deleted_at = None
                status = report.status
            case ModerationAction.DELETE:
                # Soft delete keeps the row but hides it from public aggregates.
                report.status = ReportStatus.DELETED
                report.deleted_at = now
                status = report.status
            case ModerationAction.HARD_DELETE:
                db.delete(report)
                status = None
            case _:
                assert_never(action)

        db.commit()
        logger.info("Report moderated", extra={"report_id": report_id, "action": action.value})
        return ModerationResult(id=report_id, action=action, status=status)


def _normalize_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    trimmed = reason.strip()
    return trimmed[:MAX_REASON_LENGTH] or None
