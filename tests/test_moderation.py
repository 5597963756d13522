"""Tests for admin moderation state transitions."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from sqlalchemy.orm import Session

from donotghostme.models import Company, Report, ReportStatus
from donotghostme.schemas.moderation import ModerationAction
from donotghostme.services.moderation import ModerationService, ReportNotFoundError


@pytest.fixture()
def report(make_company: Callable[..., Company], make_report: Callable[..., Report]) -> Report:
    return make_report(make_company())


class TestModerationService:
    def test_flag_records_reason(self, db_session: Session, report: Report) -> None:
        result = ModerationService.apply(db_session, report.id, ModerationAction.FLAG, "  spam  ")

        assert result.status is ReportStatus.FLAGGED
        db_session.refresh(report)
        assert report.status is ReportStatus.FLAGGED
        assert report.flagged_at is not None
        assert report.flagged_reason == "spam"

    def test_flag_reason_is_truncated(self, db_session: Session, report: Report) -> None:
        ModerationService.apply(db_session, report.id, ModerationAction.FLAG, "x" * 300)
        db_session.refresh(report)
        assert report.flagged_reason == "x" * 255

    def test_restore_clears_moderation_metadata(self, db_session: Session, report: Report) -> None:
        ModerationService.apply(db_session, report.id, ModerationAction.FLAG, "spam")
        ModerationService.apply(db_session, report.id, ModerationAction.DELETE)
        result = ModerationService.apply(db_session, report.id, ModerationAction.RESTORE)

        assert result.status is ReportStatus.ACTIVE
        db_session.refresh(report)
        assert report.flagged_at is None
        assert report.flagged_reason is None
        assert report.deleted_at is None

    def test_soft_delete_keeps_row(self, db_session: Session, report: Report) -> None:
        ModerationService.apply(db_session, report.id, ModerationAction.DELETE)
        db_session.refresh(report)
        assert report.status is ReportStatus.DELETED
        assert report.deleted_at is not None

    def test_hard_delete_removes_row(self, db_session: Session, report: Report) -> None:
        report_id = report.id
        result = ModerationService.apply(db_session, report_id, ModerationAction.HARD_DELETE)

        assert result.status is None
        assert db_session.get(Report, report_id) is None

    def test_missing_report(self, db_session: Session) -> None:
        with pytest.raises(ReportNotFoundError):
            ModerationService.apply(db_session, "does-not-exist", ModerationAction.FLAG)

    def test_list_reports_filters_by_status(self, db_session: Session, report: Report) -> None:
        ModerationService.apply(db_session, report.id, ModerationAction.FLAG)

        assert [r.id for r in ModerationService.list_reports(db_session, ReportStatus.FLAGGED)] == [report.id]
        assert ModerationService.list_reports(db_session, ReportStatus.ACTIVE) == []
        assert len(ModerationService.list_reports(db_session)) == 1
