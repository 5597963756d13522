# src/donotghostme/services/report_service.py
"""Service-level helpers for submitting and aggregating reports."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from donotghostme.db.time import utcnow
from donotghostme.models import Company, Report, ReportStatus
from donotghostme.schemas.report import ReportCreate, ReportStatsResponse, TopCompany
from donotghostme.services.report_quota import ReportQuotaEngine
from donotghostme.utils.normalization import normalize_company_name, normalize_country

logger = logging.getLogger(__name__)

MAX_SEARCH_QUERY_LENGTH = 120
MAX_SEARCH_RESULTS = 10
_TOP_COMPANY_CANDIDATES = 50


def find_or_create_company(db: Session, *, company_name: str, country: str) -> Company:
    """Return the company for ``(normalized name, country)``, creating it if needed.

    A concurrent creation of the same company surfaces as a unique violation;
    the row created by the other request is re-read and returned.

    Raises:
        ValueError: If the name has no letters or digits left after normalization.
    """
    normalized_name = normalize_company_name(company_name)
    if not normalized_name:
        raise ValueError("Company name must not be empty after normalization")
    country_code = normalize_country(country)

    lookup = select(Company).where(
        Company.normalized_name == normalized_name,
        Company.country == country_code,
    )
    existing = db.execute(lookup).scalar_one_or_none()
    if existing is not None:
        return existing

    company = Company(name=company_name.strip(), normalized_name=normalized_name, country=country_code)
    db.add(company)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Concurrent company creation detected; reusing existing row",
            extra={"normalized_name": normalized_name, "country": country_code},
        )
        return db.execute(lookup).scalar_one()

    logger.info(
        "Created company",
        extra={"company_id": company.id, "normalized_name": normalized_name, "country": country_code},
    )
    return company


def submit_report(
    db: Session,
    engine: ReportQuotaEngine,
    *,
    payload: ReportCreate,
    ip: str | None,
    now: datetime | None = None,
) -> Report:
    """Persist a report once every quota admits it.

    Raises:
        ReportRateLimitError: When a quota denies the submission.
    """
    company = find_or_create_company(db, company_name=payload.company_name, country=payload.country)
    company_id = company.id

    with engine.admission(
        db,
        ip=ip,
        company_id=company_id,
        position_category=payload.position_category,
        position_detail=payload.position_detail,
        now=now,
    ):
        report = Report(
            company_id=company_id,
            stage=payload.stage,
            job_level=payload.job_level,
            position_category=payload.position_category,
            position_detail=payload.position_detail,
            days_without_reply=payload.days_without_reply,
            created_at=now or utcnow(),
        )
        db.add(report)
        db.flush()

    logger.info("Report accepted", extra={"report_id": report.id, "company_id": company_id})
    return report


def utc_week_start(moment: datetime) -> datetime:
    """Return Monday 00:00 UTC of the week containing ``moment``."""
    day_start = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return day_start - timedelta(days=day_start.weekday())


def report_stats(db: Session, now: datetime | None = None) -> ReportStatsResponse:
    """Count active reports and pick this week's most reported company.

    Ties on the weekly count are broken by case-insensitive company name, then id.
    """
    moment = now or utcnow()
    week_start = utc_week_start(moment)
    week_end = week_start + timedelta(days=7)

    total = db.execute(
        select(func.count(Report.id)).where(Report.status == ReportStatus.ACTIVE)
    ).scalar_one()

    weekly_count = func.count(Report.id).label("report_count")
    rows = db.execute(
        select(Company.id, Company.name, weekly_count)
        .join(Report, Report.company_id == Company.id)
        .where(
            Report.status == ReportStatus.ACTIVE,
            Report.created_at >= week_start,
            Report.created_at < week_end,
        )
        .group_by(Company.id, Company.name)
        .order_by(weekly_count.desc(), Company.id.asc())
        .limit(_TOP_COMPANY_CANDIDATES)
    ).all()

    top: TopCompany | None = None
    named = [row for row in rows if row.name and row.name.strip()]
    if named:
        best = max(row.report_count for row in named)
        winner = min(
            (row for row in named if row.report_count == best),
            key=lambda row: (row.name.casefold(), row.id),
        )
        top = TopCompany(name=winner.name, report_count=winner.report_count)

    return ReportStatsResponse(total_reports=int(total), most_reported_company=top)


def search_companies(db: Session, query: str | None) -> list[Company]:
    """Return up to ten companies whose name starts with ``query`` (case-insensitive)."""
    if query is None:
        return []
    trimmed = query.strip()[:MAX_SEARCH_QUERY_LENGTH]
    if not trimmed:
        return []
    escaped = trimmed.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    stmt = (
        select(Company)
        .where(Company.name.ilike(f"{escaped}%", escape="\\"))
        .order_by(Company.name.asc(), Company.id.asc())
        .limit(MAX_SEARCH_RESULTS)
    )
    return list(db.execute(stmt).scalars())
