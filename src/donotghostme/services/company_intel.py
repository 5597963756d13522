# src/donotghostme/services/company_intel.py
"""Privacy-preserving company signals for third-party consumers.

No numbers are released for a company until it has at least ``k`` active
reports. Below that threshold a report count could point at an individual
reporter, so the caller only ever learns that data is insufficient.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from donotghostme.core.settings import settings
from donotghostme.db.time import utcnow
from donotghostme.models import Company, Report, ReportStatus
from donotghostme.schemas.company_intel import Confidence, CompanyIntelRequest, IntelSource
from donotghostme.utils.normalization import normalize_company_name

logger = logging.getLogger(__name__)

DEFAULT_K_ANONYMITY = 5
RECENT_WINDOW = timedelta(days=90)
_SECOND_LEVEL_SUFFIXES = frozenset({"co", "com", "org", "net", "gov", "edu"})


@dataclass(frozen=True)
class InsufficientData:
    """Marker result: not enough reports to release anything."""


@dataclass(frozen=True)
class CompanyIntel:
    """Aggregated signals for one company."""

    company_id: str
    display_name: str | None
    report_count_total: int
    report_count_90d: int
    risk_score: float | None
    confidence: Confidence
    updated_at: datetime


def derive_domain_label(host: str) -> str | None:
    """Return the registrable label of a host (``acme.co.uk`` -> ``acme``)."""
    parts = [part for part in host.split(".") if part]
    if len(parts) < 2:
        return None
    if len(parts) == 2:
        return parts[0]
    second_last, third_last = parts[-2], parts[-3]
    if second_last in _SECOND_LEVEL_SUFFIXES and third_last:
        return third_last
    return second_last or None


def derive_normalized_company_key(request: CompanyIntelRequest) -> str | None:
    """Map a validated request onto ``Company.normalized_name``."""
    raw = request.key
    if request.source is IntelSource.DOMAIN:
        label = derive_domain_label(request.key)
        if label is None:
            return None
        raw = label
    normalized = normalize_company_name(raw)
    return normalized or None


def derive_confidence(total: int, recent: int) -> Confidence:
    """Grade confidence from sample size and recency."""
    if total >= 30 or recent >= 15:
        return Confidence.HIGH
    if total >= 15 or recent >= 5:
        return Confidence.MEDIUM
    return Confidence.LOW


class CompanyIntelAggregator:
    """Aggregate active report counts behind a k-anonymity gate."""

    def __init__(self, k_anonymity: int = DEFAULT_K_ANONYMITY) -> None:
        if k_anonymity < 1:
            raise ValueError("k_anonymity must be positive")
        self.k_anonymity = k_anonymity

    def fetch(
        self,
        db: Session,
        request: CompanyIntelRequest,
        now: datetime | None = None,
    ) -> CompanyIntel | InsufficientData:
        """Return signals for the best matching company, or :class:`InsufficientData`.

        Args:
            db: Database session used for read-only aggregation.
            request: Validated lookup request.
            now: Reference time for the 90-day window.
        """
        normalized_key = derive_normalized_company_key(request)
        if normalized_key is None:
            return InsufficientData()

        moment = now or utcnow()
        report_count = func.count(Report.id).label("report_count")
        top = db.execute(
            select(Report.company_id, report_count)
            .join(Company, Company.id == Report.company_id)
            .where(
                Company.normalized_name == normalized_key,
                Report.status == ReportStatus.ACTIVE,
            )
            .group_by(Report.company_id)
            .order_by(report_count.desc(), Report.company_id.asc())
            .limit(1)
        ).first()

        if top is None:
            return InsufficientData()

        company_id, total = top[0], int(top[1])
        if total < self.k_anonymity:
            return InsufficientData()

        recent = db.execute(
            select(func.count(Report.id)).where(
                Report.company_id == company_id,
                Report.status == ReportStatus.ACTIVE,
                Report.created_at >= moment - RECENT_WINDOW,
            )
        ).scalar_one()

        company = db.get(Company, company_id)
        if company is None:
            logger.warning(
                "Company row missing for grouped reports",
                extra={"company_id": company_id, "normalized_key": normalized_key},
            )
            return InsufficientData()

        display_name = company.name.strip() or None
        return CompanyIntel(
            company_id=company_id,
            display_name=display_name,
            report_count_total=total,
            report_count_90d=int(recent),
            risk_score=None,
            confidence=derive_confidence(total, int(recent)),
            updated_at=moment,
        )


@lru_cache(maxsize=1)
def get_company_intel_aggregator() -> CompanyIntelAggregator:
    """Return the aggregator configured from settings."""
    return CompanyIntelAggregator(k_anonymity=settings.company_intel_k_anonymity)
