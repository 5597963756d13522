# src/donotghostme/api/v1/endpoints/reports.py
"""Report submission and public aggregate endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status

from donotghostme.api.v1.dependencies import (
    ClientIpDep,
    PublicLimiterDep,
    ReportQuotaEngineDep,
    SessionDep,
)
from donotghostme.core.errors import RateLimitReason, ReportRateLimitError
from donotghostme.core.security import is_missing_ip
from donotghostme.core.settings import settings
from donotghostme.schemas.report import ReportCreate, ReportCreatedResponse, ReportStatsResponse
from donotghostme.services.report_service import report_stats, submit_report

logger = logging.getLogger(__name__)

STATS_SCOPE = "reports-stats"

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post(
    "",
    response_model=ReportCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={204: {"description": "Submission silently discarded"}},
)
def create_report(
    payload: ReportCreate,
    db: SessionDep,
    engine: ReportQuotaEngineDep,
    client_ip: ClientIpDep,
) -> ReportCreatedResponse | Response:
    """Submit an anonymous ghosting report.

    Args:
        payload: Validated report data
        db: Database session
        engine: Quota engine guarding the write
        client_ip: Proxy-aware client address

    Returns:
        Identifier and creation time of the stored report

    Raises:
        ReportRateLimitError: When the address is unknown or a quota denies the report
    """
    if payload.honeypot:
        # Bots get a success-looking empty response and nothing is stored.
        logger.info("Discarded report with filled honeypot field")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    if client_ip is None or is_missing_ip(client_ip):
        logger.warning("Rejected report without client address")
        raise ReportRateLimitError(
            "We could not determine your IP address.",
            RateLimitReason.MISSING_IP,
        )

    report = submit_report(db, engine, payload=payload, ip=client_ip)
    return ReportCreatedResponse(id=report.id, created_at=report.created_at)


@router.get("/stats", response_model=ReportStatsResponse)
def get_report_stats(
    response: Response,
    db: SessionDep,
    limiter: PublicLimiterDep,
    client_ip: ClientIpDep,
) -> ReportStatsResponse:
    """Return the total of active reports and this week's most reported company."""
    limiter.enforce(
        client_ip,
        STATS_SCOPE,
        max_requests=settings.reports_stats_max_requests,
        window_ms=settings.reports_stats_window_ms,
    )
    response.headers["Cache-Control"] = "no-store"
    return report_stats(db)
