# src/donotghostme/api/v1/endpoints/security.py
"""Sink for browser Content-Security-Policy violation reports."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request, Response, status

from donotghostme.api.v1.dependencies import ClientIpDep, CorrelationIdDep, PublicLimiterDep
from donotghostme.core.settings import settings

logger = logging.getLogger(__name__)

CSP_REPORT_SCOPE = "csp-report"

router = APIRouter(prefix="/security", tags=["security"])


@router.post("/csp-report", status_code=status.HTTP_204_NO_CONTENT)
async def csp_report(
    request: Request,
    limiter: PublicLimiterDep,
    client_ip: ClientIpDep,
    correlation_id: CorrelationIdDep,
) -> Response:
    """Log a CSP violation report and answer 204.

    Browsers send ``application/csp-report`` bodies wrapped in a
    ``csp-report`` key; anything else that parses as JSON is logged whole.
    Unparseable bodies are logged too and never produce an error response.

    Raises:
        PublicRateLimitError: When the caller exceeds the public window
    """
    limiter.enforce(
        client_ip,
        CSP_REPORT_SCOPE,
        max_requests=settings.public_max_requests,
        window_ms=settings.public_window_ms,
    )

    raw = await request.body()
    try:
        body = json.loads(raw)
    except ValueError as err:
        logger.warning(
            "Failed to parse CSP report body",
            extra={"correlation_id": correlation_id, "error": str(err)},
        )
    else:
        report = body.get("csp-report", body) if isinstance(body, dict) else body
        logger.warning(
            "CSP violation received",
            extra={"correlation_id": correlation_id, "report": report},
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
