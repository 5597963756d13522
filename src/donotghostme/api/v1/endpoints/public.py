# src/donotghostme/api/v1/endpoints/public.py
"""Public, cacheable endpoints consumed by the browser extension."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from donotghostme.api.v1.dependencies import ClientIpDep, CompanyIntelDep, PublicLimiterDep, SessionDep
from donotghostme.core.settings import settings
from donotghostme.schemas.company_intel import (
    CompanyIntelCompany,
    CompanyIntelRequest,
    CompanyIntelResponse,
    CompanyIntelSignals,
    InsufficientDataResponse,
)
from donotghostme.services.company_intel import InsufficientData

logger = logging.getLogger(__name__)

INTEL_SCOPE = "company-intel"
CACHEABLE = {"Cache-Control": "public, s-maxage=120, stale-while-revalidate=600"}
NO_STORE = {"Cache-Control": "no-store"}

router = APIRouter(prefix="/public", tags=["public"])


@router.get(
    "/company-intel",
    response_model=CompanyIntelResponse | InsufficientDataResponse,
)
def get_company_intel(
    db: SessionDep,
    limiter: PublicLimiterDep,
    aggregator: CompanyIntelDep,
    client_ip: ClientIpDep,
    source: str | None = Query(None, description="Where the key was taken from"),
    key: str | None = Query(None, description="Company slug or domain"),
) -> JSONResponse:
    """Return k-anonymous signals for a company, or ``insufficient_data``.

    The limiter runs before the query is even validated, so malformed
    requests still count against the caller.
    """
    limiter.enforce(
        client_ip,
        INTEL_SCOPE,
        max_requests=settings.public_max_requests,
        window_ms=settings.public_window_ms,
    )

    try:
        request = CompanyIntelRequest.model_validate({"source": source, "key": key})
    except ValidationError:
        return JSONResponse(
            {"error": "Invalid input"},
            status_code=status.HTTP_400_BAD_REQUEST,
            headers=NO_STORE,
        )

    intel = aggregator.fetch(db, request)
    if isinstance(intel, InsufficientData):
        return JSONResponse(InsufficientDataResponse().model_dump(), headers=CACHEABLE)

    body = CompanyIntelResponse(
        company=CompanyIntelCompany(canonical_id=intel.company_id, display_name=intel.display_name),
        signals=CompanyIntelSignals(
            report_count_total=intel.report_count_total,
            report_count_90d=intel.report_count_90d,
            risk_score=intel.risk_score,
            confidence=intel.confidence,
        ),
        updated_at=intel.updated_at,
    )
    return JSONResponse(body.model_dump(mode="json", by_alias=True), headers=CACHEABLE)
