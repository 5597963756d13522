# src/donotghostme/main.py
"""Main entry point for the Do Not Ghost Me API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from donotghostme import __version__
from donotghostme.api.v1 import (
    admin_router,
    companies_router,
    public_router,
    reports_router,
    security_router,
    system_router,
)
from donotghostme.core.correlation import CORRELATION_ID_HEADER, derive_correlation_id, get_correlation_id
from donotghostme.core.errors import AdmissionDeniedError, PublicRateLimitError
from donotghostme.core.settings import settings

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Anonymous reports about companies that ghost job candidates",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=[CORRELATION_ID_HEADER],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag each request with a correlation ID and echo it on the response."""
    request.state.correlation_id = derive_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
    response = await call_next(request)
    response.headers[CORRELATION_ID_HEADER] = request.state.correlation_id
    return response


@app.exception_handler(AdmissionDeniedError)
async def admission_denied_handler(request: Request, exc: AdmissionDeniedError) -> JSONResponse:
    """Render every admission denial as ``{"error", "reason"}``."""
    headers = {"Cache-Control": "no-store"}
    if isinstance(exc, PublicRateLimitError) and exc.retry_after_seconds is not None:
        headers["Retry-After"] = str(exc.retry_after_seconds)
    return JSONResponse(
        {"error": exc.message, "reason": exc.reason.value},
        status_code=exc.status_code,
        headers=headers,
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log store failures with context and answer with a generic 500."""
    logger.error(
        "Database error while handling request",
        extra={
            "path": request.url.path,
            "method": request.method,
            "correlation_id": get_correlation_id(request),
        },
        exc_info=exc,
    )
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=500,
        headers={"Cache-Control": "no-store"},
    )


# Include API routers
app.include_router(reports_router, prefix="/api/v1")
app.include_router(companies_router, prefix="/api/v1")
app.include_router(public_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(security_router, prefix="/api/v1")
app.include_router(system_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "environment": settings.app_env,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("donotghostme.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
