# src/donotghostme/core/correlation.py
"""Per-request correlation IDs for tying log lines to responses."""

from __future__ import annotations

import re
import uuid

from fastapi import Request

CORRELATION_ID_HEADER = "X-Correlation-Id"

_UUID_V4 = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-4[0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)


def derive_correlation_id(header_value: str | None) -> str:
    """Reuse a caller-supplied ID when it is a clean UUIDv4, else mint one.

    Values with surrounding whitespace, list separators or any other shape are
    replaced rather than repaired so callers cannot inject text into logs.
    """
    if header_value is not None and _UUID_V4.fullmatch(header_value):
        return header_value.lower()
    return str(uuid.uuid4())


def get_correlation_id(request: Request) -> str:
    """Return the ID the middleware stored for this request.

    Falls back to deriving one from the headers when the request did not pass
    through the middleware.
    """
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id is None:
        correlation_id = derive_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.correlation_id = correlation_id
    return correlation_id
