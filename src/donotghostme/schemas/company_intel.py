# src/donotghostme/schemas/company_intel.py
"""Schemas for the public company intel lookup."""

from __future__ import annotations

import ipaddress
import re
from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

MAX_NON_DOMAIN_KEY_LENGTH = 160
MAX_DOMAIN_LENGTH = 253

SAFE_KEY_PATTERN = re.compile(r"^[a-z0-9._-]+$", re.IGNORECASE)
DNS_LABEL_PATTERN = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)
PROTOCOL_PATTERN = re.compile(r"^[a-z]+://")


class IntelSource(StrEnum):
    """Where the lookup key was scraped from by the browser extension."""

    LINKEDIN = "linkedin"
    GLASSDOOR = "glassdoor"
    INDEED = "indeed"
    WORKABLE = "workable"
    DOMAIN = "domain"


class Confidence(StrEnum):
    """How much the aggregated signals can be trusted."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def normalize_domain_host(raw: str) -> str:
    """Strip protocol, path, port, ``www.`` and a trailing dot from a host."""
    host = PROTOCOL_PATTERN.sub("", raw.strip().lower())
    host = host.split("/", 1)[0]
    host = host.split(":", 1)[0]
    host = host.removeprefix("www.")
    return host.removesuffix(".")


def is_valid_domain(host: str) -> bool:
    """Return True for a syntactically valid domain name that is not an IP literal."""
    if not host or len(host) > MAX_DOMAIN_LENGTH:
        return False
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        return False
    labels = host.split(".")
    if len(labels) < 2:
        return False
    return all(DNS_LABEL_PATTERN.match(label) for label in labels)


class CompanyIntelRequest(BaseModel):
    """Validated ``source``/``key`` query pair with a source-specific normalized key."""

    source: IntelSource
    key: str = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        source = data.get("source")
        key = data.get("key")
        if isinstance(source, str):
            source = source.strip().lower()
        if not isinstance(key, str):
            return {**data, "source": source}

        key = key.strip()
        if not key:
            raise ValueError("key is required")

        if source == IntelSource.DOMAIN:
            if len(key) > MAX_DOMAIN_LENGTH:
                raise ValueError("key is too long")
            key = normalize_domain_host(key)
            if not is_valid_domain(key):
                raise ValueError("Invalid domain")
        elif source in set(IntelSource):
            if len(key) > MAX_NON_DOMAIN_KEY_LENGTH:
                raise ValueError("key is too long")
            if not SAFE_KEY_PATTERN.match(key):
                raise ValueError("key contains invalid characters")
            key = key.lower()

        return {**data, "source": source, "key": key}


class CompanyIntelSignals(BaseModel):
    """Aggregated, non-identifying signals about a company."""

    report_count_total: int = Field(..., ge=0, serialization_alias="reportCountTotal")
    report_count_90d: int = Field(..., ge=0, serialization_alias="reportCount90d")
    risk_score: float | None = Field(None, ge=0, le=1, serialization_alias="riskScore")
    confidence: Confidence


class CompanyIntelCompany(BaseModel):
    """Identity block of a company intel response."""

    canonical_id: str = Field(..., serialization_alias="canonicalId")
    display_name: str | None = Field(None, serialization_alias="displayName")


class CompanyIntelResponse(BaseModel):
    """Success payload of the company intel endpoint."""

    company: CompanyIntelCompany
    signals: CompanyIntelSignals
    updated_at: datetime = Field(..., serialization_alias="updatedAt")


class InsufficientDataResponse(BaseModel):
    """Returned whenever releasing numbers could identify individual reporters."""

    status: Literal["insufficient_data"] = "insufficient_data"
