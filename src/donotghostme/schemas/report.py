# src/donotghostme/schemas/report.py
"""Report-related Pydantic schemas."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from donotghostme.models.enums import JobLevel, PositionCategory, Stage

# Letters, digits, spaces and a limited set of safe symbols.
NAME_LIKE_PATTERN = re.compile(r"^[\w _\-/&()'\",.+#]+$", re.UNICODE)
COUNTRY_PATTERN = re.compile(r"^[A-Z]{2}$")


def _validate_name_like(value: str, label: str) -> str:
    trimmed = value.strip()
    if not NAME_LIKE_PATTERN.match(trimmed):
        raise ValueError(f"{label} contains invalid characters")
    if not any(ch.isalpha() for ch in trimmed):
        raise ValueError(f"{label} must contain at least one letter")
    return trimmed


class ReportCreate(BaseModel):
    """Schema for submitting a ghosting report."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    company_name: str = Field(..., min_length=2, max_length=120, alias="companyName")
    stage: Stage
    job_level: JobLevel = Field(..., alias="jobLevel")
    position_category: PositionCategory = Field(..., alias="positionCategory")
    position_detail: str = Field(..., min_length=2, max_length=80, alias="positionDetail")
    days_without_reply: int | None = Field(None, ge=1, le=365, alias="daysWithoutReply")
    country: str = Field(..., description="ISO 3166-1 alpha-2 country code")
    honeypot: str | None = Field(None, description="Hidden anti-bot field; must stay empty")

    @field_validator("company_name")
    @classmethod
    def _check_company_name(cls, value: str) -> str:
        return _validate_name_like(value, "Company name")

    @field_validator("position_detail")
    @classmethod
    def _check_position_detail(cls, value: str) -> str:
        return _validate_name_like(value, "Position detail")

    @field_validator("days_without_reply", mode="before")
    @classmethod
    def _blank_days_as_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("country", mode="before")
    @classmethod
    def _check_country(cls, value: object) -> object:
        if not isinstance(value, str) or not COUNTRY_PATTERN.match(value.strip().upper()):
            raise ValueError("Please select a country")
        return value.strip().upper()


class ReportCreatedResponse(BaseModel):
    """Schema returned after a report was accepted."""

    id: str
    created_at: datetime = Field(..., serialization_alias="createdAt")


class TopCompany(BaseModel):
    """Most reported company over a period."""

    name: str
    report_count: int = Field(..., serialization_alias="reportCount")


class ReportStatsResponse(BaseModel):
    """Public aggregate counters shown on the home page."""

    total_reports: int = Field(..., serialization_alias="totalReports")
    most_reported_company: TopCompany | None = Field(
        None,
        serialization_alias="mostReportedCompany",
    )


class CompanySuggestion(BaseModel):
    """Autocomplete entry for the company search endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    country: str
