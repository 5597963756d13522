# src/donotghostme/models/enums.py
"""Closed enumerations persisted on reports."""

from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    """Hiring pipeline stage at which the candidate was ghosted."""

    CV_SCREEN = "CV_SCREEN"
    FIRST_INTERVIEW = "FIRST_INTERVIEW"
    TECHNICAL = "TECHNICAL"
    HR_INTERVIEW = "HR_INTERVIEW"
    OFFER = "OFFER"
    OTHER = "OTHER"


class JobLevel(StrEnum):
    """Seniority of the role applied for."""

    INTERN = "INTERN"
    JUNIOR = "JUNIOR"
    MID = "MID"
    SENIOR = "SENIOR"
    LEAD = "LEAD"
    OTHER = "OTHER"


class PositionCategory(StrEnum):
    """Coarse role taxonomy used in position claim keys."""

    IT = "IT"
    ENGINEERING = "ENGINEERING"
    FINANCE_ACCOUNTING = "FINANCE_ACCOUNTING"
    AUDIT_ADVISORY = "AUDIT_ADVISORY"
    CONSULTING = "CONSULTING"
    HR = "HR"
    SALES_MARKETING = "SALES_MARKETING"
    RESEARCH_DEVELOPMENT = "RESEARCH_DEVELOPMENT"
    DESIGN = "DESIGN"
    PRODUCT = "PRODUCT"
    OPERATIONS = "OPERATIONS"
    PROJECT_PROGRAM = "PROJECT_PROGRAM"
    ADMINISTRATION = "ADMINISTRATION"
    LEGAL_COMPLIANCE = "LEGAL_COMPLIANCE"
    CUSTOMER_SUPPORT = "CUSTOMER_SUPPORT"
    EDUCATION_TRAINING = "EDUCATION_TRAINING"
    HEALTHCARE_LIFE_SCIENCES = "HEALTHCARE_LIFE_SCIENCES"
    SUPPLY_CHAIN_LOGISTICS = "SUPPLY_CHAIN_LOGISTICS"
    OTHER = "OTHER"


class ReportStatus(StrEnum):
    """Moderation status of a report."""

    ACTIVE = "ACTIVE"
    FLAGGED = "FLAGGED"
    DELETED = "DELETED"
