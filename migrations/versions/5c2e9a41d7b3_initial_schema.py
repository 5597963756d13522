"""initial schema

Revision ID: 5c2e9a41d7b3
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e9a41d7b3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STAGES = ("CV_SCREEN", "FIRST_INTERVIEW", "TECHNICAL", "HR_INTERVIEW", "OFFER", "OTHER")
JOB_LEVELS = ("INTERN", "JUNIOR", "MID", "SENIOR", "LEAD", "OTHER")
REPORT_STATUSES = ("ACTIVE", "FLAGGED", "DELETED")

POSITION_CATEGORIES = (
    "IT", "ENGINEERING", "FINANCE_ACCOUNTING", "AUDIT_ADVISORY", "CONSULTING", "HR",
    "SALES_MARKETING", "RESEARCH_DEVELOPMENT", "DESIGN", "PRODUCT", "OPERATIONS",
    "PROJECT_PROGRAM", "ADMINISTRATION", "LEGAL_COMPLIANCE", "CUSTOMER_SUPPORT",
    "EDUCATION_TRAINING", "HEALTHCARE_LIFE_SCIENCES", "SUPPLY_CHAIN_LOGISTICS", "OTHER",
)


def upgrade() -> None:
    """Create companies, reports and the rate limit tables."""
    op.create_table(
        "company",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("normalized_name", sa.String(length=120), nullable=False),
        sa.Column("country", sa.String(length=2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("normalized_name", "country", name="uq_company_name_country"),
    )
    op.create_index("idx_company_created_at", "company", ["created_at"])

    op.create_table(
        "report",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column(
            "stage",
            sa.Enum(*STAGES, name="stage", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column(
            "job_level",
            sa.Enum(*JOB_LEVELS, name="joblevel", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column(
            "position_category",
            sa.Enum(*POSITION_CATEGORIES, name="positioncategory", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("position_detail", sa.String(length=80), nullable=False),
        sa.Column("days_without_reply", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*REPORT_STATUSES, name="reportstatus", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("flagged_reason", sa.String(length=255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_report_company_id", "report", ["company_id"])
    op.create_index("idx_report_status_company", "report", ["status", "company_id"])
    op.create_index("idx_report_status_flagged_at", "report", ["status", "flagged_at"])

    op.create_table(
        "report_ip_daily_limit",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ip_hash", sa.String(length=128), nullable=False),
        sa.Column("day", sa.String(length=10), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ip_hash", "day", name="uq_ip_day"),
    )
    op.create_index("idx_day", "report_ip_daily_limit", ["day"])

    op.create_table(
        "report_ip_company_limit",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ip_hash", sa.String(length=128), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=False),
        sa.Column("position_key", sa.String(length=160), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "ip_hash", "company_id", "position_key", name="uq_ip_company_position"
        ),
    )
    op.create_index("idx_ip_company", "report_ip_company_limit", ["ip_hash", "company_id"])

    op.create_table(
        "admin_login_rate_limit",
        sa.Column("ip_hash", sa.String(length=128), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("first_attempt_at", sa.BigInteger(), nullable=False),
        sa.Column("locked_until", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("ip_hash"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("admin_login_rate_limit")
    op.drop_index("idx_ip_company", table_name="report_ip_company_limit")
    op.drop_table("report_ip_company_limit")
    op.drop_index("idx_day", table_name="report_ip_daily_limit")
    op.drop_table("report_ip_daily_limit")
    op.drop_index("idx_report_status_flagged_at", table_name="report")
    op.drop_index("idx_report_status_company", table_name="report")
    op.drop_index("idx_report_company_id", table_name="report")
    op.drop_table("report")
    op.drop_index("idx_company_created_at", table_name="company")
    op.drop_table("company")
