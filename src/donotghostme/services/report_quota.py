# src/donotghostme/services/report_quota.py
"""Transactional quotas guarding report submission.

Three guarantees hold for every hashed address, inside one unit of work:

* at most ``max_per_day`` accepted reports per UTC day,
* at most ``max_per_company`` accepted reports per company,
* at most one accepted report per (company, position).

The daily counter is incremented with a single atomic upsert and checked
after the increment. Claims are inserted with insert-if-absent so a
concurrent duplicate surfaces as a typed conflict rather than a database
error. Any denial rolls back the whole transaction, including the counter
increment and the report written by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache

from sqlalchemy import func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from donotghostme.core.errors import RateLimitReason, ReportRateLimitError
from donotghostme.core.security import IpHasher, get_ip_hasher, is_missing_ip
from donotghostme.core.settings import settings
from donotghostme.db.time import to_utc_day_key, utcnow
from donotghostme.models.enums import PositionCategory
from donotghostme.models.rate_limit import ReportIpCompanyLimit, ReportIpDailyLimit
from donotghostme.services.locks import KeyedLockRegistry

logger = logging.getLogger(__name__)

DAILY_IP_LIMIT_MESSAGE = "You have reached the daily limit of reports. Please try again tomorrow."
COMPANY_LIMIT_MESSAGE = "You have submitted too many reports for this company."
DUPLICATE_POSITION_MESSAGE = "You have already reported this position for this company."

_DAILY_TABLE = ReportIpDailyLimit.__table__
_CLAIM_TABLE = ReportIpCompanyLimit.__table__


class ClaimOutcome(Enum):
    """Result of trying to insert a (address, company, position) claim."""

    CLAIMED = "claimed"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class AdmissionTicket:
    """Details of an admitted submission, handed to the caller's write block."""

    ip_hash: str | None
    day: str
    position_key: str
    daily_count: int | None = None


def build_position_key(position_category: PositionCategory | str, position_detail: str) -> str:
    """Return the claim key ``CATEGORY:detail`` with the detail trimmed and lower-cased."""
    category = PositionCategory(position_category)
    return f"{category.value}:{position_detail.strip().lower()}"


class ReportQuotaEngine:
    """Admission control for report writes."""

    def __init__(
        self,
        hasher: IpHasher,
        max_per_day: int,
        max_per_company: int,
        lock_registry: KeyedLockRegistry | None = None,
    ) -> None:
        if max_per_day < 1 or max_per_company < 1:
            raise ValueError("quota limits must be positive")
        self._hasher = hasher
        self.max_per_day = max_per_day
        self.max_per_company = max_per_company
        self._locks = lock_registry or KeyedLockRegistry()

    @contextmanager
    def admission(
        self,
        session: Session,
        *,
        ip: str | None,
        company_id: str,
        position_category: PositionCategory | str,
        position_detail: str,
        now: datetime | None = None,
    ) -> Iterator[AdmissionTicket]:
        """Admit one report submission around the caller's write.

        The body of the ``with`` block performs the guarded write on
        ``session``. The transaction is committed when the block exits
        normally and rolled back on any exception.

        Args:
            session: Session whose transaction holds the quota rows and the write.
            ip: Raw client address. ``None``, blank and ``"unknown"`` skip every
                check; HTTP callers reject those before reaching the engine.
            company_id: Identifier of the company being reported.
            position_category: Coarse position category.
            position_detail: Free-text position label.
            now: Override of the current time, used for the day key.

        Raises:
            ReportRateLimitError: When a quota denies the submission.
            SQLAlchemyError: Store failures propagate unchanged.
        """
        moment = now or utcnow()
        day = to_utc_day_key(moment)
        position_key = build_position_key(position_category, position_detail)

        if ip is None or is_missing_ip(ip):
            # Nothing to key the quotas on; submissions are admitted unthrottled.
            logger.warning(
                "Report admitted without quota checks: client address unavailable",
                extra={"company_id": company_id},
            )
            with self._transaction(session):
                yield AdmissionTicket(ip_hash=None, day=day, position_key=position_key)
            return

        ip_hash = self._hasher.hash(ip)

        with self._locks.hold(ip_hash), self._transaction(session):
            self._acquire_advisory_lock(session, ip_hash, company_id)

            daily_count = self._increment_daily(session, ip_hash, day, moment)
            if daily_count > self.max_per_day:
                logger.warning(
                    "Daily report limit exceeded",
                    extra={"ip_hash": ip_hash, "day": day, "count": daily_count},
                )
                raise ReportRateLimitError(DAILY_IP_LIMIT_MESSAGE, RateLimitReason.DAILY_IP_LIMIT)

            company_count = self._count_claims(session, ip_hash, company_id)
            if company_count >= self.max_per_company:
                logger.warning(
                    "Per-company report limit exceeded",
                    extra={"ip_hash": ip_hash, "company_id": company_id, "count": company_count},
                )
                raise ReportRateLimitError(
                    COMPANY_LIMIT_MESSAGE,
                    RateLimitReason.COMPANY_POSITION_LIMIT,
                )

            outcome = self._claim_position(session, ip_hash, company_id, position_key, moment)
            if outcome is ClaimOutcome.CONFLICT:
                logger.warning(
                    "Duplicate report for company and position",
                    extra={"ip_hash": ip_hash, "company_id": company_id, "position_key": position_key},
                )
                raise ReportRateLimitError(
                    DUPLICATE_POSITION_MESSAGE,
                    RateLimitReason.COMPANY_POSITION_LIMIT,
                )

            yield AdmissionTicket(
                ip_hash=ip_hash,
                day=day,
                position_key=position_key,
                daily_count=daily_count,
            )

    @contextmanager
    def _transaction(self, session: Session) -> Iterator[None]:
        try:
            yield
            session.commit()
        except BaseException:
            session.rollback()
            raise

    def _acquire_advisory_lock(self, session: Session, ip_hash: str, company_id: str) -> None:
        # Serializes count-then-claim for the pair across processes.
        if _dialect_name(session) != "postgresql":
            return
        session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:ip_hash), hashtext(:company_id))"),
            {"ip_hash": ip_hash, "company_id": company_id},
        )

    def _increment_daily(self, session: Session, ip_hash: str, day: str, moment: datetime) -> int:
        """Atomically bump the daily counter and return the new value."""
        dialect = _dialect_name(session)
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(_DAILY_TABLE).values(
                ip_hash=ip_hash,
                day=day,
                count=1,
                created_at=moment,
                updated_at=moment,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[_DAILY_TABLE.c.ip_hash, _DAILY_TABLE.c.day],
                set_={
                    _DAILY_TABLE.c["count"]: _DAILY_TABLE.c["count"] + 1,
                    _DAILY_TABLE.c.updated_at: moment,
                },
            ).returning(_DAILY_TABLE.c["count"])
            return int(session.execute(stmt).scalar_one())

        row = session.execute(
            select(ReportIpDailyLimit)
            .where(ReportIpDailyLimit.ip_hash == ip_hash, ReportIpDailyLimit.day == day)
            .with_for_update()
        ).scalar_one_or_none()
        if row is None:
            row = ReportIpDailyLimit(ip_hash=ip_hash, day=day, report_count=0)
            session.add(row)
        row.report_count += 1
        session.flush()
        return row.report_count

    def _count_claims(self, session: Session, ip_hash: str, company_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(ReportIpCompanyLimit)
            .where(
                ReportIpCompanyLimit.ip_hash == ip_hash,
                ReportIpCompanyLimit.company_id == company_id,
            )
        )
        return int(session.execute(stmt).scalar_one())

    def _claim_position(
        self,
        session: Session,
        ip_hash: str,
        company_id: str,
        position_key: str,
        moment: datetime,
    ) -> ClaimOutcome:
        """Insert the claim row unless it already exists."""
        dialect = _dialect_name(session)
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = (
                insert(_CLAIM_TABLE)
                .values(
                    ip_hash=ip_hash,
                    company_id=company_id,
                    position_key=position_key,
                    created_at=moment,
                )
                .on_conflict_do_nothing(
                    index_elements=[
                        _CLAIM_TABLE.c.ip_hash,
                        _CLAIM_TABLE.c.company_id,
                        _CLAIM_TABLE.c.position_key,
                    ]
                )
            )
            result = session.execute(stmt)
            return ClaimOutcome.CLAIMED if result.rowcount == 1 else ClaimOutcome.CONFLICT

        try:
            with session.begin_nested():
                session.add(
                    ReportIpCompanyLimit(
                        ip_hash=ip_hash,
                        company_id=company_id,
                        position_key=position_key,
                        created_at=moment,
                    )
                )
        except IntegrityError:
            return ClaimOutcome.CONFLICT
        return ClaimOutcome.CLAIMED


def _dialect_name(session: Session) -> str:
    return session.get_bind().dialect.name


@lru_cache(maxsize=1)
def get_report_quota_engine() -> ReportQuotaEngine:
    """Return the process-wide engine configured from settings."""
    return ReportQuotaEngine(
        hasher=get_ip_hasher(),
        max_per_day=settings.max_reports_per_ip_per_day,
        max_per_company=settings.max_reports_per_company_per_ip,
    )
