# src/donotghostme/services/login_limiter.py
"""Failed admin login tracking with temporary lockout.

Each identifier moves through three phases. While OPEN, failures are counted
inside an attempt window. Reaching the maximum LOCKS the identifier for a
fixed duration. Once the lock elapses the identifier is OPEN again with a
clean slate. A successful login calls :meth:`LoginAttemptLimiter.reset`.

Two backends implement the same contract: a process-local map for single
instance deployments and a relational table shared by every instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Literal, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from donotghostme.core.settings import settings
from donotghostme.models.rate_limit import AdminLoginRateLimit

logger = logging.getLogger(__name__)

LimiterStrategy = Literal["memory", "db"]


@dataclass(frozen=True)
class LoginAttemptPolicy:
    """Tunable thresholds of the lockout state machine (milliseconds)."""

    max_attempts: int = 5
    window_ms: int = 5 * 60 * 1000
    lock_ms: int = 15 * 60 * 1000

    @classmethod
    def from_settings(cls) -> LoginAttemptPolicy:
        return cls(
            max_attempts=settings.admin_login_max_attempts,
            window_ms=settings.admin_login_window_ms,
            lock_ms=settings.admin_login_lock_ms,
        )


@dataclass
class LoginAttemptState:
    """Attempt bookkeeping for one identifier."""

    attempts: int
    window_start_at: int
    locked_until: int | None = None

    @classmethod
    def fresh(cls, now: int) -> LoginAttemptState:
        return cls(attempts=0, window_start_at=now, locked_until=None)

    def is_stale(self, now: int, policy: LoginAttemptPolicy) -> bool:
        """Return True when the lock has elapsed or the window has expired."""
        if self.locked_until is not None:
            return now >= self.locked_until
        return now - self.window_start_at > policy.window_ms

    def record_failure(self, now: int, policy: LoginAttemptPolicy) -> None:
        """Count one failure, locking once the maximum is reached."""
        self.attempts += 1
        if self.attempts >= policy.max_attempts:
            self.locked_until = now + policy.lock_ms


class LoginAttemptLimiter(Protocol):
    """Contract shared by every login limiter backend."""

    @property
    def strategy(self) -> LimiterStrategy: ...

    def is_locked(self, identifier: str, now: int) -> bool: ...

    def register_failure(self, identifier: str, now: int) -> None: ...

    def reset(self, identifier: str) -> None: ...


class MemoryLoginAttemptLimiter:
    """Process-local backend; every instance of the app counts separately.

    Only identifiers with at least one recorded failure are stored. Stale
    entries are swept at most once per attempt window.
    """

    def __init__(self, policy: LoginAttemptPolicy | None = None) -> None:
        self._policy = policy or LoginAttemptPolicy()
        self._states: dict[str, LoginAttemptState] = {}
        self._lock = Lock()
        self._last_sweep_at = 0

    @property
    def strategy(self) -> LimiterStrategy:
        return "memory"

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._states)

    def _sweep_if_due(self, now: int) -> None:
        # Caller must hold self._lock.
        if now - self._last_sweep_at < self._policy.window_ms:
            return
        stale = [key for key, state in self._states.items() if state.is_stale(now, self._policy)]
        for key in stale:
            del self._states[key]
        self._last_sweep_at = now

    def _live_state(self, identifier: str, now: int) -> LoginAttemptState | None:
        # Caller must hold self._lock.
        state = self._states.get(identifier)
        if state is not None and state.is_stale(now, self._policy):
            del self._states[identifier]
            return None
        return state

    def is_locked(self, identifier: str, now: int) -> bool:
        with self._lock:
            self._sweep_if_due(now)
            state = self._live_state(identifier, now)
            return state is not None and state.locked_until is not None and now < state.locked_until

    def register_failure(self, identifier: str, now: int) -> None:
        with self._lock:
            self._sweep_if_due(now)
            state = self._live_state(identifier, now)
            if state is None:
                state = LoginAttemptState.fresh(now)
                self._states[identifier] = state
            state.record_failure(now, self._policy)
            if state.locked_until is not None:
                logger.warning(
                    "Admin login locked after repeated failures",
                    extra={
                        "ip_hash": identifier,
                        "attempts": state.attempts,
                        "locked_until": state.locked_until,
                        "strategy": self.strategy,
                    },
                )

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._states.pop(identifier, None)

    def clear(self) -> None:
        """Forget every identifier."""
        with self._lock:
            self._states.clear()
            self._last_sweep_at = 0


class DatabaseLoginAttemptLimiter:
    """Backend persisting attempt state in ``admin_login_rate_limit``.

    Updates are read-modify-write under a row lock so concurrent failures
    from several instances are never lost. On databases without row locks
    (SQLite) the write transaction serializes instead.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        policy: LoginAttemptPolicy | None = None,
        max_insert_retries: int = 3,
    ) -> None:
        self._session_factory = session_factory
        self._policy = policy or LoginAttemptPolicy()
        self._max_insert_retries = max_insert_retries

    @property
    def strategy(self) -> LimiterStrategy:
        return "db"

    def _load_for_update(self, db: Session, identifier: str) -> AdminLoginRateLimit | None:
        stmt = (
            select(AdminLoginRateLimit)
            .where(AdminLoginRateLimit.ip_hash == identifier)
            .with_for_update()
        )
        return db.execute(stmt).scalar_one_or_none()

    def is_locked(self, identifier: str, now: int) -> bool:
        """Return whether ``identifier`` is locked; store failures count as locked."""
        try:
            with self._session_factory() as db, db.begin():
                row = self._load_for_update(db, identifier)
                if row is None:
                    return False
                if row.locked_until is not None and now < row.locked_until:
                    return True
                state = LoginAttemptState(row.attempts, row.first_attempt_at, row.locked_until)
                if state.is_stale(now, self._policy):
                    row.attempts = 0
                    row.first_attempt_at = now
                    row.locked_until = None
                return False
        except SQLAlchemyError:
            logger.error(
                "Failed to read admin login limiter state; treating as locked",
                extra={"ip_hash": identifier},
                exc_info=True,
            )
            return True

    def register_failure(self, identifier: str, now: int) -> None:
        """Record a failed login, creating the row on first failure.

        Raises:
            SQLAlchemyError: If the store is unavailable or the insert race
                could not be resolved.
        """
        for attempt in range(self._max_insert_retries):
            try:
                with self._session_factory() as db, db.begin():
                    row = self._load_for_update(db, identifier)
                    if row is None:
                        state = LoginAttemptState.fresh(now)
                        state.record_failure(now, self._policy)
                        db.add(
                            AdminLoginRateLimit(
                                ip_hash=identifier,
                                attempts=state.attempts,
                                first_attempt_at=state.window_start_at,
                                locked_until=state.locked_until,
                            )
                        )
                    else:
                        state = LoginAttemptState(
                            row.attempts,
                            row.first_attempt_at,
                            row.locked_until,
                        )
                        if state.is_stale(now, self._policy):
                            state = LoginAttemptState.fresh(now)
                        state.record_failure(now, self._policy)
                        row.attempts = state.attempts
                        row.first_attempt_at = state.window_start_at
                        row.locked_until = state.locked_until
            except IntegrityError:
                if attempt + 1 >= self._max_insert_retries:
                    logger.error(
                        "Admin login limiter insert kept conflicting",
                        extra={"ip_hash": identifier},
                        exc_info=True,
                    )
                    raise
                # A concurrent first failure inserted the row; retry as an update.
                logger.info(
                    "Concurrent admin login limiter insert, retrying",
                    extra={"ip_hash": identifier, "attempt": attempt + 1},
                )
                continue
            except SQLAlchemyError:
                logger.error(
                    "Failed to write admin login limiter state",
                    extra={"ip_hash": identifier},
                    exc_info=True,
                )
                raise

            if state.locked_until is not None:
                logger.warning(
                    "Admin login locked after repeated failures",
                    extra={
                        "ip_hash": identifier,
                        "attempts": state.attempts,
                        "locked_until": state.locked_until,
                        "strategy": self.strategy,
                    },
                )
            return

    def reset(self, identifier: str) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.execute(delete(AdminLoginRateLimit).where(AdminLoginRateLimit.ip_hash == identifier))
        except SQLAlchemyError:
            logger.error(
                "Failed to reset admin login limiter state",
                extra={"ip_hash": identifier},
                exc_info=True,
            )
            raise


_LIMITER_LOCK = Lock()
_LIMITER: LoginAttemptLimiter | None = None


def build_login_limiter(
    strategy: LimiterStrategy,
    session_factory: sessionmaker[Session] | None = None,
    policy: LoginAttemptPolicy | None = None,
) -> LoginAttemptLimiter:
    """Construct a limiter for ``strategy``."""
    policy = policy or LoginAttemptPolicy.from_settings()
    if strategy == "db":
        if session_factory is None:
            from donotghostme.db.session import SessionLocal

            session_factory = SessionLocal
        return DatabaseLoginAttemptLimiter(session_factory, policy)
    return MemoryLoginAttemptLimiter(policy)


def get_login_limiter() -> LoginAttemptLimiter:
    """Return the process-wide limiter, selecting the backend on first use."""
    global _LIMITER
    with _LIMITER_LOCK:
        if _LIMITER is None:
            _LIMITER = build_login_limiter(settings.admin_login_rate_limit_strategy)
            logger.info(
                "Admin login limiter initialised",
                extra={"strategy": _LIMITER.strategy},
            )
        return _LIMITER


def reset_login_limiter() -> None:
    """Drop the cached limiter and its in-memory state."""
    global _LIMITER
    with _LIMITER_LOCK:
        if isinstance(_LIMITER, MemoryLoginAttemptLimiter):
            _LIMITER.clear()
        _LIMITER = None
