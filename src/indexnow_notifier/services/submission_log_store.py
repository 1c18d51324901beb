"""Persistent submission log with per-entry retry state."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Final, overload

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from indexnow_notifier.models import (
    TERMINAL_SUBMISSION_STATUSES,
    SubmissionAction,
    SubmissionLog,
    SubmissionStatus,
)
from indexnow_notifier.services.indexnow_client import SubmissionResult
from indexnow_notifier.services.response_classifier import initial_status_for_code
from indexnow_notifier.services.retry_policy import DEFAULT_SWEEP_LIMIT, RetryPolicy

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

ALLOWED_PAGE_SIZES: Final[tuple[int, ...]] = (10, 25, 50, 100, 250)
DEFAULT_PAGE_SIZE: Final[int] = 50

_store_logger = logging.getLogger("indexnow_notifier.submission_log")


class TerminalLogEntryError(RuntimeError):
    """Raised when an update targets an entry that already reached a final state."""


@dataclass(slots=True, frozen=True)
class SubmissionOrigin:
    """Content record that caused a submission, when known."""

    source_table: str | None = None
    record_id: int | None = None


@dataclass(slots=True, frozen=True)
class LogEntry:
    """Detached snapshot of one submission log row."""

    id: int
    created_at: datetime
    source_table: str | None
    record_id: int | None
    url: str
    action: SubmissionAction
    status: SubmissionStatus
    response_code: int | None
    response_message: str | None
    attempts: int
    last_attempt_at: datetime | None
    next_retry_at: datetime | None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SUBMISSION_STATUSES


@dataclass(slots=True, frozen=True)
class StatusCounts:
    success: int = 0
    failed: int = 0
    pending: int = 0


@dataclass(slots=True, frozen=True)
class SubmissionStats:
    """Status counters for the current day, week, month and all time."""

    today: StatusCounts
    week: StatusCounts
    month: StatusCounts
    total: StatusCounts


@dataclass(slots=True, frozen=True)
class LogEntryPage:
    page: int
    per_page: int
    total_items: int
    total_pages: int
    items: list[LogEntry]


@overload
def _as_utc(value: datetime) -> datetime: ...


@overload
def _as_utc(value: None) -> None: ...


@overload
def _as_utc(value: datetime | None) -> datetime | None: ...


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _snapshot(row: SubmissionLog) -> LogEntry:
    return LogEntry(
        id=row.id,
        created_at=_as_utc(row.created_at),
        source_table=row.source_table,
        record_id=row.record_id,
        url=row.url,
        action=row.action,
        status=row.status,
        response_code=row.response_code,
        response_message=row.response_message,
        attempts=row.attempts,
        last_attempt_at=_as_utc(row.last_attempt_at),
        next_retry_at=_as_utc(row.next_retry_at),
    )


def status_for_result(result: SubmissionResult) -> SubmissionStatus:
    if result.success:
        return SubmissionStatus.SUCCESS
    return initial_status_for_code(result.code)


class SubmissionLogStore:
    """Append submission attempts and advance their retry state."""

    def __init__(
        self,
        *,
        retry_policy: RetryPolicy,
        session_factory: SessionScopeFactory | None = None,
        now_factory: Callable[[], datetime] | None = None,
    ) -> None:
        if session_factory is None:
            from indexnow_notifier.database import session_scope

            session_factory = session_scope

        self._retry_policy = retry_policy
        self._session_factory = session_factory
        self._now_factory = now_factory or self._default_now

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def now(self) -> datetime:
        return _as_utc(self._now_factory())

    async def append(
        self,
        *,
        url: str,
        action: SubmissionAction,
        result: SubmissionResult,
        origin: SubmissionOrigin | None = None,
    ) -> LogEntry:
        """Record a first submission attempt for ``url``."""

        entries = await self.append_many(
            urls=[url],
            action=action,
            result=result,
            origin=origin,
        )
        return entries[0]

    async def append_many(
        self,
        *,
        urls: Sequence[str],
        action: SubmissionAction,
        result: SubmissionResult,
        origin: SubmissionOrigin | None = None,
    ) -> list[LogEntry]:
        """Record the same first-attempt result for several URLs in one transaction."""

        if not urls:
            return []

        now = self.now()
        status = status_for_result(result)
        # The first attempt already uses up a single-attempt budget.
        if (
            status is SubmissionStatus.FAILED
            and self._retry_policy.max_attempts <= 1
        ):
            status = SubmissionStatus.PERMANENT_FAIL
        next_retry_at: datetime | None = None
        if status is SubmissionStatus.FAILED and self._retry_policy.enabled:
            next_retry_at = self._retry_policy.next_retry_at(now)

        resolved_origin = origin or SubmissionOrigin()
        rows = [
            SubmissionLog(
                created_at=now,
                source_table=resolved_origin.source_table,
                record_id=resolved_origin.record_id,
                url=url,
                action=action,
                status=status,
                response_code=result.code,
                response_message=result.message,
                attempts=1,
                last_attempt_at=now,
                next_retry_at=next_retry_at,
            )
            for url in urls
        ]
        async with self._session_factory() as session:
            session.add_all(rows)
            await session.flush()
            entries = [_snapshot(row) for row in rows]

        _store_logger.debug(
            "submission_log_appended",
            extra={
                "action": action.value,
                "status": status.value,
                "entries": len(entries),
                "status_code": result.code,
            },
        )
        return entries

    async def update(
        self,
        entry_id: int,
        *,
        status: SubmissionStatus,
        result: SubmissionResult,
        attempts: int,
        next_retry_at: datetime | None = None,
    ) -> LogEntry:
        """Overwrite an entry's retry state; ``next_retry_at`` is cleared when omitted."""

        if status in TERMINAL_SUBMISSION_STATUSES and next_retry_at is not None:
            raise ValueError(f"{status.value} entries cannot have a next retry time")

        async with self._session_factory() as session:
            row = await session.get(SubmissionLog, entry_id)
            if row is None:
                raise LookupError(f"Submission log entry {entry_id} not found")
            if row.status in TERMINAL_SUBMISSION_STATUSES:
                raise TerminalLogEntryError(
                    f"Submission log entry {entry_id} is already {row.status.value}"
                )
            if attempts < row.attempts:
                raise ValueError("attempts must not decrease")

            row.status = status
            row.response_code = result.code
            row.response_message = result.message
            row.attempts = attempts
            row.last_attempt_at = self.now()
            row.next_retry_at = _as_utc(next_retry_at)
            await session.flush()
            return _snapshot(row)

    async def select_due_for_retry(
        self,
        *,
        max_attempts: int,
        limit: int = DEFAULT_SWEEP_LIMIT,
    ) -> list[LogEntry]:
        """Return failed entries that are due, oldest first, at most ``limit``."""

        statement = (
            select(SubmissionLog)
            .where(
                SubmissionLog.status == SubmissionStatus.FAILED,
                SubmissionLog.attempts < max_attempts,
                or_(
                    SubmissionLog.next_retry_at.is_(None),
                    SubmissionLog.next_retry_at <= self.now(),
                ),
            )
            .order_by(SubmissionLog.created_at.asc(), SubmissionLog.id.asc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            rows = (await session.scalars(statement)).all()
            return [_snapshot(row) for row in rows]

    async def get(self, entry_id: int) -> LogEntry | None:
        async with self._session_factory() as session:
            row = await session.get(SubmissionLog, entry_id)
            if row is None:
                return None
            return _snapshot(row)

    async def list_entries(
        self,
        *,
        status: SubmissionStatus | None = None,
        action: SubmissionAction | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> LogEntryPage:
        """Return a newest-first page of entries, optionally filtered."""

        safe_per_page = per_page if per_page in ALLOWED_PAGE_SIZES else DEFAULT_PAGE_SIZE
        statement = select(SubmissionLog)
        if status is not None:
            statement = statement.where(SubmissionLog.status == status)
        if action is not None:
            statement = statement.where(SubmissionLog.action == action)

        async with self._session_factory() as session:
            total_items = int(
                (
                    await session.scalar(
                        select(func.count()).select_from(statement.subquery())
                    )
                )
                or 0
            )
            total_pages = max(1, ((total_items - 1) // safe_per_page) + 1)
            bounded_page = min(max(page, 1), total_pages)
            rows = (
                await session.scalars(
                    statement.order_by(
                        SubmissionLog.created_at.desc(), SubmissionLog.id.desc()
                    )
                    .offset((bounded_page - 1) * safe_per_page)
                    .limit(safe_per_page)
                )
            ).all()
            items = [_snapshot(row) for row in rows]

        return LogEntryPage(
            page=bounded_page,
            per_page=safe_per_page,
            total_items=total_items,
            total_pages=total_pages,
            items=items,
        )

    async def get_stats(self) -> SubmissionStats:
        """Count entries per status for today, this week, this month and overall."""

        now = self.now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today_start - timedelta(days=today_start.weekday())
        month_start = today_start.replace(day=1)

        async with self._session_factory() as session:
            return SubmissionStats(
                today=await self._status_counts(session, created_since=today_start),
                week=await self._status_counts(session, created_since=week_start),
                month=await self._status_counts(session, created_since=month_start),
                total=await self._status_counts(session, created_since=None),
            )

    async def purge_created_before(self, cutoff: datetime) -> int:
        """Delete entries created before ``cutoff`` and return how many were removed."""

        async with self._session_factory() as session:
            result = await session.execute(
                delete(SubmissionLog).where(SubmissionLog.created_at < _as_utc(cutoff))
            )
            deleted_rows = int(result.rowcount or 0)

        _store_logger.info(
            "submission_log_purged",
            extra={"cutoff": cutoff.isoformat(), "deleted_rows": deleted_rows},
        )
        return deleted_rows

    @staticmethod
    async def _status_counts(
        session: AsyncSession,
        *,
        created_since: datetime | None,
    ) -> StatusCounts:
        statement = select(SubmissionLog.status, func.count(SubmissionLog.id))
        if created_since is not None:
            statement = statement.where(SubmissionLog.created_at >= created_since)
        rows = (await session.execute(statement.group_by(SubmissionLog.status))).all()
        counts = {row[0]: int(row[1]) for row in rows}
        return StatusCounts(
            success=counts.get(SubmissionStatus.SUCCESS, 0),
            failed=counts.get(SubmissionStatus.FAILED, 0)
            + counts.get(SubmissionStatus.PERMANENT_FAIL, 0),
            pending=counts.get(SubmissionStatus.PENDING, 0),
        )

    @staticmethod
    def _default_now() -> datetime:
        return datetime.now(UTC)


__all__ = [
    "ALLOWED_PAGE_SIZES",
    "DEFAULT_PAGE_SIZE",
    "LogEntry",
    "LogEntryPage",
    "SessionScopeFactory",
    "StatusCounts",
    "SubmissionLogStore",
    "SubmissionOrigin",
    "SubmissionStats",
    "TerminalLogEntryError",
    "status_for_result",
]
