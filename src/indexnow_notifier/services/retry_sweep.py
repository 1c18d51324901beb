"""Periodic retry sweep over failed submission log entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from indexnow_notifier.models import SubmissionStatus
from indexnow_notifier.services.indexnow_client import IndexNowClient, SubmissionResult
from indexnow_notifier.services.response_classifier import ResponseClass
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.submission_log_store import (
    LogEntry,
    SubmissionLogStore,
)

_sweep_logger = logging.getLogger("indexnow_notifier.retry_sweep")


@dataclass(slots=True, frozen=True)
class RetrySweepResult:
    """Per-sweep counters; ``exhausted`` is a subset of ``permanently_failed``."""

    selected: int = 0
    succeeded: int = 0
    rescheduled: int = 0
    permanently_failed: int = 0
    exhausted: int = 0
    errored: int = 0
    skipped_disabled: bool = False

    def as_summary(self) -> dict[str, int]:
        return {
            "selected": self.selected,
            "succeeded": self.succeeded,
            "rescheduled": self.rescheduled,
            "permanently_failed": self.permanently_failed,
            "exhausted": self.exhausted,
            "errored": self.errored,
        }


@dataclass(slots=True, frozen=True)
class _RetryOutcome:
    status: SubmissionStatus
    exhausted: bool = False


class RetrySweepService:
    """Re-submit due entries one at a time and advance each entry's state."""

    def __init__(
        self,
        *,
        log_store: SubmissionLogStore,
        client: IndexNowClient,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._log_store = log_store
        self._client = client
        self._policy = policy or log_store.retry_policy

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def sweep(self) -> RetrySweepResult:
        if not self._policy.enabled:
            _sweep_logger.debug("indexnow_retry_sweep_disabled")
            return RetrySweepResult(skipped_disabled=True)

        due_entries = await self._log_store.select_due_for_retry(
            max_attempts=self._policy.max_attempts,
            limit=self._policy.sweep_limit,
        )
        if not due_entries:
            _sweep_logger.debug("indexnow_retry_sweep_nothing_due")
            return RetrySweepResult()

        succeeded = 0
        rescheduled = 0
        permanently_failed = 0
        exhausted = 0
        errored = 0
        for entry in due_entries:
            try:
                outcome = await self._retry_entry(entry)
            except Exception:
                errored += 1
                _sweep_logger.exception(
                    "indexnow_retry_entry_failed",
                    extra={"entry_id": entry.id, "url": entry.url},
                )
                continue

            if outcome.status is SubmissionStatus.SUCCESS:
                succeeded += 1
            elif outcome.status is SubmissionStatus.PERMANENT_FAIL:
                permanently_failed += 1
                if outcome.exhausted:
                    exhausted += 1
            else:
                rescheduled += 1

        result = RetrySweepResult(
            selected=len(due_entries),
            succeeded=succeeded,
            rescheduled=rescheduled,
            permanently_failed=permanently_failed,
            exhausted=exhausted,
            errored=errored,
        )
        _sweep_logger.info("indexnow_retry_sweep_completed", extra=result.as_summary())
        return result

    async def _retry_entry(self, entry: LogEntry) -> _RetryOutcome:
        result = await self._client.submit([entry.url])
        attempts = entry.attempts + 1

        if result.success:
            await self._finish(entry, SubmissionStatus.SUCCESS, result, attempts)
            _sweep_logger.info(
                "indexnow_retry_entry_succeeded",
                extra={"entry_id": entry.id, "attempts": attempts},
            )
            return _RetryOutcome(status=SubmissionStatus.SUCCESS)

        if result.response_class is ResponseClass.PERMANENT:
            await self._finish(entry, SubmissionStatus.PERMANENT_FAIL, result, attempts)
            _sweep_logger.warning(
                "indexnow_retry_entry_permanent_failure",
                extra={
                    "entry_id": entry.id,
                    "attempts": attempts,
                    "status_code": result.code,
                },
            )
            return _RetryOutcome(status=SubmissionStatus.PERMANENT_FAIL)

        if attempts >= self._policy.max_attempts:
            await self._finish(entry, SubmissionStatus.PERMANENT_FAIL, result, attempts)
            _sweep_logger.warning(
                "indexnow_retry_entry_exhausted",
                extra={
                    "entry_id": entry.id,
                    "attempts": attempts,
                    "max_attempts": self._policy.max_attempts,
                    "status_code": result.code,
                },
            )
            return _RetryOutcome(status=SubmissionStatus.PERMANENT_FAIL, exhausted=True)

        next_retry_at = self._policy.next_retry_at(self._log_store.now())
        await self._log_store.update(
            entry.id,
            status=SubmissionStatus.FAILED,
            result=result,
            attempts=attempts,
            next_retry_at=next_retry_at,
        )
        _sweep_logger.info(
            "indexnow_retry_entry_rescheduled",
            extra={
                "entry_id": entry.id,
                "attempts": attempts,
                "status_code": result.code,
                "next_retry_at": next_retry_at.isoformat(),
            },
        )
        return _RetryOutcome(status=SubmissionStatus.FAILED)

    async def _finish(
        self,
        entry: LogEntry,
        status: SubmissionStatus,
        result: SubmissionResult,
        attempts: int,
    ) -> None:
        await self._log_store.update(
            entry.id,
            status=status,
            result=result,
            attempts=attempts,
        )


__all__ = ["RetrySweepResult", "RetrySweepService"]
