"""Scheduled jobs: daily retry sweep and submission log retention cleanup."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from time import perf_counter

from indexnow_notifier.config import Settings
from indexnow_notifier.services.retry_sweep import RetrySweepService
from indexnow_notifier.services.scheduler import SchedulerService
from indexnow_notifier.services.submission_log_store import SubmissionLogStore

_job_logger = logging.getLogger("indexnow_notifier.scheduler.jobs")

_pipeline_service: NotificationPipelineService | None = None

RETRY_SWEEP_JOB_ID = "indexnow-retry-sweep-job"
LOG_CLEANUP_JOB_ID = "indexnow-log-cleanup-job"
JOB_TIMEOUT_SECONDS = 3600


@dataclass(slots=True)
class JobExecutionMetrics:
    """In-memory runtime metrics for one scheduled job."""

    job_id: str
    name: str
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    overlap_skips: int = 0
    running: bool = False
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_duration_ms: float | None = None
    last_error: str | None = None
    last_summary: dict[str, int] | None = None


class _OverlapProtectedRunner:
    """Execute jobs with overlap protection and per-job metrics."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._metrics: dict[str, JobExecutionMetrics] = {}

    def register(self, *, job_id: str, name: str) -> None:
        self._locks.setdefault(job_id, asyncio.Lock())
        self._metrics.setdefault(job_id, JobExecutionMetrics(job_id=job_id, name=name))

    def snapshot(self) -> list[JobExecutionMetrics]:
        return [
            JobExecutionMetrics(
                job_id=metrics.job_id,
                name=metrics.name,
                total_runs=metrics.total_runs,
                successful_runs=metrics.successful_runs,
                failed_runs=metrics.failed_runs,
                overlap_skips=metrics.overlap_skips,
                running=metrics.running,
                last_started_at=metrics.last_started_at,
                last_finished_at=metrics.last_finished_at,
                last_duration_ms=metrics.last_duration_ms,
                last_error=metrics.last_error,
                last_summary=dict(metrics.last_summary)
                if metrics.last_summary is not None
                else None,
            )
            for metrics in self._metrics.values()
        ]

    async def run(
        self,
        *,
        job_id: str,
        run: Callable[[], Awaitable[dict[str, int]]],
    ) -> bool:
        """Run ``run`` unless the job is already running; returns False on overlap."""

        lock = self._locks[job_id]
        metrics = self._metrics[job_id]
        if lock.locked():
            metrics.overlap_skips += 1
            _job_logger.warning(
                "scheduler_job_overlap_skipped", extra={"job_id": job_id}
            )
            return False

        async with lock:
            metrics.total_runs += 1
            metrics.running = True
            metrics.last_started_at = datetime.now(UTC)
            started_at = perf_counter()
            try:
                async with asyncio.timeout(JOB_TIMEOUT_SECONDS):
                    summary = await run()
                metrics.successful_runs += 1
                metrics.last_error = None
                metrics.last_summary = summary
                _job_logger.info(
                    "scheduler_pipeline_job_completed",
                    extra={"job_id": job_id, **summary},
                )
            except Exception as error:
                metrics.failed_runs += 1
                metrics.last_error = str(error) or error.__class__.__name__
                _job_logger.exception(
                    "scheduler_pipeline_job_failed",
                    extra={"job_id": job_id},
                )
            finally:
                metrics.running = False
                metrics.last_finished_at = datetime.now(UTC)
                metrics.last_duration_ms = round(
                    (perf_counter() - started_at) * 1000, 2
                )
        return True


class NotificationPipelineService:
    """Register the recurring IndexNow jobs and run them on demand."""

    def __init__(
        self,
        *,
        scheduler: SchedulerService,
        settings: Settings,
        retry_sweep: RetrySweepService,
        log_store: SubmissionLogStore,
    ) -> None:
        self._scheduler = scheduler
        self._settings = settings
        self._retry_sweep = retry_sweep
        self._log_store = log_store
        self._runner = _OverlapProtectedRunner()
        self._runner.register(job_id=RETRY_SWEEP_JOB_ID, name="IndexNow Retry Sweep")
        self._runner.register(job_id=LOG_CLEANUP_JOB_ID, name="Submission Log Cleanup")

    def register_jobs(self) -> None:
        if not self._scheduler.enabled:
            return

        self._scheduler.add_daily_job(
            job_id=RETRY_SWEEP_JOB_ID,
            func=run_scheduled_retry_sweep_job,
            hour=self._settings.SCHEDULER_RETRY_SWEEP_HOUR,
            name="Scheduled IndexNow retry sweep",
        )
        self._scheduler.add_daily_job(
            job_id=LOG_CLEANUP_JOB_ID,
            func=run_scheduled_log_cleanup_job,
            hour=self._settings.SCHEDULER_LOG_CLEANUP_HOUR,
            name="Scheduled submission log cleanup",
        )

    def monitoring_snapshot(self) -> list[JobExecutionMetrics]:
        return self._runner.snapshot()

    async def run_retry_sweep_job(self) -> bool:
        return await self._runner.run(job_id=RETRY_SWEEP_JOB_ID, run=self._sweep)

    async def run_log_cleanup_job(self) -> bool:
        return await self._runner.run(job_id=LOG_CLEANUP_JOB_ID, run=self._cleanup)

    async def _sweep(self) -> dict[str, int]:
        result = await self._retry_sweep.sweep()
        return result.as_summary()

    async def _cleanup(self) -> dict[str, int]:
        cutoff = self._log_store.now() - timedelta(
            days=self._settings.LOG_RETENTION_DAYS
        )
        deleted_rows = await self._log_store.purge_created_before(cutoff)
        return {"deleted_rows": deleted_rows}


def set_notification_pipeline_service(service: NotificationPipelineService) -> None:
    global _pipeline_service
    _pipeline_service = service


def _require_pipeline_service() -> NotificationPipelineService:
    if _pipeline_service is None:
        raise RuntimeError("Notification pipeline service is not initialized")

    return _pipeline_service


async def run_scheduled_retry_sweep_job() -> None:
    await _require_pipeline_service().run_retry_sweep_job()


async def run_scheduled_log_cleanup_job() -> None:
    await _require_pipeline_service().run_log_cleanup_job()


__all__ = [
    "JobExecutionMetrics",
    "LOG_CLEANUP_JOB_ID",
    "NotificationPipelineService",
    "RETRY_SWEEP_JOB_ID",
    "run_scheduled_log_cleanup_job",
    "run_scheduled_retry_sweep_job",
    "set_notification_pipeline_service",
]
