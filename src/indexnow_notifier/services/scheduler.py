"""APScheduler wrapper for the daily retry sweep and log cleanup jobs."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import cast

from apscheduler.events import EVENT_JOB_ERROR  # type: ignore[import-untyped]
from apscheduler.events import EVENT_JOB_EXECUTED
from apscheduler.events import EVENT_JOB_MISSED
from apscheduler.events import JobExecutionEvent
from apscheduler.events import SchedulerEvent
from apscheduler.job import Job  # type: ignore[import-untyped]
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore  # type: ignore[import-untyped]
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]

from indexnow_notifier.config import Settings

JobCallable = Callable[[], Awaitable[None] | None]

DAILY_JOB_MISFIRE_GRACE_SECONDS = 3600

_scheduler_logger = logging.getLogger("indexnow_notifier.scheduler")


@dataclass(slots=True, frozen=True)
class SchedulerJobState:
    """Job state exposed by the jobs API."""

    job_id: str
    name: str | None
    trigger: str
    next_run_time: datetime | None
    paused: bool


class SchedulerService:
    """Own the scheduler lifecycle; every method is a no-op or error when disabled."""

    def __init__(
        self,
        *,
        enabled: bool,
        jobstore_url: str,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._enabled = enabled
        self._scheduler = scheduler or AsyncIOScheduler(
            jobstores={"default": SQLAlchemyJobStore(url=jobstore_url)},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": DAILY_JOB_MISFIRE_GRACE_SECONDS,
            },
        )
        self._scheduler.add_listener(
            self._handle_job_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> SchedulerService:
        return cls(
            enabled=settings.SCHEDULER_ENABLED,
            jobstore_url=settings.SCHEDULER_JOBSTORE_URL,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        if not self._enabled:
            return False
        return cast(bool, self._scheduler.running)

    async def start(self) -> None:
        if not self._enabled:
            _scheduler_logger.info("scheduler_disabled")
            return
        if self._scheduler.running:
            return

        self._scheduler.start()
        _scheduler_logger.info(
            "scheduler_started",
            extra={"job_ids": [job.id for job in self._scheduler.get_jobs()]},
        )

    async def shutdown(self) -> None:
        if not self.running:
            return

        self._scheduler.shutdown(wait=False)
        _scheduler_logger.info("scheduler_shutdown")

    def add_daily_job(
        self,
        *,
        job_id: str,
        func: JobCallable,
        hour: int,
        minute: int = 0,
        name: str | None = None,
    ) -> Job:
        """Register ``func`` to run once a day at ``hour:minute`` (scheduler timezone)."""

        self._ensure_enabled()
        if not 0 <= hour <= 23:
            raise ValueError("hour must be between 0 and 23")
        if not 0 <= minute <= 59:
            raise ValueError("minute must be between 0 and 59")

        return self._scheduler.add_job(
            func=func,
            trigger="cron",
            hour=hour,
            minute=minute,
            id=job_id,
            name=name,
            replace_existing=True,
        )

    def pause_job(self, job_id: str) -> SchedulerJobState:
        self._ensure_enabled()
        self._scheduler.pause_job(self._require_job(job_id).id)
        _scheduler_logger.info("scheduler_job_paused", extra={"job_id": job_id})
        return self._job_to_state(self._require_job(job_id))

    def resume_job(self, job_id: str) -> SchedulerJobState:
        self._ensure_enabled()
        self._scheduler.resume_job(self._require_job(job_id).id)
        _scheduler_logger.info("scheduler_job_resumed", extra={"job_id": job_id})
        return self._job_to_state(self._require_job(job_id))

    def list_jobs(self) -> list[SchedulerJobState]:
        if not self._enabled:
            return []
        return [self._job_to_state(job) for job in self._scheduler.get_jobs()]

    def _ensure_enabled(self) -> None:
        if not self._enabled:
            raise RuntimeError("Scheduler is disabled")

    def _require_job(self, job_id: str) -> Job:
        job = self._scheduler.get_job(job_id)
        if job is None:
            raise LookupError(f"Scheduler job '{job_id}' not found")
        return job

    @staticmethod
    def _job_to_state(job: Job) -> SchedulerJobState:
        next_run_time = getattr(job, "next_run_time", None)
        return SchedulerJobState(
            job_id=job.id,
            name=job.name,
            trigger=str(job.trigger),
            next_run_time=next_run_time,
            paused=next_run_time is None,
        )

    @staticmethod
    def _handle_job_event(event: SchedulerEvent) -> None:
        if not isinstance(event, JobExecutionEvent):
            return

        if event.code == EVENT_JOB_MISSED:
            _scheduler_logger.warning(
                "scheduler_job_missed",
                extra={
                    "job_id": event.job_id,
                    "scheduled_run_time": event.scheduled_run_time.isoformat(),
                },
            )
            return

        if event.exception is None:
            _scheduler_logger.info(
                "scheduler_job_succeeded", extra={"job_id": event.job_id}
            )
            return

        _scheduler_logger.error(
            "scheduler_job_failed",
            extra={
                "job_id": event.job_id,
                "exception": str(event.exception),
                "traceback": event.traceback,
            },
        )


__all__ = ["SchedulerJobState", "SchedulerService"]
