"""Scheduled job status and manual trigger API routes."""

from __future__ import annotations

from datetime import datetime
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from indexnow_notifier.services.notification_pipeline import (
    LOG_CLEANUP_JOB_ID,
    RETRY_SWEEP_JOB_ID,
    JobExecutionMetrics,
    NotificationPipelineService,
)
from indexnow_notifier.services.scheduler import SchedulerJobState, SchedulerService

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


class SchedulerJobResponse(BaseModel):
    job_id: str
    name: str | None
    trigger: str
    next_run_time: datetime | None
    paused: bool


class JobMonitoringResponse(BaseModel):
    """Runtime metrics for one pipeline job."""

    job_id: str
    name: str
    total_runs: int
    successful_runs: int
    failed_runs: int
    overlap_skips: int
    running: bool
    last_started_at: datetime | None
    last_finished_at: datetime | None
    last_duration_ms: float | None
    last_error: str | None
    last_summary: dict[str, int] | None


class JobsStatusResponse(BaseModel):
    scheduler_enabled: bool
    scheduler_running: bool
    jobs: list[SchedulerJobResponse]
    monitoring: list[JobMonitoringResponse]


class JobRunResponse(BaseModel):
    job: JobMonitoringResponse


def _get_scheduler_service(request: Request) -> SchedulerService:
    scheduler = getattr(request.app.state, "scheduler_service", None)
    if isinstance(scheduler, SchedulerService):
        return scheduler

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Scheduler service is unavailable",
    )


def _get_pipeline_service(request: Request) -> NotificationPipelineService:
    pipeline_service = getattr(request.app.state, "pipeline_service", None)
    if isinstance(pipeline_service, NotificationPipelineService):
        return pipeline_service

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Notification pipeline service is unavailable",
    )


def _job_response(job_state: SchedulerJobState) -> SchedulerJobResponse:
    return SchedulerJobResponse(
        job_id=job_state.job_id,
        name=job_state.name,
        trigger=job_state.trigger,
        next_run_time=job_state.next_run_time,
        paused=job_state.paused,
    )


def _monitoring_response(metrics: JobExecutionMetrics) -> JobMonitoringResponse:
    return JobMonitoringResponse(
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
        last_summary=metrics.last_summary,
    )


def _raise_scheduler_error(error: Exception) -> NoReturn:
    if isinstance(error, LookupError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(error),
        ) from error

    if isinstance(error, RuntimeError):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(error),
        ) from error

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected scheduler operation failure",
    ) from error


def _job_run_response(
    pipeline_service: NotificationPipelineService,
    *,
    job_id: str,
    started: bool,
) -> JobRunResponse:
    if not started:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job '{job_id}' is already running",
        )

    for metrics in pipeline_service.monitoring_snapshot():
        if metrics.job_id == job_id:
            return JobRunResponse(job=_monitoring_response(metrics))

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Job '{job_id}' not found",
    )


@router.get("", response_model=JobsStatusResponse, status_code=status.HTTP_200_OK)
async def get_jobs_status(
    scheduler: SchedulerService = Depends(_get_scheduler_service),
    pipeline_service: NotificationPipelineService = Depends(_get_pipeline_service),
) -> JobsStatusResponse:
    return JobsStatusResponse(
        scheduler_enabled=scheduler.enabled,
        scheduler_running=scheduler.running,
        jobs=[_job_response(job_state) for job_state in scheduler.list_jobs()],
        monitoring=[
            _monitoring_response(metrics)
            for metrics in pipeline_service.monitoring_snapshot()
        ],
    )


@router.post(
    "/retry-sweep/run",
    response_model=JobRunResponse,
    status_code=status.HTTP_200_OK,
)
async def run_retry_sweep(
    pipeline_service: NotificationPipelineService = Depends(_get_pipeline_service),
) -> JobRunResponse:
    started = await pipeline_service.run_retry_sweep_job()
    return _job_run_response(
        pipeline_service, job_id=RETRY_SWEEP_JOB_ID, started=started
    )


@router.post(
    "/log-cleanup/run",
    response_model=JobRunResponse,
    status_code=status.HTTP_200_OK,
)
async def run_log_cleanup(
    pipeline_service: NotificationPipelineService = Depends(_get_pipeline_service),
) -> JobRunResponse:
    started = await pipeline_service.run_log_cleanup_job()
    return _job_run_response(
        pipeline_service, job_id=LOG_CLEANUP_JOB_ID, started=started
    )


@router.post(
    "/{job_id}/pause",
    response_model=SchedulerJobResponse,
    status_code=status.HTTP_200_OK,
)
async def pause_job(
    job_id: str,
    scheduler: SchedulerService = Depends(_get_scheduler_service),
) -> SchedulerJobResponse:
    try:
        job_state = scheduler.pause_job(job_id)
    except Exception as error:
        _raise_scheduler_error(error)

    return _job_response(job_state)


@router.post(
    "/{job_id}/resume",
    response_model=SchedulerJobResponse,
    status_code=status.HTTP_200_OK,
)
async def resume_job(
    job_id: str,
    scheduler: SchedulerService = Depends(_get_scheduler_service),
) -> SchedulerJobResponse:
    try:
        job_state = scheduler.resume_job(job_id)
    except Exception as error:
        _raise_scheduler_error(error)

    return _job_response(job_state)


__all__ = ["router"]
