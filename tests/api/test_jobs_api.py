"""Tests for scheduled job status and manual trigger routes."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from indexnow_notifier.api.jobs import router
from indexnow_notifier.config import Settings
from indexnow_notifier.services.notification_pipeline import (
    LOG_CLEANUP_JOB_ID,
    RETRY_SWEEP_JOB_ID,
    NotificationPipelineService,
)
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.retry_sweep import RetrySweepResult
from indexnow_notifier.services.scheduler import SchedulerService
from indexnow_notifier.services.submission_log_store import SubmissionLogStore
from conftest import FakeClock, SessionScopeFactory


class _StubSweep:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.release.set()
        self.started = asyncio.Event()

    async def sweep(self) -> RetrySweepResult:
        self.started.set()
        await self.release.wait()
        return RetrySweepResult(selected=1, succeeded=1)


def _app(
    *,
    scheduler: SchedulerService,
    retry_sweep: _StubSweep,
    log_store: SubmissionLogStore,
    scheduler_enabled: bool,
) -> FastAPI:
    settings = Settings(
        _env_file=None,  # type: ignore[call-arg]
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        INDEXNOW_HOST="example.com",
        SCHEDULER_ENABLED=scheduler_enabled,
    )
    pipeline_service = NotificationPipelineService(
        scheduler=scheduler,
        settings=settings,
        retry_sweep=retry_sweep,  # type: ignore[arg-type]
        log_store=log_store,
    )
    pipeline_service.register_jobs()

    app = FastAPI()
    app.include_router(router)
    app.state.scheduler_service = scheduler
    app.state.pipeline_service = pipeline_service
    return app


@pytest.mark.asyncio
async def test_jobs_api_lists_pauses_and_resumes_jobs(
    tmp_path: Path,
    session_factory: SessionScopeFactory,
    clock: FakeClock,
) -> None:
    scheduler = SchedulerService(
        enabled=True,
        jobstore_url=f"sqlite:///{tmp_path / 'jobs-api.sqlite'}",
    )
    app = _app(
        scheduler=scheduler,
        retry_sweep=_StubSweep(),
        log_store=SubmissionLogStore(
            retry_policy=RetryPolicy(),
            session_factory=session_factory,
            now_factory=clock.now,
        ),
        scheduler_enabled=True,
    )

    await scheduler.start()
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            status_response = await client.get("/api/jobs")
            assert status_response.status_code == 200
            payload = status_response.json()
            assert payload["scheduler_enabled"] is True
            assert payload["scheduler_running"] is True
            assert {job["job_id"] for job in payload["jobs"]} == {
                RETRY_SWEEP_JOB_ID,
                LOG_CLEANUP_JOB_ID,
            }
            assert {metrics["job_id"] for metrics in payload["monitoring"]} == {
                RETRY_SWEEP_JOB_ID,
                LOG_CLEANUP_JOB_ID,
            }

            pause_response = await client.post(f"/api/jobs/{RETRY_SWEEP_JOB_ID}/pause")
            assert pause_response.status_code == 200
            assert pause_response.json()["paused"] is True

            resume_response = await client.post(
                f"/api/jobs/{RETRY_SWEEP_JOB_ID}/resume"
            )
            assert resume_response.status_code == 200
            assert resume_response.json()["paused"] is False

            missing_response = await client.post("/api/jobs/missing-job/pause")
            assert missing_response.status_code == 404
    finally:
        await scheduler.shutdown()


@pytest.mark.asyncio
async def test_jobs_api_runs_jobs_on_demand(
    session_factory: SessionScopeFactory,
    clock: FakeClock,
) -> None:
    app = _app(
        scheduler=SchedulerService(enabled=False, jobstore_url="sqlite:///:memory:"),
        retry_sweep=_StubSweep(),
        log_store=SubmissionLogStore(
            retry_policy=RetryPolicy(),
            session_factory=session_factory,
            now_factory=clock.now,
        ),
        scheduler_enabled=False,
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        sweep_response = await client.post("/api/jobs/retry-sweep/run")
        cleanup_response = await client.post("/api/jobs/log-cleanup/run")
        status_response = await client.get("/api/jobs")
        pause_response = await client.post(f"/api/jobs/{RETRY_SWEEP_JOB_ID}/pause")

    assert sweep_response.status_code == 200
    sweep_job = sweep_response.json()["job"]
    assert sweep_job["successful_runs"] == 1
    assert sweep_job["last_summary"]["succeeded"] == 1
    assert cleanup_response.status_code == 200
    assert cleanup_response.json()["job"]["last_summary"] == {"deleted_rows": 0}
    assert status_response.json()["scheduler_enabled"] is False
    assert status_response.json()["jobs"] == []
    assert pause_response.status_code == 409


@pytest.mark.asyncio
async def test_jobs_api_rejects_overlapping_manual_runs(
    session_factory: SessionScopeFactory,
    clock: FakeClock,
) -> None:
    sweep = _StubSweep()
    sweep.release.clear()
    app = _app(
        scheduler=SchedulerService(enabled=False, jobstore_url="sqlite:///:memory:"),
        retry_sweep=sweep,
        log_store=SubmissionLogStore(
            retry_policy=RetryPolicy(),
            session_factory=session_factory,
            now_factory=clock.now,
        ),
        scheduler_enabled=False,
    )
    pipeline_service: NotificationPipelineService = app.state.pipeline_service

    first_run = asyncio.create_task(pipeline_service.run_retry_sweep_job())
    await sweep.started.wait()
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/jobs/retry-sweep/run")
    finally:
        sweep.release.set()
        await first_run

    assert response.status_code == 409
    assert "already running" in response.json()["detail"]


@pytest.mark.asyncio
async def test_jobs_api_returns_503_without_services() -> None:
    app = FastAPI()
    app.include_router(router)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/jobs")

    assert response.status_code == 503
