"""Application entry point for IndexNow Notifier."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from indexnow_notifier import __version__
from indexnow_notifier.api.jobs import router as jobs_router
from indexnow_notifier.api.key_file import router as key_file_router
from indexnow_notifier.api.submissions import router as submissions_router
from indexnow_notifier.config import Settings, get_settings
from indexnow_notifier.database import close_database, initialize_database
from indexnow_notifier.services.indexnow_client import IndexNowClient
from indexnow_notifier.services.key_file import ensure_key_file, resolve_api_key
from indexnow_notifier.services.notification_pipeline import (
    NotificationPipelineService,
    set_notification_pipeline_service,
)
from indexnow_notifier.services.notification_service import (
    IndexNowNotificationService,
)
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.retry_sweep import RetrySweepService
from indexnow_notifier.services.scheduler import SchedulerService
from indexnow_notifier.services.submission_log_store import SubmissionLogStore
from indexnow_notifier.utils.logging import (
    add_request_logging_middleware,
    setup_logging,
)

__all__ = ["app", "create_app", "main"]

_lifecycle_logger = logging.getLogger("indexnow_notifier.lifecycle")


def _build_services(app: FastAPI, settings: Settings) -> None:
    api_key = resolve_api_key(settings)
    ensure_key_file(settings.INDEXNOW_WEB_ROOT_DIR, api_key)

    retry_policy = RetryPolicy.from_settings(settings)
    client = IndexNowClient.from_settings(settings, api_key=api_key)
    log_store = SubmissionLogStore(retry_policy=retry_policy)
    retry_sweep = RetrySweepService(
        log_store=log_store,
        client=client,
        policy=retry_policy,
    )
    notification_service = IndexNowNotificationService.from_settings(
        settings,
        client=client,
        log_store=log_store,
    )
    scheduler_service = SchedulerService.from_settings(settings)
    pipeline_service = NotificationPipelineService(
        scheduler=scheduler_service,
        settings=settings,
        retry_sweep=retry_sweep,
        log_store=log_store,
    )
    set_notification_pipeline_service(pipeline_service)

    app.state.indexnow_api_key = api_key
    app.state.log_store = log_store
    app.state.notification_service = notification_service
    app.state.scheduler_service = scheduler_service
    app.state.pipeline_service = pipeline_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()

    await initialize_database()
    _build_services(app, settings)

    notification_service: IndexNowNotificationService = app.state.notification_service
    scheduler_service: SchedulerService = app.state.scheduler_service
    pipeline_service: NotificationPipelineService = app.state.pipeline_service

    await notification_service.queue.start()
    pipeline_service.register_jobs()
    await scheduler_service.start()
    _lifecycle_logger.info(
        "application_started",
        extra={
            "indexnow_host": settings.INDEXNOW_HOST,
            "auto_submit": settings.INDEXNOW_AUTO_SUBMIT,
            "retry_enabled": settings.RETRY_ENABLED,
            "scheduler_enabled": settings.SCHEDULER_ENABLED,
        },
    )

    try:
        yield
    finally:
        await scheduler_service.shutdown()
        await notification_service.queue.stop(
            timeout=settings.SHUTDOWN_GRACE_PERIOD_SECONDS
        )
        queue_stats = notification_service.queue.stats
        _lifecycle_logger.info(
            "shutdown_summary",
            extra={
                "submissions_enqueued": queue_stats.enqueued,
                "submissions_delivered": queue_stats.delivered,
                "submissions_failed": queue_stats.failed,
                "submissions_dropped": queue_stats.dropped,
            },
        )
        await close_database()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(title="IndexNow Notifier", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    add_request_logging_middleware(app)
    app.include_router(submissions_router)
    app.include_router(jobs_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(key_file_router)
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "indexnow_notifier.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
