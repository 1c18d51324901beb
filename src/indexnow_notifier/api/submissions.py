"""Submission log, manual submission and content event API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from indexnow_notifier.models import SubmissionAction, SubmissionStatus
from indexnow_notifier.schemas import (
    ContentChangeAccepted,
    ContentChangeEventCreate,
    ManualSubmissionCreate,
    ManualSubmissionRead,
    RecordSubmissionCreate,
    SubmissionLogPage,
    SubmissionLogRead,
    SubmissionStatsRead,
)
from indexnow_notifier.services.notification_service import (
    ContentChangeEvent,
    IndexNowNotificationService,
)
from indexnow_notifier.services.submission_log_store import (
    DEFAULT_PAGE_SIZE,
    SubmissionLogStore,
)

router = APIRouter(prefix="/api", tags=["submissions"])


def _get_log_store(request: Request) -> SubmissionLogStore:
    log_store = getattr(request.app.state, "log_store", None)
    if isinstance(log_store, SubmissionLogStore):
        return log_store

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Submission log store is unavailable",
    )


def _get_notification_service(request: Request) -> IndexNowNotificationService:
    notification_service = getattr(request.app.state, "notification_service", None)
    if isinstance(notification_service, IndexNowNotificationService):
        return notification_service

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Notification service is unavailable",
    )


@router.get(
    "/submissions",
    response_model=SubmissionLogPage,
    status_code=status.HTTP_200_OK,
)
async def list_submissions(
    status_filter: SubmissionStatus | None = Query(default=None, alias="status"),
    action: SubmissionAction | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=250),
    log_store: SubmissionLogStore = Depends(_get_log_store),
) -> SubmissionLogPage:
    entry_page = await log_store.list_entries(
        status=status_filter,
        action=action,
        page=page,
        per_page=per_page,
    )
    return SubmissionLogPage.model_validate(entry_page)


@router.get(
    "/submissions/stats",
    response_model=SubmissionStatsRead,
    status_code=status.HTTP_200_OK,
)
async def get_submission_stats(
    log_store: SubmissionLogStore = Depends(_get_log_store),
) -> SubmissionStatsRead:
    return SubmissionStatsRead.model_validate(await log_store.get_stats())


@router.get(
    "/submissions/{entry_id}",
    response_model=SubmissionLogRead,
    status_code=status.HTTP_200_OK,
)
async def get_submission(
    entry_id: int,
    log_store: SubmissionLogStore = Depends(_get_log_store),
) -> SubmissionLogRead:
    entry = await log_store.get(entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission log entry not found",
        )
    return SubmissionLogRead.model_validate(entry)


@router.post(
    "/submissions",
    response_model=ManualSubmissionRead,
    status_code=status.HTTP_200_OK,
)
async def submit_urls(
    payload: ManualSubmissionCreate,
    notification_service: IndexNowNotificationService = Depends(
        _get_notification_service
    ),
) -> ManualSubmissionRead:
    manual_result = await notification_service.submit_manual(payload.urls)
    if manual_result.result is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "No URLs belong to the configured host",
                "rejected_urls": list(manual_result.rejected_urls),
            },
        )
    return ManualSubmissionRead.model_validate(manual_result)


@router.post(
    "/submissions/records",
    response_model=ManualSubmissionRead,
    status_code=status.HTTP_200_OK,
)
async def submit_records(
    payload: RecordSubmissionCreate,
    notification_service: IndexNowNotificationService = Depends(
        _get_notification_service
    ),
) -> ManualSubmissionRead:
    try:
        manual_result = await notification_service.submit_records(
            payload.source_table, payload.record_ids
        )
    except ValueError as error:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(error),
        ) from error

    if manual_result.result is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "No record URLs belong to the configured host",
                "rejected_urls": list(manual_result.rejected_urls),
            },
        )
    return ManualSubmissionRead.model_validate(manual_result)


@router.post(
    "/content-events",
    response_model=ContentChangeAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def receive_content_event(
    payload: ContentChangeEventCreate,
    notification_service: IndexNowNotificationService = Depends(
        _get_notification_service
    ),
) -> ContentChangeAccepted:
    event = ContentChangeEvent(
        source_table=payload.source_table,
        action=payload.action,
        record_ids=tuple(payload.record_ids),
        urls=tuple(payload.urls),
    )
    outcome = notification_service.handle_content_change(event)
    return ContentChangeAccepted.model_validate(outcome)


__all__ = ["router"]
