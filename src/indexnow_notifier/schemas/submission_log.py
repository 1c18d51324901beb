"""Pydantic schemas for submission log and manual submission resources."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from indexnow_notifier.models.submission_log import (
    SubmissionAction,
    SubmissionStatus,
)


class SubmissionLogRead(BaseModel):
    """Serialized submission log entry."""

    model_config = ConfigDict(from_attributes=True)

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


class SubmissionLogPage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page: int
    per_page: int
    total_items: int
    total_pages: int
    items: list[SubmissionLogRead]


class StatusCountsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: int
    failed: int
    pending: int


class SubmissionStatsRead(BaseModel):
    """Counters for today, this week (from Monday), this month and all time."""

    model_config = ConfigDict(from_attributes=True)

    today: StatusCountsRead
    week: StatusCountsRead
    month: StatusCountsRead
    total: StatusCountsRead


class ManualSubmissionCreate(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=50_000)

    @field_validator("urls")
    @classmethod
    def reject_blank_lists(cls, value: list[str]) -> list[str]:
        if not any(url.strip() for url in value):
            raise ValueError("At least one non-empty URL is required")
        return value


class RecordSubmissionCreate(BaseModel):
    """Records of one source table whose URLs should be submitted together."""

    source_table: str = Field(min_length=1, max_length=255)
    record_ids: list[int] = Field(min_length=1, max_length=50_000)


class SubmissionResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    code: int
    message: str


class ManualSubmissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    submitted_urls: list[str]
    rejected_urls: list[str]
    result: SubmissionResultRead | None
    logged_entries: int


class ContentChangeEventCreate(BaseModel):
    """Content save or delete notification from the publishing system."""

    source_table: str = Field(min_length=1, max_length=255)
    action: SubmissionAction
    record_ids: list[int] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)

    @field_validator("action")
    @classmethod
    def validate_action(cls, value: SubmissionAction) -> SubmissionAction:
        if value not in {
            SubmissionAction.CREATE,
            SubmissionAction.UPDATE,
            SubmissionAction.DELETE,
        }:
            raise ValueError("action must be create, update or delete")
        return value


class ContentChangeAccepted(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enqueued_requests: int
    dropped_requests: int
    skipped_reason: str | None
    unresolved_record_ids: list[int]
    rejected_urls: list[str]


__all__ = [
    "ContentChangeAccepted",
    "ContentChangeEventCreate",
    "ManualSubmissionCreate",
    "ManualSubmissionRead",
    "RecordSubmissionCreate",
    "StatusCountsRead",
    "SubmissionLogPage",
    "SubmissionLogRead",
    "SubmissionResultRead",
    "SubmissionStatsRead",
]
