"""Submission log ORM model for IndexNow delivery attempts and retry state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime,
    Enum as SqlEnum,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from indexnow_notifier.models.base import Base


class SubmissionAction(str, Enum):
    """Reason a URL was submitted."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANUAL = "manual"
    RETRY = "retry"


class SubmissionStatus(str, Enum):
    """Delivery state of a logged submission."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    PERMANENT_FAIL = "permanent_fail"


TERMINAL_SUBMISSION_STATUSES = frozenset(
    {SubmissionStatus.SUCCESS, SubmissionStatus.PERMANENT_FAIL}
)


def _enum_values(enum: type[Enum]) -> list[str]:
    return [member.value for member in enum]


class SubmissionLog(Base):
    """One submitted URL with its latest response and retry bookkeeping."""

    __tablename__ = "indexnow_submission_logs"
    __table_args__ = (
        Index("ix_indexnow_submission_logs_created_at", "created_at"),
        Index("ix_indexnow_submission_logs_status", "status"),
        Index("ix_indexnow_submission_logs_next_retry_at", "next_retry_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    source_table: Mapped[str | None] = mapped_column(String(255))
    record_id: Mapped[int | None] = mapped_column(Integer)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[SubmissionAction] = mapped_column(
        SqlEnum(
            SubmissionAction,
            name="submission_action",
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    status: Mapped[SubmissionStatus] = mapped_column(
        SqlEnum(
            SubmissionStatus,
            name="submission_status",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SubmissionStatus.PENDING,
        server_default=SubmissionStatus.PENDING.value,
    )
    response_code: Mapped[int | None] = mapped_column(Integer)
    response_message: Mapped[str | None] = mapped_column(Text)
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_retry_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


__all__ = [
    "SubmissionAction",
    "SubmissionLog",
    "SubmissionStatus",
    "TERMINAL_SUBMISSION_STATUSES",
]
