"""ORM model exports."""

from indexnow_notifier import __version__
from indexnow_notifier.models.base import Base
from indexnow_notifier.models.submission_log import (
    TERMINAL_SUBMISSION_STATUSES,
    SubmissionAction,
    SubmissionLog,
    SubmissionStatus,
)

__all__ = [
    "__version__",
    "Base",
    "SubmissionAction",
    "SubmissionLog",
    "SubmissionStatus",
    "TERMINAL_SUBMISSION_STATUSES",
]
