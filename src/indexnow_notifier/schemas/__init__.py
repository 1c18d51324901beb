"""Schema exports for API serialization."""

from indexnow_notifier import __version__
from indexnow_notifier.schemas.submission_log import (
    ContentChangeAccepted,
    ContentChangeEventCreate,
    ManualSubmissionCreate,
    ManualSubmissionRead,
    RecordSubmissionCreate,
    StatusCountsRead,
    SubmissionLogPage,
    SubmissionLogRead,
    SubmissionResultRead,
    SubmissionStatsRead,
)

__all__ = [
    "__version__",
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
