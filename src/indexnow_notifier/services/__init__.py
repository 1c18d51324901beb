"""Service layer for IndexNow submissions, retries and scheduled jobs."""

from indexnow_notifier import __version__
from indexnow_notifier.services.indexnow_client import (
    ALL_BATCHES_SUBMITTED,
    BatchChunkResult,
    BatchSubmissionOutcome,
    IndexNowClient,
    SubmissionRequest,
    SubmissionResult,
    url_belongs_to_host,
)
from indexnow_notifier.services.key_file import (
    ensure_key_file,
    generate_api_key,
    key_file_matches,
    resolve_api_key,
)
from indexnow_notifier.services.notification_pipeline import (
    LOG_CLEANUP_JOB_ID,
    RETRY_SWEEP_JOB_ID,
    JobExecutionMetrics,
    NotificationPipelineService,
    set_notification_pipeline_service,
)
from indexnow_notifier.services.notification_service import (
    ContentChangeEvent,
    IndexNowNotificationService,
    ManualSubmissionResult,
    TemplateURLResolver,
    URLResolver,
)
from indexnow_notifier.services.response_classifier import (
    ResponseClass,
    classify_response_code,
    describe_response_code,
)
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.retry_sweep import RetrySweepResult, RetrySweepService
from indexnow_notifier.services.scheduler import SchedulerJobState, SchedulerService
from indexnow_notifier.services.submission_log_store import (
    LogEntry,
    LogEntryPage,
    SubmissionLogStore,
    SubmissionOrigin,
    SubmissionStats,
    TerminalLogEntryError,
)
from indexnow_notifier.services.submission_queue import SubmissionQueue

__all__ = [
    "ALL_BATCHES_SUBMITTED",
    "BatchChunkResult",
    "BatchSubmissionOutcome",
    "ContentChangeEvent",
    "IndexNowClient",
    "IndexNowNotificationService",
    "JobExecutionMetrics",
    "LOG_CLEANUP_JOB_ID",
    "LogEntry",
    "LogEntryPage",
    "ManualSubmissionResult",
    "NotificationPipelineService",
    "RETRY_SWEEP_JOB_ID",
    "ResponseClass",
    "RetryPolicy",
    "RetrySweepResult",
    "RetrySweepService",
    "SchedulerJobState",
    "SchedulerService",
    "SubmissionLogStore",
    "SubmissionOrigin",
    "SubmissionQueue",
    "SubmissionRequest",
    "SubmissionResult",
    "SubmissionStats",
    "TemplateURLResolver",
    "TerminalLogEntryError",
    "URLResolver",
    "__version__",
    "classify_response_code",
    "describe_response_code",
    "ensure_key_file",
    "generate_api_key",
    "key_file_matches",
    "resolve_api_key",
    "set_notification_pipeline_service",
    "url_belongs_to_host",
]
