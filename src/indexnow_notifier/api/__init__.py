"""API package exports."""

from indexnow_notifier import __version__
from indexnow_notifier.api.jobs import router as jobs_router
from indexnow_notifier.api.key_file import router as key_file_router
from indexnow_notifier.api.submissions import router as submissions_router

__all__ = [
    "__version__",
    "jobs_router",
    "key_file_router",
    "submissions_router",
]
