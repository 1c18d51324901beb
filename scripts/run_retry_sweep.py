"""Run one IndexNow retry sweep and log cleanup outside the web process."""

from __future__ import annotations

import argparse
import asyncio
from datetime import UTC, datetime, timedelta

from indexnow_notifier.config import get_settings
from indexnow_notifier.database import close_database, initialize_database
from indexnow_notifier.services.indexnow_client import IndexNowClient
from indexnow_notifier.services.key_file import resolve_api_key
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.retry_sweep import RetrySweepService
from indexnow_notifier.services.submission_log_store import SubmissionLogStore
from indexnow_notifier.utils.logging import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        help="Do not purge log entries older than LOG_RETENTION_DAYS.",
    )
    return parser.parse_args()


async def main(*, skip_cleanup: bool) -> None:
    settings = get_settings()
    setup_logging(settings)
    started_at = datetime.now(UTC)

    await initialize_database()
    retry_policy = RetryPolicy.from_settings(settings)
    log_store = SubmissionLogStore(retry_policy=retry_policy)
    client = IndexNowClient.from_settings(settings, api_key=resolve_api_key(settings))
    try:
        result = await RetrySweepService(
            log_store=log_store,
            client=client,
            policy=retry_policy,
        ).sweep()
        deleted_rows = 0
        if not skip_cleanup:
            deleted_rows = await log_store.purge_created_before(
                log_store.now() - timedelta(days=settings.LOG_RETENTION_DAYS)
            )
    finally:
        await close_database()

    duration_ms = round((datetime.now(UTC) - started_at).total_seconds() * 1000, 2)
    print(
        (
            "Retry sweep completed "
            f"(selected={result.selected}, succeeded={result.succeeded}, "
            f"rescheduled={result.rescheduled}, "
            f"permanently_failed={result.permanently_failed}, "
            f"exhausted={result.exhausted}, errored={result.errored}, "
            f"deleted_rows={deleted_rows}, duration_ms={duration_ms})"
        )
    )


if __name__ == "__main__":
    arguments = _parse_args()
    asyncio.run(main(skip_cleanup=arguments.skip_cleanup))
