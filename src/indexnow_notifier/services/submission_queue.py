"""Bounded in-process queue that delivers content-change submissions in the background."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from indexnow_notifier.services.indexnow_client import SubmissionRequest

DEFAULT_QUEUE_MAX_SIZE = 1000
DEFAULT_DRAIN_TIMEOUT_SECONDS = 30.0

SubmissionHandler = Callable[[SubmissionRequest], Awaitable[object]]

_queue_logger = logging.getLogger("indexnow_notifier.submission_queue")


@dataclass(slots=True)
class SubmissionQueueStats:
    enqueued: int = 0
    delivered: int = 0
    dropped: int = 0
    failed: int = 0


class SubmissionQueue:
    """Single background worker consuming ``SubmissionRequest`` items in order."""

    def __init__(
        self,
        *,
        handler: SubmissionHandler,
        max_size: int = DEFAULT_QUEUE_MAX_SIZE,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be greater than zero")

        self._handler = handler
        self._queue: asyncio.Queue[SubmissionRequest | None] = asyncio.Queue(
            maxsize=max_size
        )
        self._worker: asyncio.Task[None] | None = None
        self._stats = SubmissionQueueStats()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def stats(self) -> SubmissionQueueStats:
        return SubmissionQueueStats(
            enqueued=self._stats.enqueued,
            delivered=self._stats.delivered,
            dropped=self._stats.dropped,
            failed=self._stats.failed,
        )

    async def start(self) -> None:
        if self.running:
            return

        self._worker = asyncio.create_task(
            self._worker_loop(), name="indexnow-submission-worker"
        )
        _queue_logger.info(
            "submission_queue_started", extra={"max_size": self._queue.maxsize}
        )

    def enqueue(self, request: SubmissionRequest) -> bool:
        """Queue ``request`` without waiting; returns False when it was dropped."""

        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            self._stats.dropped += 1
            _queue_logger.warning(
                "submission_queue_full",
                extra={
                    "action": request.action.value,
                    "url_count": len(request.urls),
                    "max_size": self._queue.maxsize,
                },
            )
            return False

        self._stats.enqueued += 1
        return True

    async def join(self) -> None:
        """Wait until every queued request has been handled."""

        await self._queue.join()

    async def stop(self, *, timeout: float = DEFAULT_DRAIN_TIMEOUT_SECONDS) -> None:
        """Drain queued requests, cancelling the worker if draining exceeds ``timeout``."""

        worker = self._worker
        if worker is None:
            return

        self._worker = None
        if worker.done():
            return

        await self._queue.put(None)
        try:
            await asyncio.wait_for(asyncio.shield(worker), timeout=timeout)
        except TimeoutError:
            worker.cancel()
            _queue_logger.warning(
                "submission_queue_drain_timeout",
                extra={"timeout_seconds": timeout, "pending": self._queue.qsize()},
            )
            await asyncio.gather(worker, return_exceptions=True)
            return

        _queue_logger.info(
            "submission_queue_stopped",
            extra={
                "delivered": self._stats.delivered,
                "failed": self._stats.failed,
                "dropped": self._stats.dropped,
            },
        )

    async def _worker_loop(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request is None:
                    return

                await self._handler(request)
                self._stats.delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                self._stats.failed += 1
                _queue_logger.exception(
                    "submission_queue_delivery_failed",
                    extra={
                        "action": request.action.value if request else None,
                        "url_count": len(request.urls) if request else 0,
                    },
                )
            finally:
                self._queue.task_done()


__all__ = [
    "DEFAULT_QUEUE_MAX_SIZE",
    "SubmissionHandler",
    "SubmissionQueue",
    "SubmissionQueueStats",
]
