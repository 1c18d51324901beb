"""Turn content changes and manual requests into IndexNow submissions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from indexnow_notifier.config import Settings
from indexnow_notifier.models import SubmissionAction
from indexnow_notifier.services.indexnow_client import (
    BatchSubmissionOutcome,
    IndexNowClient,
    SubmissionRequest,
    SubmissionResult,
    normalize_submission_urls,
    url_belongs_to_host,
)
from indexnow_notifier.services.submission_log_store import (
    SubmissionLogStore,
    SubmissionOrigin,
)
from indexnow_notifier.services.submission_queue import (
    DEFAULT_QUEUE_MAX_SIZE,
    SubmissionQueue,
)

SYSTEM_SOURCE_PREFIX = "_"
RECORD_ID_PLACEHOLDER = "{record_id}"
CONTENT_CHANGE_ACTIONS = frozenset(
    {SubmissionAction.CREATE, SubmissionAction.UPDATE, SubmissionAction.DELETE}
)

_notification_logger = logging.getLogger("indexnow_notifier.notifications")


@dataclass(slots=True, frozen=True)
class ContentChangeEvent:
    """A saved or deleted content record, passed explicitly by the caller."""

    source_table: str
    action: SubmissionAction
    record_ids: tuple[int, ...] = ()
    urls: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.action not in CONTENT_CHANGE_ACTIONS:
            raise ValueError(
                f"Content change action must be create, update or delete, "
                f"got {self.action.value}"
            )
        object.__setattr__(
            self,
            "record_ids",
            tuple(record_id for record_id in self.record_ids if record_id > 0),
        )


class URLResolver(Protocol):
    def resolve(self, source_table: str, record_id: int) -> Sequence[str]: ...


class TemplateURLResolver:
    """Resolve record URLs from per-source templates containing ``{record_id}``."""

    def __init__(self, templates: Mapping[str, str]) -> None:
        for source_table, template in templates.items():
            if RECORD_ID_PLACEHOLDER not in template:
                raise ValueError(
                    f"URL template for '{source_table}' must contain {RECORD_ID_PLACEHOLDER}"
                )
        self._templates = dict(templates)

    def resolve(self, source_table: str, record_id: int) -> list[str]:
        template = self._templates.get(source_table)
        if template is None:
            return []
        return [template.replace(RECORD_ID_PLACEHOLDER, str(record_id))]


@dataclass(slots=True, frozen=True)
class ManualSubmissionResult:
    """Host-validated manual submission; ``result`` is None when nothing was valid."""

    submitted_urls: tuple[str, ...]
    rejected_urls: tuple[str, ...]
    result: SubmissionResult | None
    logged_entries: int = 0


@dataclass(slots=True)
class ContentChangeOutcome:
    enqueued_requests: int = 0
    dropped_requests: int = 0
    skipped_reason: str | None = None
    unresolved_record_ids: list[int] = field(default_factory=list)
    rejected_urls: list[str] = field(default_factory=list)


class IndexNowNotificationService:
    """Enqueue content-change submissions and log every delivered URL."""

    def __init__(
        self,
        *,
        client: IndexNowClient,
        log_store: SubmissionLogStore,
        resolver: URLResolver | None = None,
        auto_submit: bool = True,
        monitored_sources: Iterable[str] = (),
        queue_max_size: int = DEFAULT_QUEUE_MAX_SIZE,
    ) -> None:
        self._client = client
        self._log_store = log_store
        self._resolver = resolver or TemplateURLResolver({})
        self._auto_submit = auto_submit
        self._monitored_sources = frozenset(monitored_sources)
        self._queue = SubmissionQueue(handler=self.deliver, max_size=queue_max_size)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: IndexNowClient,
        log_store: SubmissionLogStore,
        resolver: URLResolver | None = None,
    ) -> IndexNowNotificationService:
        return cls(
            client=client,
            log_store=log_store,
            resolver=resolver or TemplateURLResolver(settings.INDEXNOW_URL_TEMPLATES),
            auto_submit=settings.INDEXNOW_AUTO_SUBMIT,
            monitored_sources=settings.INDEXNOW_MONITORED_SOURCES,
            queue_max_size=settings.SUBMISSION_QUEUE_MAX_SIZE,
        )

    @property
    def queue(self) -> SubmissionQueue:
        return self._queue

    def is_monitored(self, source_table: str) -> bool:
        if source_table.startswith(SYSTEM_SOURCE_PREFIX):
            return False
        return source_table in self._monitored_sources

    def handle_content_change(self, event: ContentChangeEvent) -> ContentChangeOutcome:
        """Resolve and enqueue URLs for ``event``; never raises to the caller."""

        outcome = ContentChangeOutcome()
        if not self._auto_submit:
            outcome.skipped_reason = "auto_submit_disabled"
            return outcome
        if not self.is_monitored(event.source_table):
            outcome.skipped_reason = "source_not_monitored"
            return outcome

        try:
            for request in self._requests_for_event(event, outcome):
                if self._queue.enqueue(request):
                    outcome.enqueued_requests += 1
                else:
                    outcome.dropped_requests += 1
        except Exception:
            _notification_logger.exception(
                "content_change_handling_failed",
                extra={
                    "source_table": event.source_table,
                    "action": event.action.value,
                },
            )
            outcome.skipped_reason = "error"
            return outcome

        if outcome.rejected_urls:
            _notification_logger.warning(
                "content_change_urls_rejected",
                extra={
                    "source_table": event.source_table,
                    "rejected_urls": outcome.rejected_urls,
                    "host": self._client.host,
                },
            )
        _notification_logger.info(
            "content_change_enqueued",
            extra={
                "source_table": event.source_table,
                "action": event.action.value,
                "enqueued_requests": outcome.enqueued_requests,
                "dropped_requests": outcome.dropped_requests,
                "unresolved_record_ids": outcome.unresolved_record_ids,
                "rejected_urls": outcome.rejected_urls,
            },
        )
        return outcome

    async def deliver(self, request: SubmissionRequest) -> BatchSubmissionOutcome:
        """Submit ``request`` in batches and log one entry per URL."""

        outcome = await self._client.submit_in_batches(request.urls)
        origin = SubmissionOrigin(
            source_table=request.source_table,
            record_id=request.record_id,
        )
        for chunk in outcome.chunks:
            await self._log_store.append_many(
                urls=chunk.urls,
                action=request.action,
                result=chunk.result,
                origin=origin,
            )
        if outcome.unsent_urls:
            await self._log_store.append_many(
                urls=outcome.unsent_urls,
                action=request.action,
                result=outcome.result,
                origin=origin,
            )

        _notification_logger.info(
            "indexnow_request_delivered",
            extra={
                "action": request.action.value,
                "url_count": len(request.urls),
                "requests_sent": outcome.requests_sent,
                "status_code": outcome.result.code,
                "success": outcome.result.success,
            },
        )
        return outcome

    async def submit_manual(
        self,
        urls: Sequence[str],
        *,
        source_table: str | None = None,
    ) -> ManualSubmissionResult:
        """Submit URLs right away, skipping those not on the configured host."""

        normalized_urls = normalize_submission_urls(urls)
        submitted_urls = tuple(
            url for url in normalized_urls if url_belongs_to_host(url, self._client.host)
        )
        rejected_urls = tuple(url for url in normalized_urls if url not in submitted_urls)
        if rejected_urls:
            _notification_logger.warning(
                "manual_submission_urls_rejected",
                extra={"rejected_urls": list(rejected_urls), "host": self._client.host},
            )
        if not submitted_urls:
            return ManualSubmissionResult(
                submitted_urls=(),
                rejected_urls=rejected_urls,
                result=None,
            )

        outcome = await self.deliver(
            SubmissionRequest(
                urls=submitted_urls,
                action=SubmissionAction.MANUAL,
                source_table=source_table,
            )
        )
        return ManualSubmissionResult(
            submitted_urls=submitted_urls,
            rejected_urls=rejected_urls,
            result=outcome.result,
            logged_entries=len(submitted_urls),
        )

    async def submit_records(
        self,
        source_table: str,
        record_ids: Iterable[int],
    ) -> ManualSubmissionResult:
        """Resolve every record of ``source_table`` and submit the URLs as one manual batch."""

        if not self.is_monitored(source_table):
            raise ValueError(f"Source table '{source_table}' is not monitored")

        resolved_urls: list[str] = []
        for record_id in record_ids:
            if record_id <= 0:
                continue
            resolved_urls.extend(self._resolver.resolve(source_table, record_id))

        return await self.submit_manual(resolved_urls, source_table=source_table)

    def _requests_for_event(
        self,
        event: ContentChangeEvent,
        outcome: ContentChangeOutcome,
    ) -> list[SubmissionRequest]:
        if event.urls:
            host_urls = self._split_by_host(event.urls, outcome)
            if not host_urls:
                return []
            record_id = event.record_ids[0] if len(event.record_ids) == 1 else None
            return [
                SubmissionRequest(
                    urls=host_urls,
                    action=event.action,
                    source_table=event.source_table,
                    record_id=record_id,
                )
            ]

        requests: list[SubmissionRequest] = []
        for record_id in event.record_ids:
            resolved_urls = self._split_by_host(
                self._resolver.resolve(event.source_table, record_id), outcome
            )
            if not resolved_urls:
                outcome.unresolved_record_ids.append(record_id)
                continue
            requests.append(
                SubmissionRequest(
                    urls=resolved_urls,
                    action=event.action,
                    source_table=event.source_table,
                    record_id=record_id,
                )
            )
        return requests

    def _split_by_host(
        self,
        urls: Sequence[str],
        outcome: ContentChangeOutcome,
    ) -> tuple[str, ...]:
        normalized_urls = normalize_submission_urls(urls)
        host_urls = tuple(
            url for url in normalized_urls if url_belongs_to_host(url, self._client.host)
        )
        outcome.rejected_urls.extend(
            url for url in normalized_urls if url not in host_urls
        )
        return host_urls


__all__ = [
    "ContentChangeEvent",
    "ContentChangeOutcome",
    "IndexNowNotificationService",
    "ManualSubmissionResult",
    "TemplateURLResolver",
    "URLResolver",
]
