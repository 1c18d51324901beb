"""IndexNow HTTP client: single URL GET, batch POST and chunked submissions."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Final
from urllib.parse import urlencode, urlsplit

import httpx

from indexnow_notifier.config import Settings
from indexnow_notifier.models import SubmissionAction
from indexnow_notifier.services.response_classifier import (
    SUCCESS_STATUS_CODES,
    TRANSPORT_FAILURE_CODE,
    ResponseClass,
    classify_response_code,
    describe_response_code,
)

MAX_URLS_PER_REQUEST: Final[int] = 10_000
DEFAULT_BATCH_PAUSE_SECONDS: Final[float] = 0.1
DEFAULT_CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_MAX_REDIRECTS: Final[int] = 3
JSON_CONTENT_TYPE: Final[str] = "application/json; charset=utf-8"

_LOGGER = logging.getLogger("indexnow_notifier.indexnow.client")

SleepCallable = Callable[[float], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    """Outcome of one IndexNow request."""

    success: bool
    code: int
    message: str

    @classmethod
    def from_status_code(cls, code: int) -> SubmissionResult:
        return cls(
            success=code in SUCCESS_STATUS_CODES,
            code=code,
            message=describe_response_code(code),
        )

    @classmethod
    def connection_error(cls, detail: str) -> SubmissionResult:
        return cls(
            success=False,
            code=TRANSPORT_FAILURE_CODE,
            message=f"connection error: {detail}",
        )

    @property
    def response_class(self) -> ResponseClass:
        return classify_response_code(self.code)


ALL_BATCHES_SUBMITTED = SubmissionResult(
    success=True, code=200, message="All URLs submitted successfully"
)


def normalize_submission_urls(urls: Iterable[str]) -> tuple[str, ...]:
    """Strip, drop blanks and deduplicate URLs while keeping first-seen order."""

    stripped_urls = (url.strip() for url in urls if url is not None)
    return tuple(dict.fromkeys(url for url in stripped_urls if url))


def _bare_host(host: str) -> str:
    normalized_host = host.strip().lower()
    if normalized_host.startswith("www."):
        return normalized_host[len("www.") :]
    return normalized_host


def url_belongs_to_host(url: str, host: str) -> bool:
    """Return whether ``url`` is an http(s) URL on ``host`` (``www.`` ignored)."""

    try:
        parsed_url = urlsplit(url.strip())
    except ValueError:
        return False

    if parsed_url.scheme.lower() not in {"http", "https"}:
        return False
    if not parsed_url.hostname:
        return False

    return _bare_host(parsed_url.hostname) == _bare_host(host.split(":")[0])


@dataclass(slots=True, frozen=True)
class SubmissionRequest:
    """URLs from one host plus the action and origin that triggered them."""

    urls: tuple[str, ...]
    action: SubmissionAction = SubmissionAction.MANUAL
    source_table: str | None = None
    record_id: int | None = None

    def __post_init__(self) -> None:
        normalized_urls = normalize_submission_urls(self.urls)
        if not normalized_urls:
            raise ValueError("SubmissionRequest requires at least one URL")
        object.__setattr__(self, "urls", normalized_urls)


@dataclass(slots=True, frozen=True)
class BatchChunkResult:
    """URLs sent in one request and the result of that request."""

    urls: tuple[str, ...]
    result: SubmissionResult


@dataclass(slots=True, frozen=True)
class BatchSubmissionOutcome:
    """Result of a chunked submission, stopping at the first failing chunk."""

    result: SubmissionResult
    chunks: tuple[BatchChunkResult, ...]
    unsent_urls: tuple[str, ...]

    @property
    def requests_sent(self) -> int:
        return len(self.chunks)


def _chunk_urls(urls: Sequence[str], batch_size: int) -> list[tuple[str, ...]]:
    return [
        tuple(urls[offset : offset + batch_size])
        for offset in range(0, len(urls), batch_size)
    ]


class IndexNowClient:
    """Send IndexNow notifications and turn responses into ``SubmissionResult``."""

    def __init__(
        self,
        *,
        endpoint: str,
        api_key: str,
        host: str,
        batch_size: int = MAX_URLS_PER_REQUEST,
        batch_pause_seconds: float = DEFAULT_BATCH_PAUSE_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        user_agent: str = "IndexNow-Notifier",
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        if not host:
            raise ValueError("host must not be empty")
        if not 1 <= batch_size <= MAX_URLS_PER_REQUEST:
            raise ValueError(
                f"batch_size must be between 1 and {MAX_URLS_PER_REQUEST}"
            )
        if batch_pause_seconds < 0:
            raise ValueError("batch_pause_seconds must be zero or greater")
        if timeout_seconds <= 0 or connect_timeout_seconds <= 0:
            raise ValueError("timeouts must be greater than zero")
        if max_redirects < 0:
            raise ValueError("max_redirects must be zero or greater")

        self._endpoint = endpoint
        self._api_key = api_key
        self._host = host
        self._batch_size = batch_size
        self._batch_pause_seconds = batch_pause_seconds
        self._timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        self._total_timeout_seconds = timeout_seconds
        self._max_redirects = max_redirects
        self._user_agent = user_agent
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> IndexNowClient:
        return cls(
            endpoint=settings.INDEXNOW_ENDPOINT,
            api_key=api_key,
            host=settings.INDEXNOW_HOST,
            batch_size=settings.INDEXNOW_BATCH_SIZE,
            batch_pause_seconds=settings.INDEXNOW_BATCH_PAUSE_SECONDS,
            connect_timeout_seconds=settings.INDEXNOW_CONNECT_TIMEOUT_SECONDS,
            timeout_seconds=settings.INDEXNOW_TIMEOUT_SECONDS,
            max_redirects=settings.INDEXNOW_MAX_REDIRECTS,
            user_agent=settings.INDEXNOW_USER_AGENT,
            transport=transport,
        )

    @property
    def host(self) -> str:
        return self._host

    @property
    def key_location(self) -> str:
        return f"https://{self._host}/{self._api_key}.txt"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            max_redirects=self._max_redirects,
            verify=True,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        )

    async def submit(self, urls: Sequence[str]) -> SubmissionResult:
        """Submit URLs in one request: GET for a single URL, POST otherwise."""

        normalized_urls = normalize_submission_urls(urls)
        if not normalized_urls:
            raise ValueError("submit requires at least one URL")

        async with self._http_client() as client:
            return await self._send(client, normalized_urls)

    async def submit_in_batches(self, urls: Sequence[str]) -> BatchSubmissionOutcome:
        """Submit URLs in sequential chunks, stopping at the first failing chunk."""

        normalized_urls = normalize_submission_urls(urls)
        if not normalized_urls:
            raise ValueError("submit_in_batches requires at least one URL")

        batches = _chunk_urls(normalized_urls, self._batch_size)
        chunk_results: list[BatchChunkResult] = []
        async with self._http_client() as client:
            for batch_index, batch in enumerate(batches):
                if batch_index > 0:
                    await self._sleep(self._batch_pause_seconds)

                result = await self._send(client, batch)
                chunk_results.append(BatchChunkResult(urls=batch, result=result))
                if not result.success:
                    unsent_urls = tuple(
                        url
                        for later_batch in batches[batch_index + 1 :]
                        for url in later_batch
                    )
                    _LOGGER.warning(
                        "indexnow_batch_submission_stopped",
                        extra={
                            "batch_index": batch_index,
                            "batch_count": len(batches),
                            "status_code": result.code,
                            "unsent_urls": len(unsent_urls),
                        },
                    )
                    return BatchSubmissionOutcome(
                        result=result,
                        chunks=tuple(chunk_results),
                        unsent_urls=unsent_urls,
                    )

        return BatchSubmissionOutcome(
            result=ALL_BATCHES_SUBMITTED,
            chunks=tuple(chunk_results),
            unsent_urls=(),
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        urls: Sequence[str],
    ) -> SubmissionResult:
        # httpx timeouts bound each phase; the whole exchange is bounded here.
        try:
            async with asyncio.timeout(self._total_timeout_seconds):
                if len(urls) == 1:
                    response = await client.get(self._single_url_request(urls[0]))
                else:
                    response = await client.post(
                        self._endpoint,
                        content=json.dumps(self._batch_payload(urls)),
                        headers={"Content-Type": JSON_CONTENT_TYPE},
                    )
        except TimeoutError:
            _LOGGER.warning(
                "indexnow_request_timed_out",
                extra={
                    "url_count": len(urls),
                    "timeout_seconds": self._total_timeout_seconds,
                },
            )
            return SubmissionResult.connection_error(
                f"request exceeded {self._total_timeout_seconds:g}s total timeout"
            )
        except httpx.RequestError as exc:
            _LOGGER.warning(
                "indexnow_transport_error",
                extra={
                    "url_count": len(urls),
                    "exception_class": exc.__class__.__name__,
                    "error_message": str(exc),
                },
            )
            return SubmissionResult.connection_error(
                str(exc) or exc.__class__.__name__
            )

        result = SubmissionResult.from_status_code(response.status_code)
        _LOGGER.info(
            "indexnow_submission_sent",
            extra={
                "method": response.request.method,
                "url_count": len(urls),
                "status_code": result.code,
                "success": result.success,
            },
        )
        return result

    def _single_url_request(self, url: str) -> str:
        query = urlencode({"url": url, "key": self._api_key})
        separator = "&" if "?" in self._endpoint else "?"
        return f"{self._endpoint}{separator}{query}"

    def _batch_payload(self, urls: Sequence[str]) -> dict[str, object]:
        return {
            "host": self._host,
            "key": self._api_key,
            "keyLocation": self.key_location,
            "urlList": list(urls),
        }


__all__ = [
    "ALL_BATCHES_SUBMITTED",
    "BatchChunkResult",
    "BatchSubmissionOutcome",
    "IndexNowClient",
    "MAX_URLS_PER_REQUEST",
    "SubmissionRequest",
    "SubmissionResult",
    "normalize_submission_urls",
    "url_belongs_to_host",
]
