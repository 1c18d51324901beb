"""Tests for submission log, manual submission and content event routes."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from indexnow_notifier.api.submissions import router
from indexnow_notifier.models import SubmissionAction
from indexnow_notifier.services.indexnow_client import IndexNowClient, SubmissionResult
from indexnow_notifier.services.notification_service import (
    IndexNowNotificationService,
    TemplateURLResolver,
)
from indexnow_notifier.services.retry_policy import RetryPolicy
from indexnow_notifier.services.submission_log_store import SubmissionLogStore
from conftest import TEST_API_KEY, FakeClock, SessionScopeFactory


@pytest_asyncio.fixture
async def api_app(
    session_factory: SessionScopeFactory,
    clock: FakeClock,
) -> AsyncIterator[FastAPI]:
    log_store = SubmissionLogStore(
        retry_policy=RetryPolicy(),
        session_factory=session_factory,
        now_factory=clock.now,
    )
    client = IndexNowClient(
        endpoint="https://api.indexnow.org/indexnow",
        api_key=TEST_API_KEY,
        host="example.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(200)),
    )
    notification_service = IndexNowNotificationService(
        client=client,
        log_store=log_store,
        resolver=TemplateURLResolver(
            {"articles": "https://example.com/articles/{record_id}/"}
        ),
        monitored_sources=["articles"],
    )

    app = FastAPI()
    app.include_router(router)
    app.state.log_store = log_store
    app.state.notification_service = notification_service
    yield app


def _api_client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_manual_submission_is_sent_and_listed(api_app: FastAPI) -> None:
    async with _api_client(api_app) as client:
        submit_response = await client.post(
            "/api/submissions",
            json={
                "urls": [
                    "https://example.com/a",
                    "https://example.com/b",
                    "https://other.com/c",
                ]
            },
        )
        assert submit_response.status_code == 200
        payload = submit_response.json()
        assert payload["submitted_urls"] == [
            "https://example.com/a",
            "https://example.com/b",
        ]
        assert payload["rejected_urls"] == ["https://other.com/c"]
        assert payload["result"] == {
            "success": True,
            "code": 200,
            "message": "All URLs submitted successfully",
        }
        assert payload["logged_entries"] == 2

        list_response = await client.get(
            "/api/submissions", params={"action": "manual", "per_page": 10}
        )
        assert list_response.status_code == 200
        page = list_response.json()
        assert page["total_items"] == 2
        assert page["per_page"] == 10
        assert {item["url"] for item in page["items"]} == set(
            payload["submitted_urls"]
        )

        entry_id = page["items"][0]["id"]
        entry_response = await client.get(f"/api/submissions/{entry_id}")
        assert entry_response.status_code == 200
        assert entry_response.json()["status"] == "success"
        assert entry_response.json()["attempts"] == 1


@pytest.mark.asyncio
async def test_manual_submission_without_host_urls_is_rejected(
    api_app: FastAPI,
) -> None:
    async with _api_client(api_app) as client:
        response = await client.post(
            "/api/submissions", json={"urls": ["https://other.com/c"]}
        )
        empty_response = await client.post("/api/submissions", json={"urls": []})

    assert response.status_code == 422
    assert response.json()["detail"]["rejected_urls"] == ["https://other.com/c"]
    assert empty_response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_submission_returns_404(api_app: FastAPI) -> None:
    async with _api_client(api_app) as client:
        response = await client.get("/api/submissions/999")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_group_failures_with_permanent_failures(api_app: FastAPI) -> None:
    log_store: SubmissionLogStore = api_app.state.log_store
    await log_store.append(
        url="https://example.com/ok",
        action=SubmissionAction.UPDATE,
        result=SubmissionResult.from_status_code(200),
    )
    await log_store.append(
        url="https://example.com/retry",
        action=SubmissionAction.UPDATE,
        result=SubmissionResult.from_status_code(503),
    )
    await log_store.append(
        url="https://example.com/bad",
        action=SubmissionAction.UPDATE,
        result=SubmissionResult.from_status_code(403),
    )

    async with _api_client(api_app) as client:
        response = await client.get("/api/submissions/stats")
        filtered_response = await client.get(
            "/api/submissions", params={"status": "permanent_fail"}
        )

    assert response.status_code == 200
    expected_counts = {"success": 1, "failed": 2, "pending": 0}
    assert response.json() == {
        "today": expected_counts,
        "week": expected_counts,
        "month": expected_counts,
        "total": expected_counts,
    }
    assert [item["url"] for item in filtered_response.json()["items"]] == [
        "https://example.com/bad"
    ]


@pytest.mark.asyncio
async def test_content_event_is_accepted_and_queued(api_app: FastAPI) -> None:
    async with _api_client(api_app) as client:
        response = await client.post(
            "/api/content-events",
            json={"source_table": "articles", "action": "update", "record_ids": [7]},
        )
        skipped_response = await client.post(
            "/api/content-events",
            json={"source_table": "_users", "action": "update", "record_ids": [7]},
        )
        invalid_response = await client.post(
            "/api/content-events",
            json={"source_table": "articles", "action": "retry", "record_ids": [7]},
        )

    assert response.status_code == 202
    assert response.json() == {
        "enqueued_requests": 1,
        "dropped_requests": 0,
        "skipped_reason": None,
        "unresolved_record_ids": [],
        "rejected_urls": [],
    }
    assert api_app.state.notification_service.queue.pending == 1
    assert skipped_response.status_code == 202
    assert skipped_response.json()["skipped_reason"] == "source_not_monitored"
    assert invalid_response.status_code == 422


@pytest.mark.asyncio
async def test_routes_return_503_without_services() -> None:
    app = FastAPI()
    app.include_router(router)

    async with _api_client(app) as client:
        list_response = await client.get("/api/submissions")
        submit_response = await client.post(
            "/api/submissions", json={"urls": ["https://example.com/a"]}
        )

    assert list_response.status_code == 503
    assert submit_response.status_code == 503


@pytest.mark.asyncio
async def test_record_submission_sends_resolved_urls(api_app: FastAPI) -> None:
    async with _api_client(api_app) as client:
        response = await client.post(
            "/api/submissions/records",
            json={"source_table": "articles", "record_ids": [7, 8]},
        )
        unmonitored_response = await client.post(
            "/api/submissions/records",
            json={"source_table": "products", "record_ids": [7]},
        )
        empty_response = await client.post(
            "/api/submissions/records",
            json={"source_table": "articles", "record_ids": []},
        )

    assert response.status_code == 200
    assert response.json()["submitted_urls"] == [
        "https://example.com/articles/7/",
        "https://example.com/articles/8/",
    ]
    assert response.json()["logged_entries"] == 2
    assert unmonitored_response.status_code == 422
    assert "not monitored" in unmonitored_response.json()["detail"]
    assert empty_response.status_code == 422
