"""Tests for structured logging, redaction and request logging."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from indexnow_notifier.config import Settings
from indexnow_notifier.utils.logging import (
    JsonLogFormatter,
    SensitiveDataFilter,
    add_request_logging_middleware,
    setup_logging,
)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="indexnow_notifier.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="indexnow_submission_sent",
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_sensitive_extra_fields_are_redacted() -> None:
    record = _record(api_key="0123456789abcdef", status_code=200, auth_token="t")

    assert SensitiveDataFilter().filter(record) is True

    assert getattr(record, "api_key") == "[REDACTED]"
    assert getattr(record, "auth_token") == "[REDACTED]"
    assert getattr(record, "status_code") == 200


def test_json_formatter_includes_extra_fields() -> None:
    payload = json.loads(JsonLogFormatter().format(_record(url_count=3)))

    assert payload["message"] == "indexnow_submission_sent"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "indexnow_notifier.test"
    assert payload["url_count"] == 3
    assert "timestamp" in payload


def test_setup_logging_writes_redacted_json_lines(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "indexnow.log"
    settings = Settings(
        _env_file=None,  # type: ignore[call-arg]
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        INDEXNOW_HOST="example.com",
        LOG_FORMAT="json",
        LOG_FILE=log_file,
    )
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level

    try:
        setup_logging(settings)
        logging.getLogger("indexnow_notifier.test").info(
            "indexnow_api_key_generated",
            extra={"api_key": "0123456789abcdef", "key_path": "/data/key.txt"},
        )
        for handler in root_logger.handlers:
            handler.flush()
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers[:] = original_handlers
        root_logger.setLevel(original_level)

    lines = log_file.read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["message"] == "indexnow_api_key_generated"
    assert payload["api_key"] == "[REDACTED]"
    assert payload["key_path"] == "/data/key.txt"


@pytest.mark.asyncio
async def test_request_logging_masks_key_file_paths(
    caplog: pytest.LogCaptureFixture,
) -> None:
    app = FastAPI()
    add_request_logging_middleware(app)

    @app.get("/{key_name}.txt")
    async def key_file(key_name: str) -> dict[str, str]:
        return {"key": key_name}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    caplog.set_level(logging.INFO, logger="indexnow_notifier.request")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await client.get("/0123456789abcdef.txt")
        await client.get("/health")

    records = [
        record
        for record in caplog.records
        if record.name == "indexnow_notifier.request"
    ]
    assert [getattr(record, "path") for record in records] == [
        "/<key>.txt",
        "/health",
    ]
    assert all(getattr(record, "status_code") == 200 for record in records)
    assert all("0123456789abcdef" not in record.getMessage() for record in records)
