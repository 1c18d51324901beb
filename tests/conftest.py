"""Shared fixtures: environment defaults, temporary databases and a fake clock."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

_TEST_DATABASE_PATH = Path(tempfile.gettempdir()) / "indexnow-notifier-test.sqlite"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DATABASE_PATH}")
os.environ.setdefault("INDEXNOW_HOST", "example.com")
os.environ.setdefault("INDEXNOW_API_KEY", "0123456789abcdef0123456789abcdef")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from indexnow_notifier.models import Base

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

TEST_API_KEY = "0123456789abcdef0123456789abcdef"


@dataclass
class FakeClock:
    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(current=datetime(2026, 3, 18, 10, 30, tzinfo=UTC))


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[SessionScopeFactory]:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'submission-log.sqlite'}"
    engine = create_async_engine(database_url)
    sessionmaker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def scoped_session() -> AsyncIterator[AsyncSession]:
        session = sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield scoped_session

    await engine.dispose()
