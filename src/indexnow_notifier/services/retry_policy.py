"""Retry policy consumed by the submission log store and the retry sweep."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

from indexnow_notifier.config import Settings

MIN_RETRY_ATTEMPTS: Final[int] = 1
MAX_RETRY_ATTEMPTS: Final[int] = 10
DEFAULT_RETRY_INTERVAL: Final[timedelta] = timedelta(hours=12)
DEFAULT_SWEEP_LIMIT: Final[int] = 100


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Fixed-interval retry settings; the interval never grows between attempts."""

    enabled: bool = True
    max_attempts: int = 5
    retry_interval: timedelta = DEFAULT_RETRY_INTERVAL
    sweep_limit: int = DEFAULT_SWEEP_LIMIT

    def __post_init__(self) -> None:
        if not MIN_RETRY_ATTEMPTS <= self.max_attempts <= MAX_RETRY_ATTEMPTS:
            raise ValueError(
                f"max_attempts must be between {MIN_RETRY_ATTEMPTS} "
                f"and {MAX_RETRY_ATTEMPTS}"
            )
        if self.retry_interval <= timedelta(0):
            raise ValueError("retry_interval must be greater than zero")
        if self.sweep_limit < 1:
            raise ValueError("sweep_limit must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            enabled=settings.RETRY_ENABLED,
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            retry_interval=timedelta(hours=settings.RETRY_INTERVAL_HOURS),
            sweep_limit=settings.RETRY_SWEEP_LIMIT,
        )

    def next_retry_at(self, now: datetime) -> datetime:
        return now + self.retry_interval


__all__ = [
    "DEFAULT_RETRY_INTERVAL",
    "DEFAULT_SWEEP_LIMIT",
    "MAX_RETRY_ATTEMPTS",
    "MIN_RETRY_ATTEMPTS",
    "RetryPolicy",
]
