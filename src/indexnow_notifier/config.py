"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from indexnow_notifier import __version__


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    DATABASE_URL: str
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=8000, ge=1, le=65535)
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "text"
    LOG_FILE: Path | None = None
    LOG_FILE_MAX_BYTES: int = Field(default=10_485_760, ge=1)
    LOG_FILE_BACKUP_COUNT: int = Field(default=5, ge=1)

    INDEXNOW_ENDPOINT: str = "https://api.indexnow.org/indexnow"
    INDEXNOW_HOST: str
    INDEXNOW_API_KEY: SecretStr | None = None
    INDEXNOW_API_KEY_FILE: Path = Path("./data/indexnow-key.txt")
    INDEXNOW_WEB_ROOT_DIR: Path | None = None
    INDEXNOW_AUTO_SUBMIT: bool = True
    INDEXNOW_MONITORED_SOURCES: list[str] = Field(default_factory=list)
    INDEXNOW_URL_TEMPLATES: dict[str, str] = Field(default_factory=dict)
    INDEXNOW_BATCH_SIZE: int = Field(default=10_000, ge=1, le=10_000)
    INDEXNOW_BATCH_PAUSE_SECONDS: float = Field(default=0.1, ge=0)
    INDEXNOW_CONNECT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    INDEXNOW_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    INDEXNOW_MAX_REDIRECTS: int = Field(default=3, ge=0)
    INDEXNOW_USER_AGENT: str = f"IndexNow-Notifier/{__version__}"

    RETRY_ENABLED: bool = True
    RETRY_MAX_ATTEMPTS: int = Field(default=5, ge=1, le=10)
    RETRY_INTERVAL_HOURS: int = Field(default=12, ge=1)
    RETRY_SWEEP_LIMIT: int = Field(default=100, ge=1)
    LOG_RETENTION_DAYS: int = Field(default=30, ge=1, le=365)
    SUBMISSION_QUEUE_MAX_SIZE: int = Field(default=1000, ge=1)

    SCHEDULER_ENABLED: bool = True
    SCHEDULER_JOBSTORE_URL: str = "sqlite:///./scheduler-jobs.sqlite"
    SCHEDULER_RETRY_SWEEP_HOUR: int = Field(default=3, ge=0, le=23)
    SCHEDULER_LOG_CLEANUP_HOUR: int = Field(default=4, ge=0, le=23)
    SHUTDOWN_GRACE_PERIOD_SECONDS: int = Field(default=30, ge=1)

    @field_validator("LOG_FILE", "INDEXNOW_WEB_ROOT_DIR", mode="before")
    @classmethod
    def parse_optional_path(cls, value: object) -> object:
        if value in (None, ""):
            return None
        return value

    @field_validator("INDEXNOW_API_KEY", mode="before")
    @classmethod
    def parse_api_key(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("INDEXNOW_HOST")
    @classmethod
    def normalize_host(cls, value: str) -> str:
        normalized_host = value.strip().lower().rstrip("/")
        if "://" in normalized_host:
            normalized_host = normalized_host.split("://", maxsplit=1)[1]
        if not normalized_host or "/" in normalized_host:
            raise ValueError("INDEXNOW_HOST must be a bare hostname")
        return normalized_host


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]
