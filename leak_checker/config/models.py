"""Pydantic models describing the downloader configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator

DEFAULT_API_BASE_URL = "https://api.pwnedpasswords.com/range/"

_RETRY_DEFAULTS: dict[str, dict[str, Any]] = {
    "fetch_retry": {"attempts": 10, "delay": 0.5},
    "insert_retry": {"attempts": 100, "delay": 0.1},
}


class RetryPolicy(BaseModel):
    """Fixed-delay retry budget: ``attempts`` tries, ``delay`` seconds apart."""

    attempts: int = Field(default=1, ge=1)
    delay: float = Field(default=0.0, ge=0.0)


class ApiConfig(BaseModel):
    """Range API endpoint settings."""

    base_url: str = DEFAULT_API_BASE_URL
    prefix_length: int = Field(default=5, ge=1, le=8)
    timeout: float = Field(default=20.0, gt=0)
    user_agent: str = "leak-checker-downloader"

    @field_validator("base_url")
    @classmethod
    def _require_http(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value


class DownloaderConfig(BaseModel):
    """Everything the ingestion pipeline reads at startup."""

    database_filepath: Path = Field(default=Path("database/leaked-passwords-checker.db"))
    log_filepath: Path = Field(default=Path("logs/downloader.log"))
    api: ApiConfig = Field(default_factory=ApiConfig)
    parallelism: int = Field(default=3, ge=1)
    fetch_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(**_RETRY_DEFAULTS["fetch_retry"]))
    insert_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(**_RETRY_DEFAULTS["insert_retry"]))
    busy_timeout_ms: int = Field(default=5000, ge=0)
    progress_log_interval: int = Field(default=1000, ge=1)
    # Enumerate only the first N ranges; None walks the whole keyspace
    range_limit: int | None = Field(default=None, ge=1)

    @field_validator("fetch_retry", "insert_retry", mode="before")
    @classmethod
    def _fill_retry_defaults(cls, value: Any, info: ValidationInfo) -> Any:
        # Keys missing from a partial mapping keep this policy's defaults
        if isinstance(value, dict):
            return {**_RETRY_DEFAULTS[info.field_name], **value}
        return value

    @field_validator("database_filepath", "log_filepath", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        if value in (None, ""):
            raise ValueError("path cannot be empty")
        return Path(value)

    def resolved_database_path(self, base_dir: Path) -> Path:
        return _resolve(self.database_filepath, base_dir)

    def resolved_log_path(self, base_dir: Path) -> Path:
        return _resolve(self.log_filepath, base_dir)


def _resolve(path: Path, base_dir: Path) -> Path:
    path = path.expanduser()
    if not path.is_absolute():
        return (base_dir / path).resolve()
    return path


__all__ = ["ApiConfig", "DEFAULT_API_BASE_URL", "DownloaderConfig", "RetryPolicy"]
