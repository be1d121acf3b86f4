"""Pytest configuration providing shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from helpers import API_BASE_URL, RangeApi, RecordingLogger, no_sleep
from leak_checker.config import (
    ApiConfig,
    ConfigLocator,
    ConfigRepository,
    DownloaderConfig,
    RetryPolicy,
)
from leak_checker.engine import RangeFetcher
from leak_checker.infra import PasswordStore


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def downloader_config(tmp_path: Path) -> DownloaderConfig:
    return DownloaderConfig(
        database_filepath=tmp_path / "database" / "passwords.db",
        log_filepath=tmp_path / "logs" / "downloader.log",
        api=ApiConfig(base_url=API_BASE_URL),
        parallelism=2,
        fetch_retry=RetryPolicy(attempts=3, delay=0.0),
        insert_retry=RetryPolicy(attempts=5, delay=0.0),
        range_limit=4,
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterable[PasswordStore]:
    handle = PasswordStore.open(tmp_path / "database" / "passwords.db", busy_timeout_ms=5000)
    yield handle
    handle.close()


@pytest.fixture
def make_fetcher(recording_logger: RecordingLogger) -> Iterable[Callable[..., RangeFetcher]]:
    created: list[httpx.Client] = []

    def _builder(api: RangeApi, attempts: int = 3, **kwargs: Any) -> RangeFetcher:
        client = api.client()
        fetcher = RangeFetcher(
            api_base_url=API_BASE_URL,
            retry=RetryPolicy(attempts=attempts, delay=0.0),
            client=client,
            logger=recording_logger,
            sleep=kwargs.pop("sleep", no_sleep),
            **kwargs,
        )
        created.append(client)
        return fetcher

    yield _builder
    for client in created:
        client.close()


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("LEAK_CHECKER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
