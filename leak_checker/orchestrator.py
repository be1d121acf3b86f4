"""Download orchestrator wiring together enumeration, fetching, ingestion and progress."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock

import structlog

from .config import DownloaderConfig
from .engine import RangeFetcher, RangeSpace, ResponseIngester, WorkerPool
from .exceptions import FetchError, IngestError
from .infra import PasswordStore
from .logging_conf import component_logger
from .ui import ProgressReporter


class RangeState(str, Enum):
    """Lifecycle of one range within a run."""

    PENDING = "pending"
    FETCHING = "fetching"
    FETCH_FAILED = "fetch_failed"
    FETCHED = "fetched"
    INGESTING = "ingesting"
    INGEST_FAILED = "ingest_failed"
    INGESTED = "ingested"


_TRANSITIONS: dict[RangeState, frozenset[RangeState]] = {
    RangeState.PENDING: frozenset({RangeState.FETCHING}),
    RangeState.FETCHING: frozenset({RangeState.FETCH_FAILED, RangeState.FETCHED}),
    RangeState.FETCHED: frozenset({RangeState.INGESTING}),
    RangeState.INGESTING: frozenset({RangeState.INGEST_FAILED, RangeState.INGESTED}),
    RangeState.FETCH_FAILED: frozenset(),
    RangeState.INGEST_FAILED: frozenset(),
    RangeState.INGESTED: frozenset(),
}


@dataclass
class RangeTask:
    """Progress of a single range through fetch and ingest."""

    identifier: int
    prefix: str
    state: RangeState = RangeState.PENDING
    inserted: int = 0
    skipped: int = 0
    error: str | None = None

    @property
    def terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    @property
    def failed(self) -> bool:
        return self.state in (RangeState.FETCH_FAILED, RangeState.INGEST_FAILED)

    def advance(self, state: RangeState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal range transition {self.state.value} -> {state.value}")
        self.state = state


@dataclass
class RunSummary:
    """Aggregated outcome of a download run."""

    total: int = 0
    ingested: int = 0
    fetch_failed: int = 0
    ingest_failed: int = 0
    hashes_written: int = 0
    malformed_lines: int = 0
    failed_prefixes: list[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def failed(self) -> int:
        return self.fetch_failed + self.ingest_failed

    def record(self, task: RangeTask) -> None:
        self.malformed_lines += task.skipped
        if task.state is RangeState.INGESTED:
            self.ingested += 1
            self.hashes_written += task.inserted
        elif task.state is RangeState.FETCH_FAILED:
            self.fetch_failed += 1
            self.failed_prefixes.append(task.prefix)
        elif task.state is RangeState.INGEST_FAILED:
            self.ingest_failed += 1
            self.failed_prefixes.append(task.prefix)

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "ingested": self.ingested,
            "fetch_failed": self.fetch_failed,
            "ingest_failed": self.ingest_failed,
            "hashes_written": self.hashes_written,
            "malformed_lines": self.malformed_lines,
            "failed_prefixes": sorted(self.failed_prefixes),
            "elapsed": round(self.elapsed, 3),
        }


class DownloadOrchestrator:
    """Central coordinator fetching and storing every range of the keyspace."""

    def __init__(
        self,
        config: DownloaderConfig,
        store: PasswordStore,
        fetcher: RangeFetcher | None = None,
        ingester: ResponseIngester | None = None,
        range_space: RangeSpace | None = None,
        pool: WorkerPool | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.logger = logger or component_logger("orchestrator")
        self.range_space = range_space or RangeSpace(
            prefix_length=config.api.prefix_length, limit=config.range_limit
        )
        self.fetcher = fetcher or RangeFetcher(
            api_base_url=config.api.base_url,
            retry=config.fetch_retry,
            timeout=config.api.timeout,
            user_agent=config.api.user_agent,
            logger=self.logger.bind(component="fetcher"),
        )
        self.ingester = ingester or ResponseIngester(
            store,
            retry=config.insert_retry,
            logger=self.logger.bind(component="ingester"),
        )
        self.pool = pool or WorkerPool(config.parallelism, logger=self.logger.bind(component="pool"))
        self._summary_lock = Lock()

    # ------------------------------------------------------------------
    def run(self, progress: ProgressReporter | None = None) -> RunSummary:
        """Process every range; blocks until all workers are done."""

        self.store.ensure_schema()
        summary = RunSummary(total=len(self.range_space))
        started = time.monotonic()
        self.logger.info(
            "download_started",
            ranges=summary.total,
            workers=self.pool.workers,
            database=str(self.store.path),
        )
        if progress is not None:
            progress.start(summary.total)

        def handle(identifier: int) -> None:
            task = self.process_range(identifier)
            with self._summary_lock:
                summary.record(task)
            if progress is not None:
                progress.advance(
                    ingested=task.state is RangeState.INGESTED,
                    failed=task.failed,
                    prefix=task.prefix,
                )

        try:
            # Each worker closes its own store connection before its thread exits
            self.pool.drain(self.range_space, handle, on_worker_exit=self.store.release)
        finally:
            if progress is not None:
                progress.close()
        summary.elapsed = time.monotonic() - started
        self.logger.info("download_complete", **summary.as_dict())
        return summary

    def process_range(self, identifier: int) -> RangeTask:
        """Fetch then ingest one range; failures end in a terminal failed state."""

        task = RangeTask(identifier=identifier, prefix=self.range_space.prefix(identifier))
        if identifier % self.config.progress_log_interval == 0:
            self.logger.info("processing_range", range_id=identifier, prefix=task.prefix)

        task.advance(RangeState.FETCHING)
        try:
            response = self.fetcher.fetch(task.prefix)
        except FetchError as exc:
            task.advance(RangeState.FETCH_FAILED)
            return self._failed(task, exc)
        task.advance(RangeState.FETCHED)

        task.advance(RangeState.INGESTING)
        with response:
            try:
                result = self.ingester.ingest(task.prefix, response.iter_lines())
            except IngestError as exc:
                task.advance(RangeState.INGEST_FAILED)
                return self._failed(task, exc)
        task.inserted = result.inserted
        task.skipped = result.skipped
        task.advance(RangeState.INGESTED)
        return task

    def _failed(self, task: RangeTask, exc: Exception) -> RangeTask:
        task.error = str(exc)
        self.logger.error(
            "range_failed",
            range_id=task.identifier,
            prefix=task.prefix,
            state=task.state.value,
            error=task.error,
        )
        return task

    def close(self) -> None:
        self.fetcher.close()
        self.store.close()


__all__ = ["DownloadOrchestrator", "RangeState", "RangeTask", "RunSummary"]
