"""Parse range responses and commit them into the store atomically."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, TypeVar

import httpx
import structlog

from ..config import RetryPolicy
from ..exceptions import IngestError, MalformedLineError, StoreContentionError, StoreError
from ..infra.storage import PasswordStore, StoreTransaction

T = TypeVar("T")


def parse_line(line: str) -> str:
    """Return the hash suffix of a ``<suffix>:<count>`` line."""

    parts = line.split(":")
    if len(parts) != 2:
        raise MalformedLineError(line)
    return parts[0].strip()


@dataclass
class IngestResult:
    prefix: str
    inserted: int = 0
    skipped: int = 0


class ResponseIngester:
    """Write every hash of one range inside a single transaction.

    Either all rows of the range become visible or none do: a non-contention
    store error, an exhausted contention budget or a broken response stream
    rolls the transaction back and raises :class:`IngestError`.
    """

    def __init__(
        self,
        store: PasswordStore,
        retry: RetryPolicy | None = None,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.retry = retry or RetryPolicy(attempts=100, delay=0.1)
        self.logger = logger or structlog.get_logger("leak_checker.ingester")
        self._sleep = sleep

    def ingest(self, prefix: str, lines: Iterable[str]) -> IngestResult:
        result = IngestResult(prefix=prefix)
        try:
            tx = self._with_contention_retry(self.store.begin)
        except StoreError as exc:
            raise IngestError(prefix, f"failed to begin transaction for {prefix}: {exc}") from exc
        try:
            for line in lines:
                if not line.strip():
                    continue
                try:
                    suffix = parse_line(line)
                except MalformedLineError:
                    self.logger.warning("malformed_line", prefix=prefix, line=line)
                    result.skipped += 1
                    continue
                full_hash = (prefix + suffix).upper()
                self._insert(tx, full_hash)
                result.inserted += 1
        except StoreError as exc:
            self._rollback(prefix, tx)
            raise IngestError(prefix, f"failed to insert range {prefix}: {exc}") from exc
        except (httpx.HTTPError, OSError) as exc:
            self._rollback(prefix, tx)
            raise IngestError(prefix, f"error reading response body for {prefix}: {exc}") from exc
        except BaseException:
            self._rollback(prefix, tx)
            raise

        try:
            tx.commit()
        except StoreError as exc:
            raise IngestError(prefix, f"failed to commit range {prefix}: {exc}") from exc
        return result

    def _rollback(self, prefix: str, tx: StoreTransaction) -> None:
        # The abort that triggered the rollback is what the caller reports
        try:
            tx.rollback()
        except StoreError as exc:
            self.logger.error("rollback_failed", prefix=prefix, error=str(exc))

    def _insert(self, tx: StoreTransaction, full_hash: str) -> None:
        self._with_contention_retry(lambda: tx.insert(full_hash))

    def _with_contention_retry(self, operation: Callable[[], T]) -> T:
        attempt = 1
        while True:
            try:
                return operation()
            except StoreContentionError as exc:
                if attempt >= self.retry.attempts:
                    raise
                self.logger.debug("store_busy", attempt=attempt, error=str(exc))
                self._sleep(self.retry.delay)
                attempt += 1


__all__ = ["IngestResult", "ResponseIngester", "parse_line"]
