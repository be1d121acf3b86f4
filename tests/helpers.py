"""Test doubles shared across the suite."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Any, Callable, Iterable, Mapping

import httpx

from leak_checker.exceptions import StoreContentionError, StoreError
from leak_checker.infra import PasswordStore

API_BASE_URL = "https://api.test/range/"


class RecordingLogger:
    """Structlog stand-in capturing events as ``(level, event, fields)``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def bind(self, **_kwargs: Any) -> "RecordingLogger":
        return self

    def _record(self, level: str, event: str, **kwargs: Any) -> None:
        self.events.append((level, event, kwargs))

    def debug(self, event: str, **kwargs: Any) -> None:
        self._record("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._record("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._record("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._record("error", event, **kwargs)

    def named(self, event: str) -> list[dict[str, Any]]:
        return [fields for _, name, fields in self.events if name == event]


def suffixes_for(prefix: str, count: int = 3) -> list[str]:
    seed = int(prefix, 16)
    return [f"{seed * 16 + index:035x}" for index in range(count)]


def range_body(prefix: str, count: int = 3) -> str:
    return "\r\n".join(
        f"{suffix}:{index + 1}" for index, suffix in enumerate(suffixes_for(prefix, count))
    )


def expected_hashes(prefixes: Iterable[str], count: int = 3) -> set[str]:
    return {(prefix + suffix).upper() for prefix in prefixes for suffix in suffixes_for(prefix, count)}


def all_hashes(store: PasswordStore) -> list[str]:
    rows = store.connect().execute("SELECT sha1 FROM passwords").fetchall()
    return [row[0] for row in rows]


def no_sleep(_seconds: float) -> None:
    return


class RangeApi:
    """Deterministic range endpoint served through ``httpx.MockTransport``."""

    def __init__(
        self,
        bodies: Mapping[str, str] | Callable[[str], str] | None = None,
        failing: Iterable[str] = (),
        status: int = 500,
    ) -> None:
        self.bodies = bodies if bodies is not None else range_body
        self.failing = set(failing)
        self.status = status
        self.calls: Counter[str] = Counter()
        self._lock = Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        prefix = request.url.path.rsplit("/", 1)[-1]
        with self._lock:
            self.calls[prefix] += 1
        if prefix in self.failing:
            return httpx.Response(self.status, text="unavailable")
        if callable(self.bodies):
            body = self.bodies(prefix)
        else:
            body = self.bodies.get(prefix, "")
        return httpx.Response(200, text=body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


class FaultyTransaction:
    """Wrap a real transaction; raise on selected inserts and, optionally, after rollback."""

    def __init__(
        self,
        tx,
        should_fail: Callable[[int, str], Exception | None],
        rollback_error: Exception | None = None,
    ) -> None:
        self._tx = tx
        self._should_fail = should_fail
        self._rollback_error = rollback_error
        self.calls = 0

    def insert(self, value: str) -> None:
        self.calls += 1
        error = self._should_fail(self.calls, value)
        if error is not None:
            raise error
        self._tx.insert(value)

    def commit(self) -> None:
        self._tx.commit()

    def rollback(self) -> None:
        self._tx.rollback()
        if self._rollback_error is not None:
            raise self._rollback_error


class FaultyStore:
    """PasswordStore proxy injecting insert/begin failures."""

    def __init__(
        self,
        store: PasswordStore,
        insert_failure: Callable[[int, str], Exception | None] | None = None,
        begin_failures: int = 0,
        rollback_error: Exception | None = None,
    ) -> None:
        self._store = store
        self._rollback_error = rollback_error
        self._insert_failure = insert_failure or (lambda _call, _value: None)
        self._begin_failures = begin_failures
        self._lock = Lock()
        self.begin_calls = 0
        self.transactions: list[FaultyTransaction] = []

    @property
    def path(self):
        return self._store.path

    def ensure_schema(self) -> None:
        self._store.ensure_schema()

    def begin(self) -> FaultyTransaction:
        with self._lock:
            self.begin_calls += 1
            if self.begin_calls <= self._begin_failures:
                raise StoreContentionError("database is locked")
        tx = FaultyTransaction(self._store.begin(), self._insert_failure, self._rollback_error)
        with self._lock:
            self.transactions.append(tx)
        return tx

    def release(self) -> None:
        self._store.release()

    def close(self) -> None:
        self._store.close()


def fail_on_call(number: int, error: Exception | None = None) -> Callable[[int, str], Exception | None]:
    """Failure hook raising ``error`` on the ``number``-th insert of a transaction."""

    failure = error or StoreError("disk I/O error")

    def _hook(call: int, _value: str) -> Exception | None:
        return failure if call == number else None

    return _hook
