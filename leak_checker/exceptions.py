"""Error taxonomy shared by the downloader, store and CLI."""

from __future__ import annotations


class LeakCheckerError(Exception):
    """Base exception."""


class ConfigurationError(LeakCheckerError):
    """Configuration file missing, unreadable or invalid."""


class StoreError(LeakCheckerError):
    """Non-recoverable SQLite failure."""


class SchemaError(StoreError):
    """Store schema could not be created."""


class StoreContentionError(StoreError):
    """Store is transiently locked or busy; the operation may be retried."""


class FetchError(LeakCheckerError):
    """A range could not be fetched within the retry budget."""

    def __init__(self, prefix: str, attempts: int, message: str | None = None) -> None:
        self.prefix = prefix
        self.attempts = attempts
        super().__init__(message or f"failed to fetch range {prefix} after {attempts} attempts")


class MalformedLineError(LeakCheckerError):
    """A response line is not ``<suffix>:<count>``."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"malformed line: {line!r}")


class IngestError(LeakCheckerError):
    """A range transaction was aborted and rolled back."""

    def __init__(self, prefix: str, message: str) -> None:
        self.prefix = prefix
        super().__init__(message)


__all__ = [
    "ConfigurationError",
    "FetchError",
    "IngestError",
    "LeakCheckerError",
    "MalformedLineError",
    "SchemaError",
    "StoreContentionError",
    "StoreError",
]
