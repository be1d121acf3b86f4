"""Enumeration of the fixed-width hex prefix keyspace."""

from __future__ import annotations

from typing import Iterator

HEX_DIGITS = frozenset("0123456789ABCDEF")


class RangeSpace:
    """All range identifiers ``0 .. N-1`` and their prefix strings.

    Identifier ``i`` maps to ``i`` rendered as zero-padded uppercase hex of
    ``prefix_length`` characters, so the mapping is a bijection between
    ``range(16 ** prefix_length)`` and the set of prefixes.
    """

    def __init__(self, prefix_length: int = 5, limit: int | None = None) -> None:
        if prefix_length < 1:
            raise ValueError("prefix_length must be >= 1")
        if limit is not None and limit < 1:
            raise ValueError("limit must be >= 1")
        self.prefix_length = prefix_length
        self.size = 16**prefix_length
        self.limit = limit

    def __len__(self) -> int:
        if self.limit is None:
            return self.size
        return min(self.limit, self.size)

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self)))

    def prefix(self, identifier: int) -> str:
        if not 0 <= identifier < self.size:
            raise ValueError(f"range identifier out of bounds: {identifier}")
        return f"{identifier:0{self.prefix_length}X}"

    def identifier(self, prefix: str) -> int:
        normalised = prefix.strip().upper()
        if len(normalised) != self.prefix_length or not set(normalised) <= HEX_DIGITS:
            raise ValueError(f"invalid prefix for width {self.prefix_length}: {prefix!r}")
        return int(normalised, 16)

    def prefixes(self) -> Iterator[str]:
        for identifier in self:
            yield self.prefix(identifier)


__all__ = ["RangeSpace"]
