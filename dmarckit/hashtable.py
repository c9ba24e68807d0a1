"""A thread-safe string-keyed table with timestamps and expiry."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

DEFAULT_TABLESIZE = 2048
MIN_SHELVES_LG2 = 4
MIN_SHELVES = 1 << MIN_SHELVES_LG2
MAX_SHELVES_LG2 = 26
MAX_SHELVES = 1 << MAX_SHELVES_LG2

_WORD_MASK = (1 << 64) - 1


def hash_string(string: str | None, limit: int) -> int:
    """Hash ``string`` into the range ``0 .. limit - 1``; None hashes as ""."""
    value = 5381
    highorder = value & 0xF8000000
    for byte in (string or "").encode("utf-8"):
        char = byte - 256 if byte >= 128 else byte
        value = (value << 5) & _WORD_MASK
        value ^= highorder >> 27
        value ^= char & _WORD_MASK
        highorder = value & 0xF8000000
    return value % limit


def normalize_tablesize(tablesize: int) -> int:
    """Return the number of shelves actually used for a requested size."""
    size = tablesize or DEFAULT_TABLESIZE
    size = min(max(size, MIN_SHELVES), MAX_SHELVES)
    if size & (size - 1):
        bits = size.bit_length()
        size = DEFAULT_TABLESIZE if bits <= MAX_SHELVES_LG2 else 1 << bits
    return size


@dataclass
class _Entry:
    key: str
    data: Any
    timestamp: float = field(default_factory=time.time)


class HashTable:
    """Maps string keys to data; key lookup ignores case within a shelf.

    ``on_free`` is called with each stored value when it is replaced,
    dropped, expired or discarded at shutdown.
    """

    def __init__(
        self,
        tablesize: int = 0,
        on_free: Callable[[Any], None] | None = None,
    ) -> None:
        self.tablesize = normalize_tablesize(tablesize)
        self.on_free = on_free
        self._shelves: list[list[_Entry]] | None = [[] for _ in range(self.tablesize)]
        self._lock = threading.Lock()

    def _table(self) -> list[list[_Entry]]:
        if self._shelves is None:
            raise RuntimeError("hash table has been shut down")
        return self._shelves

    def _shelf(self, key: str) -> list[_Entry]:
        if key is None:
            raise ValueError("key must not be None")
        return self._table()[hash_string(key, self.tablesize)]

    def _free(self, data: Any) -> None:
        if self.on_free is not None and data is not None:
            self.on_free(data)

    def lookup(self, key: str) -> Any:
        """Return the data stored under ``key``, or None."""
        shelf = self._shelf(key)
        wanted = key.lower()
        with self._lock:
            for entry in shelf:
                if entry.key.lower() == wanted:
                    return entry.data
        return None

    def store(self, key: str, data: Any) -> Any:
        """Insert or replace the data under ``key`` and return it."""
        if data is None:
            raise ValueError("data must not be None")
        shelf = self._shelf(key)
        wanted = key.lower()
        with self._lock:
            for entry in shelf:
                if entry.key.lower() == wanted:
                    self._free(entry.data)
                    entry.data = data
                    entry.timestamp = time.time()
                    return data
            shelf.append(_Entry(key, data, time.time()))
        return data

    def drop(self, key: str) -> None:
        """Remove ``key`` (exact case) if present; a missing key is not an error."""
        shelf = self._shelf(key)
        with self._lock:
            for position, entry in enumerate(shelf):
                if entry.key == key:
                    del shelf[position]
                    self._free(entry.data)
                    return

    def expire(self, age: float) -> int:
        """Remove entries older than ``age`` seconds; return how many went."""
        if not age:
            raise ValueError("age must be non-zero")
        table = self._table()
        now = time.time()
        removed = 0
        with self._lock:
            for shelf in table:
                keep = [entry for entry in shelf if now - entry.timestamp <= age]
                for entry in shelf:
                    if now - entry.timestamp > age:
                        self._free(entry.data)
                        removed += 1
                shelf[:] = keep
        return removed

    def shutdown(self) -> None:
        """Discard every entry; the table cannot be used afterwards."""
        table = self._table()
        with self._lock:
            for shelf in table:
                for entry in shelf:
                    self._free(entry.data)
            self._shelves = None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(shelf) for shelf in self._table())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.lookup(key) is not None