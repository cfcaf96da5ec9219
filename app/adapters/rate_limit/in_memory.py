"""In-memory counter store with TTL expiry.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore


@dataclass
class _Entry:
    value: int
    expires_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a dict, expiring keys lazily on access.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker keeps its own
        counters. Use the Redis store for a shared window.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning seconds; injectable for tests.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def _live_entry_locked(self, key: str) -> _Entry | None:
        """Return the entry for key, dropping it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    def set(self, key: str, value: int, *, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def increment(self, key: str) -> int:
        """Increment key, creating a non-expiring counter if absent (Redis INCR semantics)."""
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry(value=0, expires_at=math.inf)
                self._entries[key] = entry
            entry.value += 1
            return entry.value

    def ttl(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None or entry.expires_at == math.inf:
                return None
            return max(1, int(math.ceil(entry.expires_at - self._clock())))

    def try_acquire(self, key: str, *, limit: int, ttl_seconds: int) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                self.set(key, 1, ttl_seconds=ttl_seconds)
                return 1
            if entry.value < limit:
                entry.value += 1
                return entry.value
            return None

    def clear(self) -> None:
        """Drop every counter."""
        with self._lock:
            self._entries.clear()
