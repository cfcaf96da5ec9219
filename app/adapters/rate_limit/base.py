"""Counter store interface and rate limit decision type.

The limiter depends on this abstraction (not a concrete client) so storage
can be swapped without touching the admission logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check.

    Attributes:
        allowed: Whether the operation may proceed.
        limit: Max operations per window.
        remaining: Operations still admissible in the current window.
        retry_after_seconds: Seconds until the window expires when denied,
            None when allowed or when the store cannot tell.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None = None


class AbstractCounterStore(ABC):
    """Key-value store holding integer counters with TTL expiry.

    Implementations must make ``increment`` atomic across concurrent callers
    and must drop a key once its TTL lapses. ``get`` followed by ``set`` is
    not expected to be atomic; ``try_acquire`` is.
    """

    @abstractmethod
    def get(self, key: str) -> int | None:
        """Return the counter stored under key, or None when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: int, *, ttl_seconds: int) -> None:
        """Store value under key, expiring after ttl_seconds."""
        raise NotImplementedError

    @abstractmethod
    def increment(self, key: str) -> int:
        """Atomically add one to the counter and return the new value.

        The key's TTL is left untouched.
        """
        raise NotImplementedError

    @abstractmethod
    def ttl(self, key: str) -> int | None:
        """Return whole seconds until key expires, or None if absent/persistent."""
        raise NotImplementedError

    @abstractmethod
    def try_acquire(self, key: str, *, limit: int, ttl_seconds: int) -> int | None:
        """Admit one unit against key in a single atomic step.

        Semantics match the get/set/increment sequence: an absent key is
        created with value 1 and the given TTL, a value below limit is
        incremented without touching its TTL, and anything else is left as is.

        Args:
            key: Counter key.
            limit: Maximum admitted units per window.
            ttl_seconds: Window length applied when the key is created.

        Returns:
            The counter value after admission, or None when denied.
        """
        raise NotImplementedError
