"""Fixed-window rate limiter.

Decides admission for one operation class using a single counter kept in a
counter store. The store's TTL is the only clock: the first admitted attempt
creates the counter with a TTL of ``window_seconds``, later attempts increment
it without touching the TTL, and once the key expires the next attempt opens
a fresh window.

Known characteristic: a burst straddling a window boundary can be admitted up
to ``2 * max_requests`` times. That is inherent to fixed windows.
"""

from __future__ import annotations

import logging

from app.adapters.rate_limit.base import AbstractCounterStore, RateLimitDecision
from app.core.errors import CounterStoreAppError

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """Admission control for a single, globally keyed operation class.

    The limiter holds configuration only; all mutable state lives in the
    store, so any number of limiter instances (threads, workers) pointing at
    the same store and key share one window.

    With ``atomic=True`` the read, branch and write run as one store-side
    operation (``try_acquire``). With ``atomic=False`` the decision is made
    from separate ``get``/``set``/``increment`` calls, which can over-admit
    when concurrent callers hit the exact expiry or threshold moment.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        key: str,
        max_requests: int,
        window_seconds: int,
        atomic: bool = True,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store holding the window counter.
            key: Window key; stable for the limiter's lifetime.
            max_requests: Attempts admitted per window.
            window_seconds: Window length, used as the counter TTL.
            atomic: Use the store's single-step admission.

        Raises:
            ValueError: If key is empty or a limit is below 1.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._store = store
        self._key = key
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._atomic = atomic

    @property
    def key(self) -> str:
        return self._key

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @property
    def atomic(self) -> bool:
        return self._atomic

    def is_allowed(self) -> bool:
        """Return True and record the attempt if the window has room.

        Store failures propagate as CounterStoreAppError; they are never
        reported as a denial.
        """
        return self.check(with_retry_hint=False).allowed

    def check(self, *, with_retry_hint: bool = True) -> RateLimitDecision:
        """Decide admission and describe the outcome.

        Args:
            with_retry_hint: On denial, read the key's remaining TTL to fill
                ``retry_after_seconds`` (one extra read, never a write). A
                failed read leaves the hint as None.

        Returns:
            RateLimitDecision for this attempt.
        """
        if self._atomic:
            count = self._store.try_acquire(
                self._key,
                limit=self._max_requests,
                ttl_seconds=self._window_seconds,
            )
        else:
            count = self._acquire_unsynchronized()

        if count is not None:
            if count == 1:
                logger.debug(
                    "rate_limit.window_opened",
                    extra={"counter_key": self._key, "window_s": self._window_seconds},
                )
            return RateLimitDecision(
                allowed=True,
                limit=self._max_requests,
                remaining=max(0, self._max_requests - count),
            )

        retry_after = self._retry_hint() if with_retry_hint else None
        return RateLimitDecision(
            allowed=False,
            limit=self._max_requests,
            remaining=0,
            retry_after_seconds=retry_after,
        )

    def _retry_hint(self) -> int | None:
        # The denial is already decided; a failed TTL read must not change it.
        try:
            return self._store.ttl(self._key)
        except CounterStoreAppError as exc:
            logger.warning(
                "rate_limit.retry_hint_unavailable",
                extra={"counter_key": self._key, "error_code": exc.code},
            )
            return None

    def _acquire_unsynchronized(self) -> int | None:
        """Admit via get, then set or increment. Returns the new count or None."""
        current = self._store.get(self._key)
        if current is None:
            self._store.set(self._key, 1, ttl_seconds=self._window_seconds)
            return 1
        if current < self._max_requests:
            return self._store.increment(self._key)
        return None
