"""Redis-backed counter store.

Lets every API worker share one window: INCR is atomic server-side and
key expiry is handled by Redis itself. Admission in atomic mode runs as a
Lua script so the read, the branch and the write happen in one step.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from redis import Redis, RedisError

from app.adapters.rate_limit.base import AbstractCounterStore
from app.core.errors import CounterStoreAppError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns the post-admission count, or -1 when the limit is already reached.
# The TTL is only set when the key is created; INCR keeps the existing expiry.
ACQUIRE_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if not current then
    redis.call('SET', KEYS[1], 1, 'EX', tonumber(ARGV[2]))
    return 1
end
if tonumber(current) < tonumber(ARGV[1]) then
    return redis.call('INCR', KEYS[1])
end
return -1
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store using a shared Redis instance."""

    def __init__(self, client: Redis) -> None:
        """Wrap an existing client.

        Args:
            client: Redis client; ``decode_responses`` may be on or off.
        """
        self._client = client
        self._acquire_script = client.register_script(ACQUIRE_SCRIPT)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float | None = None,
        socket_connect_timeout: float | None = None,
    ) -> "RedisCounterStore":
        """Build a store from a connection URL.

        No connection is opened until the first command.
        """
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cls(client)

    def _call(self, operation: str, key: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except RedisError as exc:
            logger.error(
                "counter_store.error",
                extra={
                    "backend": "redis",
                    "operation": operation,
                    "counter_key": key,
                    "error_type": type(exc).__name__,
                },
            )
            raise CounterStoreAppError(
                code="counter_store_unavailable",
                message="Rate limit counter store is unavailable",
                details={"backend": "redis", "hint": f"{operation} failed: {type(exc).__name__}"},
            ) from exc

    @staticmethod
    def _to_int(key: str, raw: Any) -> int:
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise CounterStoreAppError(
                code="counter_store_corrupt_value",
                message=f"Counter under '{key}' is not an integer",
                details={"backend": "redis"},
            ) from exc

    def get(self, key: str) -> int | None:
        raw = self._call("get", key, lambda: self._client.get(key))
        if raw is None:
            return None
        return self._to_int(key, raw)

    def set(self, key: str, value: int, *, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        self._call("set", key, lambda: self._client.set(key, value, ex=ttl_seconds))

    def increment(self, key: str) -> int:
        return self._to_int(key, self._call("incr", key, lambda: self._client.incr(key)))

    def ttl(self, key: str) -> int | None:
        # Redis answers -2 for a missing key and -1 for a key without expiry.
        remaining = self._to_int(key, self._call("ttl", key, lambda: self._client.ttl(key)))
        return remaining if remaining >= 0 else None

    def try_acquire(self, key: str, *, limit: int, ttl_seconds: int) -> int | None:
        result = self._call(
            "acquire",
            key,
            lambda: self._acquire_script(keys=[key], args=[limit, ttl_seconds]),
        )
        count = self._to_int(key, result)
        return count if count > 0 else None
