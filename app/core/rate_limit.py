"""Rate limiting wiring for the service layer.

This module builds the process-wide limiter from settings and provides the
guard that callers run before each operation.

Design goals:
- Explicit dependency: services receive a limiter, they never reach for a
  global client themselves.
- Swap-friendly: the counter store (memory or Redis) sits behind an
  abstract interface.
- A denial becomes RateLimitExceededAppError (HTTP 429); a store outage
  stays CounterStoreAppError (HTTP 503) unless fail-open is configured.
"""

from __future__ import annotations

import logging
import threading

from app.adapters.rate_limit.factory import create_counter_store
from app.core.config import settings
from app.core.errors import CounterStoreAppError, RateLimitExceededAppError
from app.services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


LimiterConfig = tuple[str, str, float, float, str, int, int, bool]

_limiter: FixedWindowRateLimiter | None = None
_limiter_config: LimiterConfig | None = None
_limiter_lock = threading.Lock()


def _current_config() -> LimiterConfig:
    return (
        settings.app.counter_store_backend,
        settings.redis.url,
        settings.redis.socket_timeout_seconds,
        settings.redis.socket_connect_timeout_seconds,
        settings.app.rate_limit_key,
        settings.app.rate_limit_max_requests,
        settings.app.rate_limit_window_seconds,
        settings.app.rate_limit_atomic,
    )


def get_rate_limiter() -> FixedWindowRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module so the in-memory store keeps its state
    across requests. If configuration changes (primarily in tests), the
    limiter and its store are rebuilt.

    Returns:
        FixedWindowRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = _current_config()
    with _limiter_lock:
        if _limiter is None or _limiter_config != config:
            _limiter = FixedWindowRateLimiter(
                create_counter_store(settings),
                key=settings.app.rate_limit_key,
                max_requests=settings.app.rate_limit_max_requests,
                window_seconds=settings.app.rate_limit_window_seconds,
                atomic=settings.app.rate_limit_atomic,
            )
            _limiter_config = config
            logger.info(
                "rate_limit.configured",
                extra={
                    "backend": settings.app.counter_store_backend,
                    "counter_key": settings.app.rate_limit_key,
                    "limit": settings.app.rate_limit_max_requests,
                    "window_s": settings.app.rate_limit_window_seconds,
                    "atomic": settings.app.rate_limit_atomic,
                },
            )
        return _limiter


def reset_rate_limiter() -> None:
    """Forget the cached limiter so the next call rebuilds it."""

    global _limiter, _limiter_config

    with _limiter_lock:
        _limiter = None
        _limiter_config = None


def ensure_allowed(limiter: FixedWindowRateLimiter | None, *, operation: str) -> None:
    """Admit the current operation or raise.

    Args:
        limiter: Limiter to consult; None disables throttling.
        operation: Operation name, used for logging only.

    Raises:
        RateLimitExceededAppError: When the window is exhausted.
        CounterStoreAppError: When the store is unreachable and fail-open is off.
    """

    if limiter is None or not settings.app.rate_limit_enabled:
        return

    try:
        decision = limiter.check()
    except CounterStoreAppError as exc:
        if settings.app.rate_limit_fail_open:
            logger.error(
                "rate_limit.store_unavailable",
                extra={"operation": operation, "error_code": exc.code, "policy": "fail_open"},
            )
            return
        logger.error(
            "rate_limit.store_unavailable",
            extra={"operation": operation, "error_code": exc.code, "policy": "fail_closed"},
        )
        raise

    if decision.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "operation": operation,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_s": limiter.window_seconds,
            },
        )
        return

    if decision.retry_after_seconds is not None:
        retry_after = max(1, decision.retry_after_seconds)
    else:
        retry_after = limiter.window_seconds
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "operation": operation,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_s": limiter.window_seconds,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitExceededAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "limit": decision.limit,
            "remaining": decision.remaining,
            "retry_after": retry_after,
        },
    )
