"""Factory pattern for creating counter store instances."""

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore
from app.core.config import Settings, settings as default_settings
from app.core.errors import ValidationAppError


def create_counter_store(config: Settings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        config: Settings to read; defaults to the global settings.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown.
    """
    cfg = config or default_settings
    backend = cfg.app.counter_store_backend.lower()

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "redis":
        return RedisCounterStore.from_url(
            cfg.redis.url,
            socket_timeout=cfg.redis.socket_timeout_seconds,
            socket_connect_timeout=cfg.redis.socket_connect_timeout_seconds,
        )

    raise ValidationAppError(
        code="counter_store_unknown_backend",
        message=f"Unknown counter store backend: '{backend}'. Supported backends: memory, redis",
    )
