"""Unit tests for the fixed-window rate limiter."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.core.errors import CounterStoreAppError
from app.services.rate_limiter import FixedWindowRateLimiter

RATE_LIMITER_KEY = "rate_limiter:user_creation"


def _mock_store(current: int | None) -> Mock:
    store = Mock(spec=AbstractCounterStore)
    store.get.return_value = current
    store.increment.return_value = (current or 0) + 1
    store.ttl.return_value = 42
    return store


def _limiter(store, *, max_requests: int = 5, window_seconds: int = 60, atomic: bool = False):
    return FixedWindowRateLimiter(
        store,
        key=RATE_LIMITER_KEY,
        max_requests=max_requests,
        window_seconds=window_seconds,
        atomic=atomic,
    )


class TestStoreCalls:
    """Store interactions of the get/set/increment path."""

    def test_first_request_arms_window(self) -> None:
        store = _mock_store(None)

        assert _limiter(store).is_allowed() is True

        store.set.assert_called_once_with(RATE_LIMITER_KEY, 1, ttl_seconds=60)
        store.increment.assert_not_called()

    def test_within_limit_increments(self) -> None:
        store = _mock_store(3)

        assert _limiter(store).is_allowed() is True

        store.increment.assert_called_once_with(RATE_LIMITER_KEY)
        store.set.assert_not_called()

    def test_limit_reached_denies_without_writing(self) -> None:
        store = _mock_store(5)

        assert _limiter(store).is_allowed() is False

        store.increment.assert_not_called()
        store.set.assert_not_called()
        store.try_acquire.assert_not_called()

    def test_is_allowed_skips_ttl_lookup(self) -> None:
        store = _mock_store(5)

        _limiter(store).is_allowed()

        store.ttl.assert_not_called()

    def test_check_reports_retry_hint_on_denial(self) -> None:
        store = _mock_store(5)

        decision = _limiter(store).check()

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.limit == 5
        assert decision.retry_after_seconds == 42

    def test_check_reports_remaining_when_allowed(self) -> None:
        store = _mock_store(3)

        decision = _limiter(store).check()

        assert decision.allowed is True
        assert decision.remaining == 1
        assert decision.retry_after_seconds is None

    def test_atomic_mode_uses_single_store_call(self) -> None:
        store = Mock(spec=AbstractCounterStore)
        store.try_acquire.return_value = 1

        assert _limiter(store, atomic=True).is_allowed() is True

        store.try_acquire.assert_called_once_with(RATE_LIMITER_KEY, limit=5, ttl_seconds=60)
        store.get.assert_not_called()
        store.set.assert_not_called()
        store.increment.assert_not_called()

    def test_atomic_mode_denial(self) -> None:
        store = Mock(spec=AbstractCounterStore)
        store.try_acquire.return_value = None
        store.ttl.return_value = 12

        decision = _limiter(store, atomic=True).check()

        assert decision.allowed is False
        assert decision.retry_after_seconds == 12

    def test_failed_ttl_read_keeps_denial(self) -> None:
        store = Mock(spec=AbstractCounterStore)
        store.try_acquire.return_value = None
        store.ttl.side_effect = CounterStoreAppError(
            code="counter_store_unavailable", message="down"
        )

        decision = _limiter(store, atomic=True).check()

        assert decision.allowed is False
        assert decision.retry_after_seconds is None


def test_concurrent_callers_never_exceed_limit() -> None:
    limiter = _limiter(
        InMemoryCounterStore(clock=Mock(return_value=0.0)), max_requests=50, atomic=True
    )
    start = threading.Barrier(20)

    def worker() -> list[bool]:
        start.wait()
        return [limiter.is_allowed() for _ in range(10)]

    with ThreadPoolExecutor(max_workers=20) as pool:
        futures = [pool.submit(worker) for _ in range(20)]
        results = [allowed for future in futures for allowed in future.result()]

    assert len(results) == 200
    assert results.count(True) == 50


@pytest.mark.parametrize("atomic", [False, True])
class TestWindowBehaviour:
    """Observable properties against a real store, in both modes."""

    def test_admits_exactly_max_requests(self, atomic: bool) -> None:
        limiter = _limiter(InMemoryCounterStore(clock=Mock(return_value=0.0)), atomic=atomic)

        results = [limiter.is_allowed() for _ in range(6)]

        assert results == [True] * 5 + [False]

    def test_denial_is_idempotent_and_keeps_counter(self, atomic: bool) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=0.0))
        limiter = _limiter(store, max_requests=2, atomic=atomic)
        limiter.is_allowed()
        limiter.is_allowed()

        assert all(limiter.is_allowed() is False for _ in range(20))
        assert store.get(RATE_LIMITER_KEY) == 2

    def test_window_reopens_after_expiry(self, atomic: bool) -> None:
        clock = Mock(return_value=1000.0)
        store = InMemoryCounterStore(clock=clock)
        limiter = _limiter(store, max_requests=2, window_seconds=60, atomic=atomic)
        assert limiter.is_allowed() is True
        assert limiter.is_allowed() is True
        assert limiter.is_allowed() is False

        clock.return_value = 1060.0

        assert limiter.is_allowed() is True
        assert store.get(RATE_LIMITER_KEY) == 1
        assert store.ttl(RATE_LIMITER_KEY) == 60

    def test_increments_do_not_extend_window(self, atomic: bool) -> None:
        clock = Mock(return_value=0.0)
        store = InMemoryCounterStore(clock=clock)
        limiter = _limiter(store, max_requests=3, window_seconds=10, atomic=atomic)

        limiter.is_allowed()
        clock.return_value = 9.0
        limiter.is_allowed()
        limiter.is_allowed()
        assert limiter.is_allowed() is False

        clock.return_value = 10.0
        assert limiter.is_allowed() is True

    def test_single_request_window(self, atomic: bool) -> None:
        clock = Mock(return_value=0.0)
        limiter = _limiter(
            InMemoryCounterStore(clock=clock), max_requests=1, window_seconds=5, atomic=atomic
        )

        assert limiter.is_allowed() is True
        assert limiter.is_allowed() is False
        assert limiter.is_allowed() is False

        clock.return_value = 5.0
        assert limiter.is_allowed() is True


@pytest.mark.parametrize("atomic", [False, True])
def test_store_failure_propagates(atomic: bool) -> None:
    store = Mock(spec=AbstractCounterStore)
    failure = CounterStoreAppError(code="counter_store_unavailable", message="down")
    store.get.side_effect = failure
    store.try_acquire.side_effect = failure

    with pytest.raises(CounterStoreAppError):
        _limiter(store, atomic=atomic).is_allowed()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"key": "", "max_requests": 1, "window_seconds": 60},
        {"key": "k", "max_requests": 0, "window_seconds": 60},
        {"key": "k", "max_requests": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(InMemoryCounterStore(), **kwargs)
