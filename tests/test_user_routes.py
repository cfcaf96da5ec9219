"""HTTP tests for the user API, including throttling responses."""

import uuid
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.users.in_memory import InMemoryUserRepository
from app.api.routes.users import _repository, get_user_service
from app.core.config import settings
from app.core.errors import CounterStoreAppError
from app.main import app
from app.services.rate_limiter import FixedWindowRateLimiter
from app.services.user_service import UserService


@pytest.fixture
def client():
    _repository.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    _repository.clear()


@pytest.fixture
def generous_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_max_requests", 100)


def _create(client: TestClient, name: str = "Ada", email: str = "ada@example.com"):
    return client.post("/api/v1/users/save", json={"name": name, "email": email})


@pytest.mark.usefixtures("generous_limit")
class TestUserCrud:
    def test_create_returns_envelope(self, client: TestClient) -> None:
        response = _create(client)

        assert response.status_code == 201
        body = response.json()
        assert body["is_success"] is True
        assert body["http_status"] == 201
        assert body["response"]["email"] == "ada@example.com"
        uuid.UUID(body["response"]["id"])

    def test_get_update_delete_roundtrip(self, client: TestClient) -> None:
        user_id = _create(client).json()["response"]["id"]

        got = client.get(f"/api/v1/users/{user_id}")
        assert got.status_code == 200
        assert got.json()["response"]["name"] == "Ada"

        updated = client.put(
            f"/api/v1/users/{user_id}", json={"name": "Ada L.", "email": "ada@example.com"}
        )
        assert updated.status_code == 200
        assert updated.json()["response"]["name"] == "Ada L."

        deleted = client.delete(f"/api/v1/users/{user_id}")
        assert deleted.status_code == 200
        assert deleted.json()["response"] == f"User is deleted by ID: {user_id}"

        assert client.get(f"/api/v1/users/{user_id}").status_code == 404

    def test_duplicate_email_is_409(self, client: TestClient) -> None:
        _create(client)

        response = _create(client, name="Someone else")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "email_already_exists"

    def test_unknown_user_is_404(self, client: TestClient) -> None:
        response = client.get(f"/api/v1/users/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "user_not_found"

    def test_non_uuid_id_is_400(self, client: TestClient) -> None:
        response = client.get("/api/v1/users/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_failed"

    def test_invalid_body_is_400_with_sub_errors(self, client: TestClient) -> None:
        response = client.post("/api/v1/users/save", json={"name": "Ada", "email": "nope"})

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["error"]["details"]["sub_errors"]]
        assert "email" in fields

    def test_list_users_pages(self, client: TestClient) -> None:
        for i in range(3):
            _create(client, name=f"user{i}", email=f"user{i}@example.com")

        response = client.get("/api/v1/users", params={"page_number": 2, "page_size": 2})

        assert response.status_code == 200
        page = response.json()["response"]
        assert [u["name"] for u in page["content"]] == ["user2"]
        assert page["total_element_count"] == 3
        assert page["total_page_count"] == 2

    def test_empty_listing_is_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/users").status_code == 404


class TestThrottling:
    def test_limit_applies_across_operations(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_max_requests", 3)

        user_id = _create(client).json()["response"]["id"]
        assert client.get(f"/api/v1/users/{user_id}").status_code == 200
        assert client.get(f"/api/v1/users/{user_id}").status_code == 200

        response = client.get(f"/api/v1/users/{user_id}")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "rate_limit_exceeded"
        retry_after = int(response.headers["Retry-After"])
        assert 0 < retry_after <= settings.app.rate_limit_window_seconds
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_denied_create_does_not_persist(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_max_requests", 1)
        _create(client)

        response = _create(client, name="Grace", email="grace@example.com")

        assert response.status_code == 429
        assert _repository.count() == 1

    def test_health_is_not_throttled(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_max_requests", 1)

        statuses = {client.get("/health").status_code for _ in range(5)}

        assert statuses == {200}

    def test_disabled_limiter_admits_everything(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_max_requests", 1)
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

        statuses = [_create(client, email=f"u{i}@example.com").status_code for i in range(3)]

        assert statuses == [201, 201, 201]


class TestCounterStoreOutage:
    @pytest.fixture
    def broken_store_client(self, client: TestClient):
        store = Mock(spec=AbstractCounterStore)
        store.try_acquire.side_effect = CounterStoreAppError(
            code="counter_store_unavailable",
            message="Rate limit counter store is unavailable",
        )
        limiter = FixedWindowRateLimiter(
            store, key="rate_limiter:user_creation", max_requests=5, window_seconds=60
        )
        repository = InMemoryUserRepository()
        app.dependency_overrides[get_user_service] = lambda: UserService(repository, limiter)
        return client

    def test_fail_closed_returns_503(self, broken_store_client: TestClient) -> None:
        response = _create(broken_store_client)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "counter_store_unavailable"

    def test_fail_open_admits(self, broken_store_client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_fail_open", True)

        assert _create(broken_store_client).status_code == 201
