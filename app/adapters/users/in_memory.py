"""In-memory user repository.

Thread-safe: sync route handlers run in FastAPI's threadpool, so every
access goes through a lock. Insertion order doubles as creation order.
"""

from __future__ import annotations

import threading

from app.adapters.users.base import AbstractUserRepository
from app.schemas.user import User


class InMemoryUserRepository(AbstractUserRepository):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}

    def get(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def exists_by_email(self, email: str, *, exclude_id: str | None = None) -> bool:
        with self._lock:
            return any(
                user.email == email and user.id != exclude_id
                for user in self._users.values()
            )

    def save(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
            return user

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def list_slice(self, offset: int, limit: int) -> list[User]:
        with self._lock:
            return list(self._users.values())[offset : offset + limit]

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
