"""User repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.user import User


class AbstractUserRepository(ABC):
    """Storage operations the user service relies on."""

    @abstractmethod
    def get(self, user_id: str) -> User | None:
        raise NotImplementedError

    @abstractmethod
    def exists_by_email(self, email: str, *, exclude_id: str | None = None) -> bool:
        """Return True if another user already owns email.

        Args:
            email: Normalized email address.
            exclude_id: User id to ignore (the user being updated).
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, user: User) -> User:
        """Insert or replace a user keyed by its id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Remove a user; return False if it did not exist."""
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def list_slice(self, offset: int, limit: int) -> list[User]:
        """Return users in creation order, skipping offset and taking limit."""
        raise NotImplementedError
