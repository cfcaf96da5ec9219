"""User management service.

Every public operation is admitted by the rate limiter before it touches
the repository, so a denied attempt never reads or writes user data.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone

from app.adapters.users.base import AbstractUserRepository
from app.core.errors import ConflictAppError, NotFoundAppError, ValidationAppError
from app.core.rate_limit import ensure_allowed
from app.schemas.user import CreateUserRequest, UpdateUserRequest, User, UserPage
from app.services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


def _user_not_found(user_id: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="user_not_found",
        message=f"No user was found with ID: {user_id}",
        details={"user_id": user_id},
    )


def _email_taken(email: str) -> ConflictAppError:
    return ConflictAppError(
        code="email_already_exists",
        message=f"Email already exists: {email}",
    )


class UserService:
    """CRUD operations on users, throttled by a shared fixed-window limiter."""

    def __init__(
        self,
        repository: AbstractUserRepository,
        limiter: FixedWindowRateLimiter | None = None,
    ) -> None:
        self._repository = repository
        self._limiter = limiter

    def _admit(self, operation: str) -> None:
        ensure_allowed(self._limiter, operation=operation)

    def create_user(self, request: CreateUserRequest) -> User:
        self._admit("create_user")

        if self._repository.exists_by_email(request.email):
            raise _email_taken(request.email)

        now = datetime.now(timezone.utc)
        user = User(
            id=str(uuid.uuid4()),
            name=request.name,
            email=request.email,
            created_at=now,
            updated_at=now,
        )
        saved = self._repository.save(user)
        logger.info("user.created", extra={"user_id": saved.id})
        return saved

    def get_user(self, user_id: str) -> User:
        self._admit("get_user")

        user = self._repository.get(user_id)
        if user is None:
            raise _user_not_found(user_id)
        return user

    def update_user(self, user_id: str, request: UpdateUserRequest) -> User:
        self._admit("update_user")

        user = self._repository.get(user_id)
        if user is None:
            raise _user_not_found(user_id)
        if self._repository.exists_by_email(request.email, exclude_id=user_id):
            raise _email_taken(request.email)

        updated = user.model_copy(
            update={
                "name": request.name,
                "email": request.email,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        saved = self._repository.save(updated)
        logger.info("user.updated", extra={"user_id": user_id})
        return saved

    def delete_user(self, user_id: str) -> None:
        self._admit("delete_user")

        if not self._repository.delete(user_id):
            raise _user_not_found(user_id)
        logger.info("user.deleted", extra={"user_id": user_id})

    def list_users(self, page_number: int, page_size: int) -> UserPage:
        """Return one page of users.

        Args:
            page_number: 1-based page index.
            page_size: Users per page.

        Raises:
            ValidationAppError: If page_number or page_size is below 1.
            NotFoundAppError: If the requested page holds no users.
        """
        self._admit("list_users")

        if page_number < 1 or page_size < 1:
            raise ValidationAppError(
                code="invalid_pagination",
                message="Page number and page size must be bigger than 0",
            )

        total = self._repository.count()
        users = self._repository.list_slice((page_number - 1) * page_size, page_size)
        if not users:
            raise NotFoundAppError(
                code="user_not_found",
                message="Couldn't find any User",
            )

        return UserPage(
            content=users,
            page_number=page_number,
            page_size=page_size,
            total_element_count=total,
            total_page_count=math.ceil(total / page_size),
        )
