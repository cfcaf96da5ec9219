"""User endpoints.

Handlers are plain ``def`` functions: the limiter and its counter store are
synchronous, so FastAPI runs them in its threadpool.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from app.adapters.users.in_memory import InMemoryUserRepository
from app.core.rate_limit import get_rate_limiter
from app.schemas.user import (
    ApiResponse,
    CreateUserRequest,
    UpdateUserRequest,
    UserPagingResponse,
    UserResponse,
)
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

_repository = InMemoryUserRepository()


def get_user_service() -> UserService:
    """Build the service with the current process-wide limiter."""
    return UserService(repository=_repository, limiter=get_rate_limiter())


@router.post(
    "/save",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def save_user(
    body: CreateUserRequest,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    """Create a user.

    Raises:
        409 when the email is taken, 429 when the window is exhausted.
    """
    user = service.create_user(body)
    return ApiResponse[UserResponse].created(UserResponse.from_user(user))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    user = service.get_user(str(user_id))
    return ApiResponse[UserResponse].ok(UserResponse.from_user(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: uuid.UUID,
    body: UpdateUserRequest,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserResponse]:
    user = service.update_user(str(user_id), body)
    return ApiResponse[UserResponse].ok(UserResponse.from_user(user))


@router.delete("/{user_id}", response_model=ApiResponse[str])
def delete_user(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> ApiResponse[str]:
    service.delete_user(str(user_id))
    return ApiResponse[str].ok(f"User is deleted by ID: {user_id}")


@router.get("", response_model=ApiResponse[UserPagingResponse])
def list_users(
    page_number: int = Query(1, ge=1, description="1-based page number."),
    page_size: int = Query(10, ge=1, le=100, description="Users per page."),
    service: UserService = Depends(get_user_service),
) -> ApiResponse[UserPagingResponse]:
    page = service.list_users(page_number, page_size)
    return ApiResponse[UserPagingResponse].ok(UserPagingResponse.from_page(page))
