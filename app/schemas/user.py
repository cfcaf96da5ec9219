"""Pydantic schemas for the user API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _UserPayload(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name of the user.",
    )
    email: str = Field(
        ...,
        max_length=320,
        pattern=EMAIL_PATTERN,
        description="Email address; unique across users.",
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is mandatory")
        return value.strip()

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CreateUserRequest(_UserPayload):
    """Body of POST /api/v1/users/save."""


class UpdateUserRequest(_UserPayload):
    """Body of PUT /api/v1/users/{id}."""


class User(BaseModel):
    """Stored user record."""

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


class UserResponse(BaseModel):
    """Public representation of a user."""

    id: str
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email)


class UserPage(BaseModel):
    """One page of users plus paging metadata."""

    content: list[User]
    page_number: int = Field(..., ge=1, description="1-based page number.")
    page_size: int = Field(..., ge=1)
    total_element_count: int = Field(..., ge=0)
    total_page_count: int = Field(..., ge=0)


class UserPagingResponse(BaseModel):
    content: list[UserResponse]
    page_number: int
    page_size: int
    total_element_count: int
    total_page_count: int

    @classmethod
    def from_page(cls, page: UserPage) -> "UserPagingResponse":
        return cls(
            content=[UserResponse.from_user(user) for user in page.content],
            page_number=page.page_number,
            page_size=page.page_size,
            total_element_count=page.total_element_count,
            total_page_count=page.total_page_count,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful response."""

    time: datetime = Field(default_factory=_utcnow)
    http_status: int = Field(200, description="HTTP status code of the response.")
    is_success: bool = True
    response: T | None = None

    @classmethod
    def ok(cls, response: T) -> "ApiResponse[T]":
        return cls(http_status=200, response=response)

    @classmethod
    def created(cls, response: T) -> "ApiResponse[T]":
        return cls(http_status=201, response=response)
