"""Response envelopes returned by the HTTP API."""

from datetime import datetime
from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from src.accounts.entities.core.user.entity import User
from src.accounts.entities.core.user_email.entity import UserEmail

T = TypeVar("T")


class EmailResource(BaseModel):
    id: str
    email: str
    is_primary: bool
    verified_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, email: UserEmail) -> "EmailResource":
        return cls.model_validate(email, from_attributes=True)


class UserResource(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    phone: str | None
    primary_email: str | None
    emails: list[EmailResource]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserResource":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            phone=user.phone,
            primary_email=user.primary_email,
            emails=[EmailResource.from_entity(e) for e in user.emails],
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class Page(BaseModel, Generic[T]):
    """One page of results plus the numbers needed to navigate."""

    items: list[T]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, ceil(self.total / self.per_page))


class PaginationMeta(BaseModel):
    current_page: int
    per_page: int
    total: int
    last_page: int

    @classmethod
    def from_page(cls, page: Page) -> "PaginationMeta":
        return cls(
            current_page=page.page,
            per_page=page.per_page,
            total=page.total,
            last_page=page.last_page,
        )


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    data: list[T] = Field(default_factory=list)
    pagination: PaginationMeta


class WelcomeDispatchResponse(BaseModel):
    success: bool = True
    message: str
    emails_count: int
    emails: list[str]


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: dict[str, list[str]] | None = None
