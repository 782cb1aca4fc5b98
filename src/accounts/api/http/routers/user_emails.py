"""Endpoints managing the addresses owned by one user."""

from fastapi import APIRouter, Depends, status

from src.accounts.api.http.deps import get_user_service
from src.accounts.api.http.errors import ERROR_RESPONSES
from src.accounts.api.http.middleware.limiter import rate_limit
from src.accounts.core.models import (
    ApiResponse,
    EmailCreate,
    EmailResource,
    EmailUpdate,
)
from src.accounts.core.services import UserService

router = APIRouter(
    prefix="/users/{user_id}/emails",
    tags=["emails"],
    dependencies=[Depends(rate_limit())],
    responses=ERROR_RESPONSES,
)


@router.get("", response_model=ApiResponse[list[EmailResource]])
def list_emails(
    user_id: str,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[list[EmailResource]]:
    emails = users.list_user_emails(user_id)
    return ApiResponse[list[EmailResource]](
        data=[EmailResource.from_entity(email) for email in emails]
    )


@router.post(
    "",
    response_model=ApiResponse[EmailResource],
    status_code=status.HTTP_201_CREATED,
)
def add_email(
    user_id: str,
    payload: EmailCreate,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[EmailResource]:
    """Add an address; ``is_primary`` demotes the current primary."""
    email = users.add_email(user_id, payload)
    return ApiResponse[EmailResource](
        message="Email address added successfully",
        data=EmailResource.from_entity(email),
    )


@router.put("/{email_id}", response_model=ApiResponse[EmailResource])
@router.patch("/{email_id}", response_model=ApiResponse[EmailResource])
def update_email(
    user_id: str,
    email_id: str,
    payload: EmailUpdate,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[EmailResource]:
    email = users.update_email(user_id, email_id, payload)
    return ApiResponse[EmailResource](
        message="Email address updated successfully",
        data=EmailResource.from_entity(email),
    )


@router.delete("/{email_id}", response_model=ApiResponse[None])
def delete_email(
    user_id: str,
    email_id: str,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[None]:
    users.delete_email(user_id, email_id)
    return ApiResponse[None](message="Email address deleted successfully")


@router.patch("/{email_id}/set-primary", response_model=ApiResponse[EmailResource])
def set_primary_email(
    user_id: str,
    email_id: str,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[EmailResource]:
    email = users.set_primary_email(user_id, email_id)
    return ApiResponse[EmailResource](
        message="Primary email address updated successfully",
        data=EmailResource.from_entity(email),
    )
