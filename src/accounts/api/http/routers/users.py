"""User CRUD endpoints."""

from fastapi import APIRouter, Depends, Query, status

from src.accounts.api.http.deps import get_user_service, get_welcome_email_service
from src.accounts.api.http.errors import ERROR_RESPONSES
from src.accounts.api.http.middleware.limiter import rate_limit
from src.accounts.core.models import (
    ApiResponse,
    PaginatedResponse,
    PaginationMeta,
    UserCreate,
    UserResource,
    UserUpdate,
    WelcomeDispatchResponse,
)
from src.accounts.core.services import UserService, WelcomeEmailService
from src.accounts.runtime.context import get_config

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(rate_limit())],
    responses=ERROR_RESPONSES,
)


def _per_page(per_page: int | None = Query(default=None, ge=1)) -> int:
    cfg = get_config().pagination
    if per_page is None:
        return cfg.default_per_page
    return min(per_page, cfg.max_per_page)


@router.get("", response_model=PaginatedResponse[UserResource])
def list_users(
    search: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    per_page: int = Depends(_per_page),
    users: UserService = Depends(get_user_service),
) -> PaginatedResponse[UserResource]:
    """Users ordered by creation, optionally filtered by name or phone."""
    result = users.list_users(search=search, page=page, per_page=per_page)
    return PaginatedResponse[UserResource](
        data=[UserResource.from_entity(user) for user in result.items],
        pagination=PaginationMeta.from_page(result),
    )


@router.post(
    "",
    response_model=ApiResponse[UserResource],
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: UserCreate,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[UserResource]:
    user = users.create_user(payload)
    return ApiResponse[UserResource](
        message="User created successfully", data=UserResource.from_entity(user)
    )


@router.get("/{user_id}", response_model=ApiResponse[UserResource])
def get_user(
    user_id: str,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[UserResource]:
    return ApiResponse[UserResource](data=UserResource.from_entity(users.get_user(user_id)))


@router.put("/{user_id}", response_model=ApiResponse[UserResource])
@router.patch("/{user_id}", response_model=ApiResponse[UserResource])
def update_user(
    user_id: str,
    payload: UserUpdate,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[UserResource]:
    """Update supplied fields; a supplied ``emails`` list replaces every address."""
    user = users.update_user(user_id, payload)
    return ApiResponse[UserResource](
        message="User updated successfully", data=UserResource.from_entity(user)
    )


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: str,
    users: UserService = Depends(get_user_service),
) -> ApiResponse[None]:
    users.delete_user(user_id)
    return ApiResponse[None](message="User deleted successfully")


@router.post("/{user_id}/send-welcome", response_model=WelcomeDispatchResponse)
async def send_welcome(
    user_id: str,
    welcome: WelcomeEmailService = Depends(get_welcome_email_service),
) -> WelcomeDispatchResponse:
    dispatch = await welcome.send_welcome(user_id)
    return WelcomeDispatchResponse(
        message=dispatch.message,
        emails_count=dispatch.emails_count,
        emails=dispatch.emails,
    )
