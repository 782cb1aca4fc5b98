from .payloads import EmailCreate, EmailInput, EmailUpdate, UserCreate, UserUpdate
from .responses import (
    ApiResponse,
    EmailResource,
    ErrorResponse,
    Page,
    PaginatedResponse,
    PaginationMeta,
    UserResource,
    WelcomeDispatchResponse,
)
from .welcome import WelcomeDispatch, WelcomeEmailJob

__all__ = [
    "ApiResponse",
    "EmailCreate",
    "EmailInput",
    "EmailResource",
    "EmailUpdate",
    "ErrorResponse",
    "Page",
    "PaginatedResponse",
    "PaginationMeta",
    "UserCreate",
    "UserResource",
    "UserUpdate",
    "WelcomeDispatch",
    "WelcomeDispatchResponse",
    "WelcomeEmailJob",
]
