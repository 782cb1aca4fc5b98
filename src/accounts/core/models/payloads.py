"""Request payloads for user and email operations.

String input is sanitized before validation when ``api.sanitize_input`` is
enabled: HTML tags are stripped, surrounding whitespace trimmed and NUL bytes
removed, recursively through nested lists and objects.
"""

import re
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from src.accounts.runtime.context import get_config

PHONE_PATTERN = r"^[\+\d\s\-\(\)]+$"
EMAIL_MAX_LENGTH = 255
MAX_EMAILS_PER_USER = 20

_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_string(value: str) -> str:
    value = _TAG_RE.sub("", value)
    value = value.strip()
    return value.replace("\x00", "")


def sanitize_input(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, dict):
        return {key: sanitize_input(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_input(item) for item in value]
    return value


class SanitizedPayload(BaseModel):
    """Base for inbound payloads. Unknown fields are dropped."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> Any:
        if get_config().api.sanitize_input:
            return sanitize_input(data)
        return data


class _EmailAddressMixin(BaseModel):
    @field_validator("email", mode="wrap", check_fields=False)
    @classmethod
    def _keep_submitted_address(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Any:
        # EmailStr lowercases the domain; addresses are stored and compared as sent
        handler(value)
        return value

    @field_validator("email", check_fields=False)
    @classmethod
    def _check_length(cls, value: str | None) -> str | None:
        if value is not None and len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(
                f"The email may not be greater than {EMAIL_MAX_LENGTH} characters."
            )
        return value


class EmailInput(_EmailAddressMixin, SanitizedPayload):
    """One entry of the ``emails`` list on user create/update."""

    email: EmailStr
    is_primary: bool = False


class UserCreate(SanitizedPayload):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=20, pattern=PHONE_PATTERN)
    password: str = Field(min_length=8, max_length=255)
    emails: list[EmailInput] = Field(min_length=1, max_length=MAX_EMAILS_PER_USER)


_NOT_NULLABLE = {
    "first_name": "The first name field must be a string.",
    "last_name": "The last name field must be a string.",
    "password": "The password field must be a string.",
    "emails": "The emails field must be an array.",
}


class UserUpdate(SanitizedPayload):
    """Partial update; only fields present in the request are applied.

    ``null`` is rejected for every field except ``phone``, where it (like an
    empty string) leaves the stored number unchanged.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=20, pattern=PHONE_PATTERN)
    password: str | None = Field(default=None, min_length=8, max_length=255)
    emails: list[EmailInput] | None = Field(
        default=None, min_length=1, max_length=MAX_EMAILS_PER_USER
    )

    @field_validator("first_name", "last_name", "password", "emails", mode="before")
    @classmethod
    def _reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise PydanticCustomError("null_not_allowed", _NOT_NULLABLE[info.field_name])
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def _blank_phone_is_null(cls, value: Any) -> Any:
        return None if value == "" else value

    def scalar_changes(self) -> dict[str, Any]:
        """Scalar fields supplied by the caller, excluding the password."""
        return {
            field: getattr(self, field)
            for field in ("first_name", "last_name", "phone")
            if field in self.model_fields_set and getattr(self, field) is not None
        }


class EmailCreate(_EmailAddressMixin, SanitizedPayload):
    email: EmailStr
    is_primary: bool = False


class EmailUpdate(_EmailAddressMixin, SanitizedPayload):
    email: EmailStr | None = None
    is_primary: bool | None = None
