"""Error taxonomy raised by the account store.

The HTTP layer maps each type to a status code; nothing here knows about HTTP.
"""


class AccountsError(Exception):
    """Base class for all store errors."""

    default_message = "Account operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountsError):
    """Malformed, missing or duplicate input. Always raised before any write."""

    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(errors={field: [message]})


class NotFoundError(AccountsError):
    """Unknown id, or an email that is not owned by the given user."""

    default_message = "Resource not found"


class ConflictError(AccountsError):
    """The request is well formed but the current state forbids it."""

    default_message = "Operation not allowed"


class InternalError(AccountsError):
    """Storage or transaction failure."""

    default_message = "Internal server error"
