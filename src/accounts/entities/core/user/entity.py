"""User domain entity."""

from typing import Any

from pydantic import Field, computed_field

from src.accounts.entities.core._base import Entity
from src.accounts.entities.core.user_email.entity import UserEmail


class User(Entity):
    """A user account together with the email addresses it owns.

    The password hash is deliberately absent: it lives on the table model only.
    """

    first_name: str = Field(description="User's first name")
    last_name: str = Field(description="User's last name")
    phone: str | None = Field(default=None, description="User's phone number")
    emails: list[UserEmail] = Field(
        default_factory=list, description="Owned email addresses, primary first"
    )

    @computed_field
    @property
    def full_name(self) -> str:
        # Whitespace is kept exactly as stored.
        return f"{self.first_name} {self.last_name}"

    @computed_field
    @property
    def primary_email(self) -> str | None:
        primary = self.primary
        return primary.email if primary else None

    @property
    def primary(self) -> UserEmail | None:
        return next((e for e in self.emails if e.is_primary), None)

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.phone == other.phone
            and [(e.email, e.is_primary) for e in self.emails]
            == [(e.email, e.is_primary) for e in other.emails]
        )

    def __hash__(self) -> int:
        return hash((self.id, self.first_name, self.last_name, self.phone))
