"""User email domain entity."""

from datetime import datetime

from pydantic import Field

from src.accounts.entities.core._base import Entity


class UserEmail(Entity):
    """An email address owned by exactly one user.

    At most one of a user's addresses carries ``is_primary``; the store keeps
    that true across every mutation.
    """

    user_id: str = Field(description="Owning user id")
    email: str = Field(description="Email address, unique across all users")
    is_primary: bool = Field(default=False, description="Default contact address")
    verified_at: datetime | None = Field(
        default=None, description="When the address was verified, if ever"
    )

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None
