"""User database table model."""

import sqlalchemy as sa
from sqlmodel import Field

from src.accounts.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Persistence model for ``users``.

    Only the password hash is stored; it never leaves the repository layer.
    """

    __tablename__ = "users"
    __table_args__ = (
        sa.Index("ix_users_first_name_last_name", "first_name", "last_name"),
        sa.Index("ix_users_created_at", "created_at"),
    )

    first_name: str = Field(max_length=255)
    last_name: str = Field(max_length=255)
    phone: str | None = Field(default=None, max_length=20, index=True)
    password_hash: str = Field(max_length=255)
