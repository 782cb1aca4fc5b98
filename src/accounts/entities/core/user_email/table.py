"""User email database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.accounts.entities.core._base import EntityTable


class UserEmailTable(EntityTable, table=True):
    """Persistence model for ``user_emails``.

    Addresses are unique system wide; ``(user_id, email)`` is additionally
    unique. Rows are removed with their owner through ``ON DELETE CASCADE``.
    """

    __tablename__ = "user_emails"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "email", name="uq_user_emails_user_id_email"),
        sa.Index("ix_user_emails_user_id_is_primary", "user_id", "is_primary"),
    )

    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    email: str = Field(max_length=255, unique=True)
    is_primary: bool = Field(
        default=False,
        index=True,
        sa_column_kwargs={"server_default": sa.false()},
    )
    verified_at: datetime | None = None
