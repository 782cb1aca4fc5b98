"""User email repository."""

from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, update
from sqlmodel import Session, col, select

from src.accounts.entities.core._base import utcnow
from src.accounts.entities.core.user_email.entity import UserEmail
from src.accounts.entities.core.user_email.table import UserEmailTable

_MUTABLE_FIELDS = frozenset({"email", "is_primary", "verified_at"})


class UserEmailRepository:
    """Data-access layer for user email addresses.

    Reads return addresses primary first, then in insertion order.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def _ordering() -> tuple[Any, ...]:
        return (
            col(UserEmailTable.is_primary).desc(),
            col(UserEmailTable.created_at),
            col(UserEmailTable.id),
        )

    def get_for_user(self, user_id: str, email_id: str) -> UserEmail | None:
        statement = select(UserEmailTable).where(
            (UserEmailTable.id == email_id) & (UserEmailTable.user_id == user_id)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return UserEmail.model_validate(row, from_attributes=True)

    def list_for_user(self, user_id: str) -> list[UserEmail]:
        statement = (
            select(UserEmailTable)
            .where(UserEmailTable.user_id == user_id)
            .order_by(*self._ordering())
        )
        rows = self._session.exec(statement).all()
        return [UserEmail.model_validate(row, from_attributes=True) for row in rows]

    def list_for_users(self, user_ids: Iterable[str]) -> dict[str, list[UserEmail]]:
        """Load the addresses of several users in one query, keyed by owner."""
        ids = list(user_ids)
        grouped: dict[str, list[UserEmail]] = defaultdict(list)
        if not ids:
            return grouped
        statement = (
            select(UserEmailTable)
            .where(col(UserEmailTable.user_id).in_(ids))
            .order_by(*self._ordering())
        )
        for row in self._session.exec(statement).all():
            grouped[row.user_id].append(
                UserEmail.model_validate(row, from_attributes=True)
            )
        return grouped

    def count_for_user(self, user_id: str) -> int:
        statement = (
            select(func.count())
            .select_from(UserEmailTable)
            .where(UserEmailTable.user_id == user_id)
        )
        return self._session.exec(statement).one()

    def is_address_available(
        self,
        address: str,
        *,
        excluding_owner_id: str | None = None,
        excluding_email_id: str | None = None,
    ) -> bool:
        """Return True when no other row holds ``address``.

        ``excluding_owner_id`` ignores rows owned by that user (their list is
        about to be replaced); ``excluding_email_id`` ignores a single row
        (the one being edited).
        """
        statement = select(UserEmailTable.id).where(UserEmailTable.email == address)
        if excluding_owner_id is not None:
            statement = statement.where(UserEmailTable.user_id != excluding_owner_id)
        if excluding_email_id is not None:
            statement = statement.where(UserEmailTable.id != excluding_email_id)
        return self._session.exec(statement.limit(1)).first() is None

    def create(self, email: UserEmail) -> UserEmail:
        row = UserEmailTable(**email.model_dump())
        self._session.add(row)
        self._session.flush()
        return UserEmail.model_validate(row, from_attributes=True)

    def update(self, email_id: str, changes: dict[str, Any]) -> UserEmail | None:
        row = self._session.get(UserEmailTable, email_id)
        if row is None:
            return None
        for field, value in changes.items():
            if field not in _MUTABLE_FIELDS:
                raise ValueError(f"Field '{field}' cannot be updated")
            setattr(row, field, value)
        row.updated_at = utcnow()
        self._session.add(row)
        self._session.flush()
        return UserEmail.model_validate(row, from_attributes=True)

    def clear_primary(self, user_id: str) -> int:
        """Unset ``is_primary`` on every address of ``user_id``."""
        statement = (
            update(UserEmailTable)
            .where(col(UserEmailTable.user_id) == user_id)
            .where(col(UserEmailTable.is_primary).is_(True))
            .values(is_primary=False, updated_at=utcnow())
        )
        result = self._session.execute(statement)
        return result.rowcount

    def delete(self, email_id: str) -> bool:
        row = self._session.get(UserEmailTable, email_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def delete_all_for_user(self, user_id: str) -> int:
        statement = delete(UserEmailTable).where(
            col(UserEmailTable.user_id) == user_id
        )
        result = self._session.execute(statement)
        return result.rowcount
