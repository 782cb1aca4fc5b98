"""User repository."""

from typing import Any

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from src.accounts.entities.core._base import utcnow
from src.accounts.entities.core.user.entity import User
from src.accounts.entities.core.user.table import UserTable
from src.accounts.entities.core.user_email.entity import UserEmail
from src.accounts.entities.core.user_email.repository import UserEmailRepository

_MUTABLE_FIELDS = frozenset({"first_name", "last_name", "phone", "password_hash"})


class UserRepository:
    """Data-access layer for users.

    Entities are returned with their email addresses loaded.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._emails = UserEmailRepository(session)

    @staticmethod
    def _to_entity(row: UserTable, emails: list[UserEmail]) -> User:
        user = User.model_validate(row, from_attributes=True)
        user.emails = emails
        return user

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return self._to_entity(row, self._emails.list_for_user(user_id))

    def lock(self, user_id: str) -> UserTable | None:
        """Load the user row with ``SELECT ... FOR UPDATE``.

        Holding this lock serializes writers touching the same user's emails
        until the surrounding transaction ends.
        """
        statement = (
            select(UserTable)
            .where(UserTable.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.exec(statement).first()

    def search(
        self, term: str | None = None, *, offset: int = 0, limit: int = 15
    ) -> tuple[list[User], int]:
        """Page through users, optionally filtered by a substring.

        The term matches first name, last name or phone case-insensitively.
        Results are ordered by creation time, then id.
        """
        conditions = []
        if term:
            conditions.append(
                or_(
                    col(UserTable.first_name).icontains(term, autoescape=True),
                    col(UserTable.last_name).icontains(term, autoescape=True),
                    col(UserTable.phone).icontains(term, autoescape=True),
                )
            )

        count_statement = select(func.count()).select_from(UserTable).where(*conditions)
        total = self._session.exec(count_statement).one()

        statement = (
            select(UserTable)
            .where(*conditions)
            .order_by(col(UserTable.created_at), col(UserTable.id))
            .offset(offset)
            .limit(limit)
        )
        rows = self._session.exec(statement).all()
        emails = self._emails.list_for_users(row.id for row in rows)
        return [self._to_entity(row, emails.get(row.id, [])) for row in rows], total

    def create(self, user: User, password_hash: str) -> User:
        row = UserTable(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            password_hash=password_hash,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self._session.add(row)
        self._session.flush()
        return self._to_entity(row, [])

    def update(self, user_id: str, changes: dict[str, Any]) -> bool:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return False
        for field, value in changes.items():
            if field not in _MUTABLE_FIELDS:
                raise ValueError(f"Field '{field}' cannot be updated")
            setattr(row, field, value)
        row.updated_at = utcnow()
        self._session.add(row)
        self._session.flush()
        return True

    def get_password_hash(self, user_id: str) -> str | None:
        row = self._session.get(UserTable, user_id)
        return row.password_hash if row else None

    def delete(self, user_id: str) -> bool:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def exists(self, user_id: str) -> bool:
        return self._session.get(UserTable, user_id) is not None
