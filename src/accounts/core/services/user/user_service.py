"""User aggregate store.

Every write runs in one transaction that first locks the owning user row, so
the "clear all primaries, then set one" sequence is never observed half done
and a user never ends up with two primary addresses.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from src.accounts.core.exceptions import (
    AccountsError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from src.accounts.core.models.payloads import (
    EmailCreate,
    EmailInput,
    EmailUpdate,
    UserCreate,
    UserUpdate,
)
from src.accounts.core.models.responses import Page
from src.accounts.core.security import hash_password
from src.accounts.core.services.user.primary_resolution import resolve_primary_flags
from src.accounts.entities.core.user import User, UserRepository
from src.accounts.entities.core.user.table import UserTable
from src.accounts.entities.core.user_email import UserEmail, UserEmailRepository
from src.accounts.runtime.context import get_config

USER_NOT_FOUND = "User not found"
EMAIL_NOT_FOUND = "Email address not found for this user"
EMAIL_TAKEN = "This email address is already taken"
EMAIL_DUPLICATED = "The email field has a duplicate value."
PRIMARY_DELETE_BLOCKED = (
    "Cannot delete primary email address. Set another email as primary first."
)


class UserService:
    """Transactional operations on users and their email addresses."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._emails = UserEmailRepository(session)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """Commit on success, roll back everything on any failure."""
        log = logger.bind(operation=operation)
        try:
            yield
            self._session.commit()
        except AccountsError:
            self._session.rollback()
            raise
        except IntegrityError as exc:
            self._session.rollback()
            if "email" in str(exc.orig).lower():
                log.warning("Email uniqueness violated at commit time")
                raise ValidationError.for_field("email", EMAIL_TAKEN) from exc
            log.exception("Integrity error")
            raise InternalError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            self._session.rollback()
            log.exception("Database error")
            raise InternalError(str(exc)) from exc
        except Exception:
            self._session.rollback()
            raise

    def _lock_user(self, user_id: str) -> UserTable:
        row = self._users.lock(user_id)
        if row is None:
            raise NotFoundError(USER_NOT_FOUND)
        return row

    def _require_user(self, user_id: str) -> None:
        if not self._users.exists(user_id):
            raise NotFoundError(USER_NOT_FOUND)

    def _require_owned_email(self, user_id: str, email_id: str) -> UserEmail:
        email = self._emails.get_for_user(user_id, email_id)
        if email is None:
            raise NotFoundError(EMAIL_NOT_FOUND)
        return email

    def is_address_available(
        self, address: str, excluding_owner_id: str | None = None
    ) -> bool:
        """True when ``address`` is free, ignoring addresses of ``excluding_owner_id``."""
        return self._emails.is_address_available(
            address, excluding_owner_id=excluding_owner_id
        )

    def _ensure_addresses_available(
        self, emails: Sequence[EmailInput], excluding_owner_id: str | None = None
    ) -> None:
        errors: dict[str, list[str]] = {}
        seen: set[str] = set()
        for index, entry in enumerate(emails):
            key = f"emails.{index}.email"
            if entry.email in seen:
                errors[key] = [EMAIL_DUPLICATED]
            elif not self.is_address_available(entry.email, excluding_owner_id):
                errors[key] = [EMAIL_TAKEN]
            seen.add(entry.email)
        if errors:
            raise ValidationError(errors=errors)

    def _insert_emails(self, user_id: str, emails: Sequence[EmailInput]) -> None:
        for entry, is_primary in resolve_primary_flags(emails):
            self._emails.create(
                UserEmail(user_id=user_id, email=entry.email, is_primary=is_primary)
            )

    # Reads

    def list_users(
        self,
        search: str | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> Page[User]:
        cfg = get_config().pagination
        per_page = min(per_page or cfg.default_per_page, cfg.max_per_page)
        page = max(page, 1)
        term = search.strip() if search else None
        users, total = self._users.search(
            term or None, offset=(page - 1) * per_page, limit=per_page
        )
        return Page[User](items=users, page=page, per_page=per_page, total=total)

    def get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    def list_user_emails(self, user_id: str) -> list[UserEmail]:
        """Addresses of ``user_id``, primary first."""
        self._require_user(user_id)
        return self._emails.list_for_user(user_id)

    # User writes

    def create_user(self, data: UserCreate) -> User:
        password_hash = hash_password(data.password)
        with self._transaction("create_user"):
            self._ensure_addresses_available(data.emails)
            user = self._users.create(
                User(
                    first_name=data.first_name,
                    last_name=data.last_name,
                    phone=data.phone,
                ),
                password_hash,
            )
            self._insert_emails(user.id, data.emails)

        logger.bind(user_id=user.id, emails=len(data.emails)).info("User created")
        return self.get_user(user.id)

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        """Apply supplied fields; a supplied ``emails`` list replaces all addresses."""
        password_hash = hash_password(data.password) if data.password else None
        with self._transaction("update_user"):
            self._lock_user(user_id)
            if data.emails is not None:
                self._ensure_addresses_available(data.emails, excluding_owner_id=user_id)

            changes = data.scalar_changes()
            if password_hash is not None:
                changes["password_hash"] = password_hash
            self._users.update(user_id, changes)

            if data.emails is not None:
                removed = self._emails.delete_all_for_user(user_id)
                self._insert_emails(user_id, data.emails)
                logger.bind(
                    user_id=user_id, removed=removed, added=len(data.emails)
                ).info("Emails replaced")

        logger.bind(user_id=user_id, fields=sorted(changes)).info("User updated")
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> None:
        with self._transaction("delete_user"):
            self._lock_user(user_id)
            removed = self._emails.delete_all_for_user(user_id)
            self._users.delete(user_id)

        logger.bind(user_id=user_id, emails_removed=removed).info("User deleted")

    # Email writes

    def add_email(self, user_id: str, data: EmailCreate) -> UserEmail:
        with self._transaction("add_email"):
            self._lock_user(user_id)
            if not self.is_address_available(data.email):
                raise ValidationError.for_field("email", EMAIL_TAKEN)
            if data.is_primary:
                self._emails.clear_primary(user_id)
            email = self._emails.create(
                UserEmail(user_id=user_id, email=data.email, is_primary=data.is_primary)
            )

        logger.bind(user_id=user_id, email_id=email.id, primary=email.is_primary).info(
            "Email added"
        )
        return email

    def update_email(self, user_id: str, email_id: str, data: EmailUpdate) -> UserEmail:
        with self._transaction("update_email"):
            self._lock_user(user_id)
            current = self._require_owned_email(user_id, email_id)

            changes: dict[str, object] = {}
            if data.email is not None and data.email != current.email:
                if not self._emails.is_address_available(
                    data.email, excluding_email_id=email_id
                ):
                    raise ValidationError.for_field("email", EMAIL_TAKEN)
                changes["email"] = data.email
            if data.is_primary is not None:
                if data.is_primary:
                    self._emails.clear_primary(user_id)
                changes["is_primary"] = data.is_primary

            email = self._emails.update(email_id, changes)
            if email is None:
                raise NotFoundError(EMAIL_NOT_FOUND)

        logger.bind(user_id=user_id, email_id=email_id, fields=sorted(changes)).info(
            "Email updated"
        )
        return email

    def delete_email(self, user_id: str, email_id: str) -> None:
        """Delete one address.

        A primary address can only be removed when it is the user's last one.
        """
        with self._transaction("delete_email"):
            self._lock_user(user_id)
            email = self._require_owned_email(user_id, email_id)
            if email.is_primary and self._emails.count_for_user(user_id) > 1:
                raise ConflictError(PRIMARY_DELETE_BLOCKED)
            self._emails.delete(email_id)

        logger.bind(user_id=user_id, email_id=email_id).info("Email deleted")

    def set_primary_email(self, user_id: str, email_id: str) -> UserEmail:
        with self._transaction("set_primary_email"):
            self._lock_user(user_id)
            self._require_owned_email(user_id, email_id)
            self._emails.clear_primary(user_id)
            email = self._emails.update(email_id, {"is_primary": True})
            if email is None:
                raise NotFoundError(EMAIL_NOT_FOUND)

        logger.bind(user_id=user_id, email_id=email_id).info("Primary email changed")
        return email
