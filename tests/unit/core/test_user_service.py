"""Behaviour of the user aggregate store: primary-email rules, uniqueness, atomicity."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from src.accounts.core.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from src.accounts.core.models import EmailCreate, EmailUpdate, UserCreate, UserUpdate
from src.accounts.core.security import verify_password
from src.accounts.core.services import UserService
from src.accounts.entities import UserEmailTable, UserRepository, UserTable
from src.accounts.entities.core.user_email.repository import UserEmailRepository


def _primaries(service: UserService, user_id: str) -> list[str]:
    return [e.email for e in service.list_user_emails(user_id) if e.is_primary]


def _emails_payload(*addresses: str, primary: str | None = None) -> list[dict]:
    return [{"email": a, "is_primary": a == primary} for a in addresses]


class TestCreateUser:
    def test_creates_user_with_emails(self, user_service: UserService, create_user):
        user = create_user()

        assert user.full_name == "John Doe"
        assert user.primary_email == "john@example.com"
        assert [e.email for e in user.emails] == ["john@example.com", "john.work@example.com"]

    def test_first_email_becomes_primary_when_none_flagged(self, create_user):
        user = create_user(emails=_emails_payload("a@example.com", "b@example.com"))
        assert user.primary_email == "a@example.com"

    def test_first_flagged_email_wins(self, create_user):
        user = create_user(
            emails=[
                {"email": "a@example.com"},
                {"email": "b@example.com", "is_primary": True},
                {"email": "c@example.com", "is_primary": True},
            ]
        )

        assert user.primary_email == "b@example.com"
        assert sum(e.is_primary for e in user.emails) == 1

    def test_password_is_hashed(self, session: Session, create_user):
        user = create_user(password="password123")

        stored = UserRepository(session).get_password_hash(user.id)

        assert stored != "password123"
        assert verify_password("password123", stored)

    def test_address_taken_by_other_user(self, create_user):
        create_user()

        with pytest.raises(ValidationError) as exc_info:
            create_user(emails=_emails_payload("new@example.com", "john@example.com"))

        assert exc_info.value.errors == {
            "emails.1.email": ["This email address is already taken"]
        }

    def test_duplicate_address_within_submission(self, create_user):
        with pytest.raises(ValidationError) as exc_info:
            create_user(emails=_emails_payload("a@example.com", "a@example.com"))

        assert "emails.1.email" in exc_info.value.errors

    def test_failed_create_leaves_nothing_behind(self, session: Session, create_user):
        with pytest.raises(ValidationError):
            create_user(emails=_emails_payload("a@example.com", "a@example.com"))

        assert session.exec(select(UserTable)).all() == []
        assert session.exec(select(UserEmailTable)).all() == []


class TestReads:
    def test_get_unknown_user(self, user_service: UserService):
        with pytest.raises(NotFoundError):
            user_service.get_user("missing")

    def test_list_emails_of_unknown_user(self, user_service: UserService):
        with pytest.raises(NotFoundError):
            user_service.list_user_emails("missing")

    def test_list_users_paginates(self, user_service: UserService, create_user):
        for i in range(3):
            create_user(first_name=f"User{i}", emails=[{"email": f"u{i}@example.com"}])

        page = user_service.list_users(page=2, per_page=2)

        assert page.total == 3
        assert page.last_page == 2
        assert len(page.items) == 1

    def test_list_users_search(self, user_service: UserService, create_user):
        create_user()
        create_user(
            first_name="Anna",
            last_name="Kowalska",
            phone="+48555123456",
            emails=[{"email": "anna@example.pl"}],
        )

        page = user_service.list_users(search="kowal")

        assert page.total == 1
        assert page.items[0].primary_email == "anna@example.pl"

    def test_per_page_capped_at_max(self, user_service: UserService):
        page = user_service.list_users(per_page=10_000)
        assert page.per_page == 100
        assert page.last_page == 1


class TestUpdateUser:
    def test_scalar_update_keeps_emails(self, user_service: UserService, create_user):
        user = create_user()

        updated = user_service.update_user(user.id, UserUpdate(first_name="Jack"))

        assert updated.full_name == "Jack Doe"
        assert [e.email for e in updated.emails] == [e.email for e in user.emails]

    def test_null_phone_keeps_it(self, user_service: UserService, create_user):
        user = create_user()

        updated = user_service.update_user(user.id, UserUpdate(phone=None, first_name="Jack"))

        assert updated.phone == user.phone == "+48123456789"
        assert updated.first_name == "Jack"
        assert len(updated.emails) == 2

    def test_password_rehashed(self, session: Session, user_service: UserService, create_user):
        user = create_user()
        user_service.update_user(user.id, UserUpdate(password="brandnewpass"))
        assert verify_password("brandnewpass", UserRepository(session).get_password_hash(user.id))

    def test_email_list_replaces_all_addresses(self, user_service: UserService, create_user):
        user = create_user()
        old_ids = {e.id for e in user.emails}

        updated = user_service.update_user(
            user.id,
            UserUpdate(emails=_emails_payload("x@example.com", "y@example.com", primary="y@example.com")),
        )

        assert [e.email for e in updated.emails] == ["y@example.com", "x@example.com"]
        assert updated.primary_email == "y@example.com"
        assert not old_ids & {e.id for e in updated.emails}

    def test_user_may_resubmit_own_addresses(self, user_service: UserService, create_user):
        user = create_user()

        updated = user_service.update_user(
            user.id,
            UserUpdate(emails=_emails_payload("john.work@example.com", "john@example.com")),
        )

        assert updated.primary_email == "john.work@example.com"

    def test_replacement_with_foreign_address_fails_atomically(
        self, user_service: UserService, create_user
    ):
        user = create_user()
        create_user(first_name="Other", emails=[{"email": "other@example.com"}])

        with pytest.raises(ValidationError):
            user_service.update_user(
                user.id,
                UserUpdate(
                    first_name="Changed",
                    emails=_emails_payload("fresh@example.com", "other@example.com"),
                ),
            )

        reloaded = user_service.get_user(user.id)
        assert reloaded.first_name == "John"
        assert [e.email for e in reloaded.emails] == [e.email for e in user.emails]

    def test_unknown_user(self, user_service: UserService):
        with pytest.raises(NotFoundError):
            user_service.update_user("missing", UserUpdate(first_name="X"))


class TestDeleteUser:
    def test_delete_removes_user_and_emails(
        self, session: Session, user_service: UserService, create_user
    ):
        user = create_user()

        user_service.delete_user(user.id)

        with pytest.raises(NotFoundError):
            user_service.get_user(user.id)
        assert session.exec(select(UserEmailTable)).all() == []

    def test_addresses_are_free_after_delete(self, user_service: UserService, create_user):
        user = create_user()
        user_service.delete_user(user.id)

        again = create_user()

        assert again.primary_email == "john@example.com"

    def test_unknown_user(self, user_service: UserService):
        with pytest.raises(NotFoundError):
            user_service.delete_user("missing")


class TestAddEmail:
    def test_add_secondary(self, user_service: UserService, create_user):
        user = create_user()

        email = user_service.add_email(user.id, EmailCreate(email="new@example.com"))

        assert email.is_primary is False
        assert _primaries(user_service, user.id) == ["john@example.com"]

    def test_add_primary_demotes_previous(self, user_service: UserService, create_user):
        user = create_user()

        email = user_service.add_email(
            user.id, EmailCreate(email="new@example.com", is_primary=True)
        )

        assert email.is_primary is True
        assert _primaries(user_service, user.id) == ["new@example.com"]

    def test_add_taken_address(self, user_service: UserService, create_user):
        user = create_user()

        with pytest.raises(ValidationError) as exc_info:
            user_service.add_email(user.id, EmailCreate(email="john.work@example.com"))

        assert "email" in exc_info.value.errors

    def test_add_to_unknown_user(self, user_service: UserService):
        with pytest.raises(NotFoundError):
            user_service.add_email("missing", EmailCreate(email="a@example.com"))


class TestUpdateEmail:
    def test_change_address(self, user_service: UserService, create_user):
        user = create_user()
        secondary = user.emails[1]

        email = user_service.update_email(
            user.id, secondary.id, EmailUpdate(email="renamed@example.com")
        )

        assert email.email == "renamed@example.com"
        assert email.is_primary is False

    def test_keeping_same_address_is_allowed(self, user_service: UserService, create_user):
        user = create_user()
        primary = user.emails[0]

        email = user_service.update_email(
            user.id, primary.id, EmailUpdate(email=primary.email)
        )

        assert email.email == primary.email

    def test_promote_demotes_others(self, user_service: UserService, create_user):
        user = create_user()
        secondary = user.emails[1]

        user_service.update_email(user.id, secondary.id, EmailUpdate(is_primary=True))

        assert _primaries(user_service, user.id) == [secondary.email]

    def test_demote_leaves_no_primary(self, user_service: UserService, create_user):
        user = create_user()

        user_service.update_email(user.id, user.emails[0].id, EmailUpdate(is_primary=False))

        assert _primaries(user_service, user.id) == []

    def test_taken_address(self, user_service: UserService, create_user):
        user = create_user()
        create_user(first_name="Other", emails=[{"email": "other@example.com"}])

        with pytest.raises(ValidationError):
            user_service.update_email(
                user.id, user.emails[1].id, EmailUpdate(email="other@example.com")
            )

    def test_email_of_other_user_not_found(self, user_service: UserService, create_user):
        user = create_user()
        other = create_user(first_name="Other", emails=[{"email": "other@example.com"}])

        with pytest.raises(NotFoundError):
            user_service.update_email(
                user.id, other.emails[0].id, EmailUpdate(is_primary=True)
            )
        assert _primaries(user_service, user.id) == ["john@example.com"]


class TestDeleteEmail:
    def test_delete_secondary(self, user_service: UserService, create_user):
        user = create_user()

        user_service.delete_email(user.id, user.emails[1].id)

        assert [e.email for e in user_service.list_user_emails(user.id)] == ["john@example.com"]

    def test_primary_cannot_be_deleted_while_others_exist(
        self, user_service: UserService, create_user
    ):
        user = create_user()

        with pytest.raises(ConflictError) as exc_info:
            user_service.delete_email(user.id, user.emails[0].id)

        assert "Set another email as primary first" in exc_info.value.message
        assert len(user_service.list_user_emails(user.id)) == 2

    def test_sole_primary_can_be_deleted(self, user_service: UserService, create_user):
        user = create_user(emails=[{"email": "only@example.com"}])

        user_service.delete_email(user.id, user.emails[0].id)

        assert user_service.list_user_emails(user.id) == []
        assert user_service.get_user(user.id).primary_email is None

    def test_email_of_other_user_not_found(self, user_service: UserService, create_user):
        user = create_user()
        other = create_user(first_name="Other", emails=[{"email": "other@example.com"}])

        with pytest.raises(NotFoundError):
            user_service.delete_email(user.id, other.emails[0].id)


class TestSetPrimary:
    def test_set_primary(self, user_service: UserService, create_user):
        user = create_user()
        secondary = user.emails[1]

        email = user_service.set_primary_email(user.id, secondary.id)

        assert email.is_primary is True
        assert _primaries(user_service, user.id) == [secondary.email]

    def test_sequential_switches_keep_one_primary(
        self, user_service: UserService, create_user
    ):
        user = create_user(
            emails=_emails_payload("a@example.com", "b@example.com", "c@example.com")
        )

        for email in [*user.emails, user.emails[0], user.emails[2]]:
            user_service.set_primary_email(user.id, email.id)
            assert _primaries(user_service, user.id) == [email.email]

    def test_idempotent(self, user_service: UserService, create_user):
        user = create_user()
        primary = user.emails[0]

        user_service.set_primary_email(user.id, primary.id)
        user_service.set_primary_email(user.id, primary.id)

        assert _primaries(user_service, user.id) == [primary.email]

    def test_unknown_email(self, user_service: UserService, create_user):
        user = create_user()
        with pytest.raises(NotFoundError):
            user_service.set_primary_email(user.id, "missing")


class TestTransactions:
    def test_storage_failure_rolls_back_and_raises_internal_error(
        self, monkeypatch, user_service: UserService, create_user
    ):
        user = create_user()

        def _boom(self, user_id):
            raise OperationalError("UPDATE user_emails", {}, Exception("disk I/O error"))

        monkeypatch.setattr(UserEmailRepository, "clear_primary", _boom)

        with pytest.raises(InternalError):
            user_service.set_primary_email(user.id, user.emails[1].id)

        monkeypatch.undo()
        assert _primaries(user_service, user.id) == ["john@example.com"]

    def test_failure_after_clearing_primaries_restores_them(
        self, monkeypatch, user_service: UserService, create_user
    ):
        user = create_user()

        def _boom(self, email_id, changes):
            raise OperationalError("UPDATE user_emails", {}, Exception("lock timeout"))

        monkeypatch.setattr(UserEmailRepository, "update", _boom)

        with pytest.raises(InternalError):
            user_service.set_primary_email(user.id, user.emails[1].id)

        monkeypatch.undo()
        assert _primaries(user_service, user.id) == ["john@example.com"]
