"""Demo accounts loaded by ``accounts db seed``."""

from loguru import logger

from src.accounts.core.models import EmailInput, UserCreate
from src.accounts.core.services import UserService

DEFAULT_PASSWORD = "password"

SEED_USERS: list[dict] = [
    {
        "first_name": "Admin",
        "last_name": "User",
        "phone": "+48123456789",
        "emails": [
            {"email": "admin@example.com", "is_primary": True},
            {"email": "admin.backup@example.com"},
        ],
    },
    {
        "first_name": "John",
        "last_name": "Doe",
        "phone": "+48987654321",
        "emails": [
            {"email": "john.doe@example.com", "is_primary": True},
            {"email": "john.work@company.com"},
            {"email": "john.personal@gmail.com"},
        ],
    },
    {
        "first_name": "Anna",
        "last_name": "Kowalska",
        "phone": "+48555123456",
        "emails": [
            {"email": "anna.kowalska@example.pl", "is_primary": True},
            {"email": "a.kowalska@work.pl"},
        ],
    },
    {
        "first_name": "Mike",
        "last_name": "Johnson",
        "phone": None,
        "emails": [{"email": "mike.johnson@example.com", "is_primary": True}],
    },
]


def seed_users(users: UserService, password: str = DEFAULT_PASSWORD) -> int:
    """Create the demo users; ones whose addresses already exist are skipped.

    Returns the number of users created.
    """
    created = 0
    for record in SEED_USERS:
        emails = [EmailInput(**entry) for entry in record["emails"]]
        if not all(users.is_address_available(e.email) for e in emails):
            logger.bind(email=emails[0].email).info("Seed user already present")
            continue
        users.create_user(
            UserCreate(
                first_name=record["first_name"],
                last_name=record["last_name"],
                phone=record["phone"],
                password=password,
                emails=emails,
            )
        )
        created += 1
    return created
