"""Entities organized by business concept.

Each entity package contains:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.user import User, UserRepository, UserTable
from .core.user_email import UserEmail, UserEmailRepository, UserEmailTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "UserEmail",
    "UserEmailTable",
    "UserEmailRepository",
]
