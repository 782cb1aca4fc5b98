"""User email entity module."""

from .entity import UserEmail
from .repository import UserEmailRepository
from .table import UserEmailTable

__all__ = ["UserEmail", "UserEmailTable", "UserEmailRepository"]
