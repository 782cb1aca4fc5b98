from .primary_resolution import resolve_primary_flags
from .user_service import UserService

__all__ = ["UserService", "resolve_primary_flags"]
