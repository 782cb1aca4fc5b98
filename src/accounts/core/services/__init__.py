from .database import DbManageService, DbSessionService
from .email import (
    InMemoryWelcomeEmailQueue,
    TemporalWelcomeEmailQueue,
    WelcomeEmailQueue,
    WelcomeEmailService,
)
from .temporal import TemporalClientService
from .user import UserService

__all__ = [
    "DbManageService",
    "DbSessionService",
    "InMemoryWelcomeEmailQueue",
    "TemporalClientService",
    "TemporalWelcomeEmailQueue",
    "UserService",
    "WelcomeEmailQueue",
    "WelcomeEmailService",
]
