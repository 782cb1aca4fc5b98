from .welcome_email_service import (
    InMemoryWelcomeEmailQueue,
    TemporalWelcomeEmailQueue,
    WelcomeEmailQueue,
    WelcomeEmailService,
)

__all__ = [
    "InMemoryWelcomeEmailQueue",
    "TemporalWelcomeEmailQueue",
    "WelcomeEmailQueue",
    "WelcomeEmailService",
]
