from dataclasses import dataclass

from src.accounts.core.services import (
    DbSessionService,
    TemporalClientService,
    WelcomeEmailQueue,
)


@dataclass
class ApplicationDependencies:
    database_service: DbSessionService
    temporal_service: TemporalClientService
    welcome_queue: WelcomeEmailQueue
