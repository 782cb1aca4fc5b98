"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlmodel import Session

from src.accounts.api.http.app_data import ApplicationDependencies
from src.accounts.core.services import (
    UserService,
    WelcomeEmailQueue,
    WelcomeEmailService,
)


def get_session(request: Request) -> Iterator[Session]:
    """Yield a database session that is closed once the request finishes."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    session = app_deps.database_service.get_session()
    try:
        yield session
    finally:
        session.close()



def get_welcome_email_queue(request: Request) -> WelcomeEmailQueue:
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.welcome_queue


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)


def get_welcome_email_service(
    users: UserService = Depends(get_user_service),
    queue: WelcomeEmailQueue = Depends(get_welcome_email_queue),
) -> WelcomeEmailService:
    return WelcomeEmailService(users, queue)
