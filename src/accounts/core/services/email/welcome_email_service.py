"""Queueing welcome emails for a user's addresses."""

import asyncio
import random
import uuid
from datetime import timedelta
from typing import Protocol

from loguru import logger

from src.accounts.core.exceptions import ConflictError, InternalError
from src.accounts.core.models.welcome import WelcomeDispatch, WelcomeEmailJob
from src.accounts.core.services.temporal.temporal_client import TemporalClientService
from src.accounts.core.services.user.user_service import UserService
from src.accounts.runtime.context import get_config

NO_EMAILS = "User has no email addresses"


class WelcomeEmailQueue(Protocol):
    async def enqueue(self, job: WelcomeEmailJob, delay: timedelta) -> None: ...


class TemporalWelcomeEmailQueue:
    """Schedules one ``SendWelcomeEmailWorkflow`` per job, delayed with ``start_delay``."""

    def __init__(self, temporal_service: TemporalClientService) -> None:
        self._temporal = temporal_service

    async def enqueue(self, job: WelcomeEmailJob, delay: timedelta) -> None:
        from src.accounts.worker.workflows.welcome_email import SendWelcomeEmailWorkflow

        client = await self._temporal.get_client()
        await SendWelcomeEmailWorkflow.schedule_workflow(
            client,
            job,
            id=f"welcome-email-{job.user_id}-{uuid.uuid4().hex}",
            start_delay=delay,
        )


class InMemoryWelcomeEmailQueue:
    """Records jobs instead of sending them; used when Temporal is disabled."""

    def __init__(self) -> None:
        self.jobs: list[tuple[WelcomeEmailJob, timedelta]] = []

    async def enqueue(self, job: WelcomeEmailJob, delay: timedelta) -> None:
        self.jobs.append((job, delay))
        logger.bind(user_id=job.user_id, email=job.email).info(
            "Welcome email recorded (delay {}s)", delay.total_seconds()
        )


class WelcomeEmailService:
    def __init__(self, users: UserService, queue: WelcomeEmailQueue) -> None:
        self._users = users
        self._queue = queue

    def _delay(self) -> timedelta:
        cfg = get_config().welcome_email
        return timedelta(
            seconds=random.randint(cfg.min_delay_seconds, cfg.max_delay_seconds)
        )

    async def send_welcome(self, user_id: str) -> WelcomeDispatch:
        """Queue one welcome email per address the user currently owns.

        Raises:
            NotFoundError: unknown user
            ConflictError: the user has no addresses
            InternalError: the queue rejected a job
        """
        # the store uses a blocking session; keep it off the event loop
        user = await asyncio.to_thread(self._users.get_user, user_id)
        if not user.emails:
            raise ConflictError(NO_EMAILS)

        addresses = [email.email for email in user.emails]
        for address in addresses:
            job = WelcomeEmailJob(
                user_id=user.id,
                email=address,
                full_name=user.full_name,
                phone=user.phone,
                primary_email=user.primary_email,
            )
            try:
                await self._queue.enqueue(job, self._delay())
            except Exception as exc:
                logger.bind(user_id=user.id, email=address).exception(
                    "Failed to queue welcome email"
                )
                raise InternalError(f"Failed to queue welcome email: {exc}") from exc

        logger.bind(user_id=user.id, emails_count=len(addresses)).info(
            "Welcome email jobs queued"
        )
        return WelcomeDispatch(emails=addresses)
