"""Welcome email job payload shared by the API and the worker."""

from pydantic import BaseModel


class WelcomeEmailJob(BaseModel):
    user_id: str
    email: str
    full_name: str
    phone: str | None = None
    primary_email: str | None = None


class WelcomeDispatch(BaseModel):
    """Outcome of queueing welcome emails for one user."""

    emails: list[str]

    @property
    def emails_count(self) -> int:
        return len(self.emails)

    @property
    def message(self) -> str:
        return f"Welcome email job queued for {self.emails_count} email addresses"
