import hashlib

import httpx
from loguru import logger
from temporalio import activity
from temporalio.exceptions import ApplicationError

from src.accounts.core.models.welcome import WelcomeEmailJob
from src.accounts.runtime.context import get_config
from src.accounts.worker.registry import activity_defn

EMAILS_QUEUE = "emails"


def render_welcome_email(job: WelcomeEmailJob) -> str:
    """Plain-text body of the welcome email."""
    return "\n".join(
        [
            f"Hello {job.full_name},",
            "",
            "Thank you for joining our application. We're excited to have you on board!",
            "",
            "Your account details:",
            f"  Name: {job.full_name}",
            f"  Phone: {job.phone or 'Not provided'}",
            f"  Primary Email: {job.primary_email or 'Not set'}",
            "",
            "If you have any questions, please don't hesitate to contact us.",
            "",
            "Best regards,",
            "The Team",
        ]
    )


def _idempotency_key(to: str, subject: str, body: str) -> str:
    """Stable key so the provider won't send duplicates across retries."""
    info = activity.info()
    payload_hash = hashlib.sha256(
        (to + "\x1f" + subject + "\x1f" + body).encode("utf-8")
    ).hexdigest()
    return f"email:{info.workflow_id}:{info.activity_id}:{payload_hash}"


@activity_defn(queue=EMAILS_QUEUE)
async def send_welcome_email(job: WelcomeEmailJob) -> None:
    """
    Send the welcome email for one address through the HTTP provider.

    5xx and 429 responses raise plain errors so Temporal retries them; other
    4xx responses and missing provider settings are non-retryable.
    """
    cfg = get_config()
    provider = cfg.email
    log = logger.bind(user_id=job.user_id, email=job.email)

    if not provider.api_url or not provider.api_key:
        raise ApplicationError(
            "Email provider not configured",
            type="ConfigurationError",
            non_retryable=True,
        )

    subject = cfg.welcome_email.subject
    body = render_welcome_email(job)
    payload = {
        "from": {"email": provider.from_address},
        "personalizations": [{"to": [{"email": job.email}], "subject": subject}],
        "content": [{"type": "text/plain", "value": body}],
    }
    headers = {
        "Authorization": f"Bearer {provider.api_key}",
        "Idempotency-Key": _idempotency_key(job.email, subject, body),
        "Content-Type": "application/json",
        "User-Agent": "accounts-worker/welcome-email",
    }

    async with httpx.AsyncClient(timeout=provider.http_timeout) as client:
        resp = await client.post(provider.api_url, json=payload, headers=headers)

    if 200 <= resp.status_code < 300:
        log.info("Welcome email sent successfully")
        return

    log.warning("Failed to send welcome email: status {}", resp.status_code)
    if resp.status_code >= 500 or resp.status_code == 429:
        raise RuntimeError(f"Provider {resp.status_code}: {resp.text[:200]}")

    raise ApplicationError(
        f"Email send failed {resp.status_code}: {resp.text[:200]}",
        type="ValidationError",
        non_retryable=True,
    )
