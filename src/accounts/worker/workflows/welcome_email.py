from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

from src.accounts.worker.registry import workflow_defn
from src.accounts.worker.workflows.base import BaseWorkflow

with workflow.unsafe.imports_passed_through():
    from src.accounts.core.models.welcome import WelcomeEmailJob
    from src.accounts.runtime.context import get_config
    from src.accounts.worker.activities.email import EMAILS_QUEUE, send_welcome_email


@workflow_defn(queue=EMAILS_QUEUE)
class SendWelcomeEmailWorkflow(BaseWorkflow[WelcomeEmailJob, None]):
    """Deliver one welcome email; the activity owns retries."""

    @workflow.run
    async def run(self, input: WelcomeEmailJob) -> None:
        cfg = get_config().welcome_email
        self._state.update(user_id=input.user_id, email=input.email, status="sending")
        await workflow.execute_activity(
            send_welcome_email,
            input,
            start_to_close_timeout=timedelta(seconds=cfg.timeout_seconds),
            retry_policy=RetryPolicy(
                maximum_attempts=cfg.max_attempts,
                initial_interval=timedelta(seconds=5),
                non_retryable_error_types=["ConfigurationError", "ValidationError"],
            ),
        )
        self._state["status"] = "sent"
