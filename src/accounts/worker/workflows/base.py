from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Generic, Self, TypeVar

from temporalio import workflow
from temporalio.client import Client, WorkflowHandle
from temporalio.common import RetryPolicy


def _retry_policy(retry: Any, **extra: Any) -> RetryPolicy:
    return RetryPolicy(
        maximum_attempts=retry.maximum_attempts,
        initial_interval=timedelta(seconds=retry.initial_interval_seconds),
        backoff_coefficient=retry.backoff_coefficient,
        maximum_interval=timedelta(seconds=retry.maximum_interval_seconds),
        **extra,
    )


def default_workflow_opts() -> dict[str, Any]:
    from src.accounts.runtime.context import get_config

    cfg = get_config().temporal.workflows
    return {
        "execution_timeout": timedelta(seconds=cfg.execution_timeout_s),
        "run_timeout": timedelta(seconds=cfg.run_timeout_s),
        "task_timeout": timedelta(seconds=cfg.task_timeout_s),
        "retry_policy": _retry_policy(cfg.retry),
    }


# Use this INSIDE workflows when executing activities.
def default_activity_opts() -> dict[str, Any]:
    from src.accounts.runtime.context import get_config

    cfg = get_config().temporal.activities
    return {
        "start_to_close_timeout": timedelta(seconds=cfg.start_to_close_timeout_s),
        "schedule_to_close_timeout": timedelta(
            seconds=cfg.schedule_to_close_timeout_s
        ),
        "retry_policy": _retry_policy(
            cfg.retry, non_retryable_error_types=["ValidationError"]
        ),
    }


TArgs = TypeVar("TArgs")
TReturn = TypeVar("TReturn")


class BaseWorkflow(ABC, Generic[TArgs, TReturn]):
    """Common state query and cancel signal for all workflows."""

    def __init__(self) -> None:
        self._state: dict[str, Any] = {}

    @workflow.run
    @abstractmethod
    async def run(self, input: TArgs) -> TReturn: ...

    @workflow.query
    def state(self) -> dict:
        return self._state

    @workflow.signal
    def cancel(self) -> None:
        self._state["cancelled"] = True

    @classmethod
    def _queue(cls) -> str:
        q = getattr(cls, "__workflow_queue__", None)
        if not q:
            raise ValueError(f"{cls.__name__} has no declared queue")
        return q

    @classmethod
    async def start_workflow(
        cls: type[Self],
        client: Client,
        input: TArgs,
        id: str,
        **workflow_kwargs,
    ) -> WorkflowHandle[Self, TReturn]:
        """
        Start a workflow execution and return its handle.

        Args:
            client: Connected Temporal client instance
            input: Input data for the workflow
            id: Unique workflow ID (used for deduplication)
            **workflow_kwargs: Passed to client.start_workflow, overriding defaults

        Raises:
            ValueError: If the workflow class has no declared queue
        """
        merged = {**default_workflow_opts(), **workflow_kwargs}
        return await client.start_workflow(
            cls.run,
            input,
            id=id,
            task_queue=cls._queue(),
            **merged,
        )

    @classmethod
    async def schedule_workflow(
        cls: type[Self],
        client: Client,
        input: TArgs,
        id: str,
        start_delay: timedelta,
        **workflow_kwargs,
    ) -> WorkflowHandle[Self, TReturn]:
        """
        Schedule a workflow to start after ``start_delay``.

        The execution is created immediately but does not run until the delay
        elapses.
        """
        return await cls.start_workflow(
            client, input, id, start_delay=start_delay, **workflow_kwargs
        )
