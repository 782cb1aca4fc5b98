"""
Temporal worker registry.

Workflows and activities register themselves against a task queue through
the ``workflow_defn`` / ``activity_defn`` decorators; the worker manager then
builds one worker per queue from this registry.

Usage:
    @workflow_defn(queue="emails")
    class SendWelcomeEmailWorkflow(BaseWorkflow[WelcomeEmailJob, None]):
        ...

    @activity_defn(queue="emails")
    async def send_welcome_email(job: WelcomeEmailJob) -> None:
        ...
"""

import importlib
import pkgutil
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, cast

from temporalio import activity, workflow

from src.accounts.worker.workflows.base import BaseWorkflow

DEFAULT_PACKAGES = [
    "src.accounts.worker.activities",
    "src.accounts.worker.workflows",
]

# queue -> registered handlers
_ACTIVITY_BY_QUEUE: dict[str, set[Callable[..., Any]]] = {}
_WORKFLOW_BY_QUEUE: dict[str, set[type]] = {}


P = ParamSpec("P")
R = TypeVar("R")


def activity_defn(
    *, queue: str, **activity_kwargs: Any
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Register a Temporal activity on a task queue.

    Wraps ``@activity.defn`` and records the queue on the function.

    Args:
        queue: Task queue name where this activity will be registered
        **activity_kwargs: Additional arguments passed to ``@activity.defn``

    Raises:
        ValueError: If queue is not provided
    """
    if not queue:
        raise ValueError("activity_defn requires 'queue'")

    def deco(fn: Callable[P, R]) -> Callable[P, R]:
        wrapped = activity.defn(**activity_kwargs)(fn)
        setattr(wrapped, "__temporal_registered__", True)
        setattr(wrapped, "__activity_queue__", queue)
        _ACTIVITY_BY_QUEUE.setdefault(queue, set()).add(wrapped)  # type: ignore[arg-type]
        return cast(Callable[P, R], wrapped)

    return deco


WFClass = TypeVar("WFClass", bound="type[BaseWorkflow[Any, Any]]")


def workflow_defn(
    *, queue: str, **workflow_kwargs: Any
) -> Callable[[WFClass], WFClass]:
    """
    Register a Temporal workflow class on a task queue.

    Wraps ``@workflow.defn`` and records the queue on the class.

    Raises:
        ValueError: If queue is not provided
    """
    if not queue:
        raise ValueError("workflow_defn requires 'queue'")

    def deco(cls: WFClass) -> WFClass:
        wrapped_cls = workflow.defn(**workflow_kwargs)(cls)
        setattr(wrapped_cls, "__temporal_registered__", True)
        setattr(wrapped_cls, "__workflow_queue__", queue)
        _WORKFLOW_BY_QUEUE.setdefault(queue, set()).add(wrapped_cls)  # type: ignore[arg-type]
        return cast(WFClass, wrapped_cls)

    return deco


def autodiscover_modules(packages: list[str] | None = None) -> None:
    """
    Import every module under ``packages`` so their decorators run.

    Defaults to the worker's activities and workflows packages.
    """
    for mod_path in packages or DEFAULT_PACKAGES:
        pkg = importlib.import_module(mod_path)
        for m in pkgutil.walk_packages(pkg.__path__, prefix=f"{mod_path}."):
            importlib.import_module(m.name)


def get_activities_by_queue() -> dict[str, set[Callable[..., Any]]]:
    """Registered activities keyed by task queue."""
    return _ACTIVITY_BY_QUEUE.copy()


def get_workflows_by_queue() -> dict[str, set[type]]:
    """Registered workflows keyed by task queue."""
    return _WORKFLOW_BY_QUEUE.copy()
