import asyncio
import signal
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from temporalio.client import Client
from temporalio.worker import Worker

from src.accounts.runtime.context import get_config
from src.accounts.worker.registry import (
    autodiscover_modules,
    get_activities_by_queue,
    get_workflows_by_queue,
)


@dataclass
class Pool:
    """Workflows and activities registered to one task queue."""

    queue: str
    workflows: list[type[Any]] = field(default_factory=list)
    activities: list[Callable[..., Any]] = field(default_factory=list)

    def check_declared_queues(self) -> None:
        """Raise RuntimeError if a handler was registered for a different queue."""
        handlers = [(wf, "__workflow_queue__") for wf in self.workflows] + [
            (fn, "__activity_queue__") for fn in self.activities
        ]
        for handler, attribute in handlers:
            declared = getattr(handler, attribute, None)
            if declared != self.queue:
                raise RuntimeError(
                    f"{handler.__name__} declares queue '{declared}', "
                    f"not '{self.queue}'"
                )


class TemporalWorkerManager:
    """
    Runs one Temporal worker per task queue of the discovered handlers.

    Example:
        manager = TemporalWorkerManager()
        client = await TemporalClientService().get_client()
        await manager.run_workers(client, ["emails"])
    """

    def __init__(
        self,
        packages: list[str] | None = None,
        max_concurrent_workflow_tasks: int = 16,
        max_concurrent_activities: int = 50,
    ):
        autodiscover_modules(packages)
        self._max_concurrent_workflow_tasks = max_concurrent_workflow_tasks
        self._max_concurrent_activities = max_concurrent_activities
        self._pools = self._group_by_queue()

    @staticmethod
    def _group_by_queue() -> dict[str, Pool]:
        pools: defaultdict[str, Pool] = defaultdict(lambda: Pool(queue=""))
        for queue, workflows in get_workflows_by_queue().items():
            pools[queue].workflows.extend(sorted(workflows, key=lambda c: c.__name__))
        for queue, activities in get_activities_by_queue().items():
            pools[queue].activities.extend(sorted(activities, key=lambda f: f.__name__))
        for queue, pool in pools.items():
            pool.queue = queue
        return dict(pools)

    @property
    def enabled(self) -> bool:
        return get_config().temporal.enabled

    @property
    def pools(self) -> dict[str, Pool]:
        return self._pools

    def build_worker(self, client: Client, task_queue: str) -> Worker:
        """
        Create the worker polling ``task_queue``.

        Raises:
            ValueError: nothing is registered for the queue
            RuntimeError: a handler declares another queue
        """
        pool = self._pools.get(task_queue)
        if pool is None or not (pool.workflows or pool.activities):
            raise ValueError(f"No handlers registered for queue '{task_queue}'")
        pool.check_declared_queues()

        return Worker(
            client,
            task_queue=task_queue,
            workflows=pool.workflows,
            activities=pool.activities,
            max_concurrent_workflow_tasks=self._max_concurrent_workflow_tasks,
            max_concurrent_activities=self._max_concurrent_activities,
        )

    @staticmethod
    def _stop_on_signals() -> asyncio.Event:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                logger.debug("Signal handlers unavailable; stop_event must be set manually")
                break
        return stop_event

    async def run_workers(
        self,
        client: Client,
        task_queues: Sequence[str],
        stop_event: asyncio.Event | None = None,
        drain_timeout: float = 600.0,
    ) -> None:
        """Run the workers until ``stop_event`` is set (SIGINT/SIGTERM by default).

        In-flight tasks get ``drain_timeout`` seconds before the run loops are
        cancelled.
        """
        workers = {queue: self.build_worker(client, queue) for queue in task_queues}
        tasks = [
            asyncio.create_task(worker.run(), name=f"worker:{queue}")
            for queue, worker in workers.items()
        ]
        stop_event = stop_event or self._stop_on_signals()

        logger.bind(queues=list(workers)).info("Workers started")
        try:
            await stop_event.wait()
            await self._drain(list(workers.values()), drain_timeout)
        except TimeoutError:
            logger.warning("Drain exceeded {}s; cancelling workers", drain_timeout)
            for task in tasks:
                task.cancel()
        finally:
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    async def _drain(workers: list[Worker], timeout: float) -> None:
        logger.info("Shutdown requested; draining {} worker(s)", len(workers))
        shutdowns = asyncio.gather(*(w.shutdown() for w in workers), return_exceptions=True)
        await asyncio.wait_for(asyncio.shield(shutdowns), timeout=timeout)
        logger.info("Workers drained")
