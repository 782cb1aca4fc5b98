"""``accounts-worker``: runs the Temporal workers that deliver welcome emails."""

import asyncio
from collections.abc import Sequence

import typer
from loguru import logger

from src.accounts.api.utils.app_startup import configure_logging
from src.accounts.core.services import TemporalClientService
from src.accounts.worker.manager import TemporalWorkerManager

app = typer.Typer(no_args_is_help=True, add_completion=False)


def resolve_queues(requested: Sequence[str] | None, discovered: Sequence[str]) -> list[str]:
    """Queues to poll: the requested ones, or every discovered queue.

    Raises:
        typer.BadParameter: a requested queue has no registered handlers
    """
    if not requested:
        return sorted(discovered)
    unknown = sorted(set(requested) - set(discovered))
    if unknown:
        raise typer.BadParameter(
            f"unknown queue(s) {', '.join(unknown)}; known: {', '.join(sorted(discovered))}",
            param_hint="--queue",
        )
    return list(dict.fromkeys(requested))


async def _run(manager: TemporalWorkerManager, queues: list[str], drain_timeout: float) -> int:
    temporal = TemporalClientService()
    try:
        client = await temporal.get_client()
        await manager.run_workers(client, queues, drain_timeout=drain_timeout)
    except Exception:
        logger.exception("Worker stopped with an error")
        return 1
    finally:
        await temporal.close()
    return 0


@app.callback()
def _root() -> None:
    """Temporal worker for background jobs."""


@app.command(name="serve")
def serve(
    queue: list[str] | None = typer.Option(
        None,
        "--queue",
        "-q",
        help="Task queue to poll (repeatable). Defaults to every discovered queue.",
    ),
    drain_timeout: float = typer.Option(
        600.0, "--drain-timeout", help="Seconds in-flight tasks get to finish on shutdown."
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        case_sensitive=False,
        help="Overrides logging.level from the configuration.",
    ),
):
    """Poll the task queues until SIGINT/SIGTERM."""
    configure_logging(level=log_level)

    manager = TemporalWorkerManager()
    if not manager.enabled:
        logger.error("Temporal is disabled; set TEMPORAL_ENABLED=true to run workers")
        raise typer.Exit(code=2)

    queues = resolve_queues(queue, list(manager.pools))
    if not queues:
        logger.error("No workflows or activities were discovered")
        raise typer.Exit(code=2)

    raise typer.Exit(code=asyncio.run(_run(manager, queues, drain_timeout)))


def main():
    app()


if __name__ == "__main__":
    main()
