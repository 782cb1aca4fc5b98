"""Database management commands."""

import typer
from rich.console import Console
from rich.prompt import Confirm

from src.accounts.core.services import DbManageService, DbSessionService, UserService
from src.accounts.runtime.context import get_config
from src.accounts.runtime.init_db import init_db
from src.accounts.runtime.seed import DEFAULT_PASSWORD, seed_users

console = Console()

db_app = typer.Typer(help="Create, reset and seed the database")


@db_app.command("init")
def init() -> None:
    """Create all tables that don't exist yet."""
    init_db()
    console.print(f"[green]✅ Tables created on {get_config().database.url}[/green]")


@db_app.command("reset")
def reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Drop and recreate every table."""
    if not force and not Confirm.ask("[red]Drop all account data?[/red]"):
        console.print("[yellow]Aborted[/yellow]")
        raise typer.Exit(code=1)
    database = DbSessionService()
    manager = DbManageService(database.engine)
    manager.drop_all()
    manager.create_all()
    database.dispose()
    console.print("[green]✅ Database reset[/green]")


@db_app.command("seed")
def seed(
    password: str = typer.Option(
        DEFAULT_PASSWORD, "--password", "-p", help="Password for every seeded user"
    ),
) -> None:
    """Load the demo users and their email addresses."""
    init_db()
    database = DbSessionService()
    with database.session_scope() as session:
        created = seed_users(UserService(session), password=password)
    database.dispose()
    console.print(f"[green]✅ Seeded {created} users[/green]")
