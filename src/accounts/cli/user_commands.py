"""Read-only user inspection commands."""

import typer
from rich.console import Console
from rich.table import Table

from src.accounts.core.exceptions import NotFoundError
from src.accounts.core.services import DbSessionService, UserService

console = Console()

users_app = typer.Typer(help="Inspect stored users")


@users_app.command("list")
def list_users(
    search: str | None = typer.Option(None, "--search", "-s", help="Name or phone filter"),
    page: int = typer.Option(1, "--page", min=1),
    per_page: int = typer.Option(15, "--per-page", "-n", min=1),
) -> None:
    """List users with their primary address."""
    database = DbSessionService()
    with database.session_scope() as session:
        result = UserService(session).list_users(
            search=search, page=page, per_page=per_page
        )

    if not result.items:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title=f"Users (page {result.page}/{result.last_page})")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Phone", style="magenta")
    table.add_column("Primary email", style="blue")
    table.add_column("Emails", justify="right")
    for user in result.items:
        table.add_row(
            user.id,
            user.full_name,
            user.phone or "",
            user.primary_email or "",
            str(len(user.emails)),
        )
    console.print(table)
    console.print(f"\n[green]{result.total} users in total[/green]")


@users_app.command("show")
def show_user(user_id: str = typer.Argument(..., help="User id")) -> None:
    """Show one user and every address they own."""
    database = DbSessionService()
    try:
        with database.session_scope() as session:
            user = UserService(session).get_user(user_id)
    except NotFoundError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[bold]{user.full_name}[/bold] ({user.id})")
    console.print(f"Phone: {user.phone or 'Not provided'}")
    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Email", style="blue")
    table.add_column("Primary", style="yellow")
    for email in user.emails:
        table.add_row(email.id, email.email, "✅" if email.is_primary else "")
    console.print(table)
