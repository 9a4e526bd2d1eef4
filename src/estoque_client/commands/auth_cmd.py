"""CLI commands for session management."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any

import typer
from rich.console import Console

from estoque_client.config import get_config
from estoque_client.models.auth import Failed
from estoque_client.session import open_session
from estoque_client.utils.errors import AuthenticationError, ConfigError, handle_error
from estoque_client.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="auth", help="Manage the login session.")


def _status_row(status: Any) -> dict[str, Any]:
    return {
        "has_token": status.has_token,
        "is_expired": status.is_expired,
        "expires_at": str(status.expires_at) if status.expires_at else "N/A",
        "seconds_remaining": status.seconds_remaining or 0,
        "refresh_due": status.refresh_due,
    }


@app.command()
def login(
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Account e-mail")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Account password")],
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Log in and save the session."""

    async def _login() -> dict[str, Any]:
        async with open_session(get_config()) as session:
            await session.auth.login(email, password)
            user = session.auth.user
            result = {"status": "authenticated", **_status_row(session.auth.get_status())}
            if user is not None:
                result["user"] = user.nome or user.email or ""
            return result

    try:
        console.print(f"Logging in as [bold]{email}[/bold]...", style="yellow")
        print_output(asyncio.run(_login()), output, title="Authentication")
    except (AuthenticationError, ConfigError) as e:
        console.print(f"[red]Authentication failed:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Show current token status."""

    async def _status() -> dict[str, Any]:
        async with open_session(get_config()) as session:
            return _status_row(session.auth.get_status())

    try:
        print_output(asyncio.run(_status()), output, title="Token Status")
    except ConfigError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def refresh(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Force refresh the access token."""

    async def _refresh() -> dict[str, Any]:
        async with open_session(get_config()) as session:
            if session.store.read() is None:
                raise AuthenticationError("Not logged in")
            outcome = await session.auth.refresh()
            if isinstance(outcome, Failed):
                session.guard.trigger_logout_once()
                raise AuthenticationError(outcome.reason)
            return {"status": "refreshed", **_status_row(session.auth.get_status())}

    try:
        console.print("Force refreshing token...", style="yellow")
        print_output(asyncio.run(_refresh()), output, title="Token Refreshed")
    except (AuthenticationError, ConfigError) as e:
        console.print(f"[red]Token refresh failed:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def logout() -> None:
    """Forget the saved session."""

    async def _logout() -> None:
        async with open_session(get_config()) as session:
            session.auth.logout()

    try:
        asyncio.run(_logout())
    except ConfigError as e:
        handle_error(e)
        raise typer.Exit(1)
    console.print("[green]Logged out.[/green]")
