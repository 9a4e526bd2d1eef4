"""CLI commands for notifications."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Annotated

import typer
from rich.console import Console

from estoque_client.config import get_config
from estoque_client.models.stream import StreamEvent, StreamState
from estoque_client.session import open_session
from estoque_client.utils.errors import handle_error
from estoque_client.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="notifications", help="Read and follow notifications.")

COLUMNS = ["id", "mensagem", "data_hora", "visualizada"]


def _session_expired() -> None:
    console.print("[red]Session expired.[/red] Run `estoque auth login` to sign in again.")


@app.command("list")
def list_notifications(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """List the newest notifications."""

    async def _list() -> list[dict]:
        async with open_session(get_config(), on_logout=_session_expired) as session:
            notifications = await session.notifications().latest()
            return [n.model_dump() for n in notifications]

    try:
        rows = asyncio.run(_list())
    except RuntimeError as e:
        handle_error(e)
        raise typer.Exit(1)

    if not rows:
        console.print("[dim]No notifications.[/dim]")
        raise typer.Exit(0)
    print_output(rows, output, columns=COLUMNS, title="Notifications")


@app.command("read")
def mark_read(
    notification_id: Annotated[str, typer.Argument(help="Notification ID")],
) -> None:
    """Mark one notification as read."""

    async def _read() -> None:
        async with open_session(get_config(), on_logout=_session_expired) as session:
            await session.notifications().mark_read(notification_id)

    try:
        asyncio.run(_read())
    except RuntimeError as e:
        handle_error(e)
        raise typer.Exit(1)
    console.print(f"[green]Marked {notification_id} as read.[/green]")


@app.command("read-all")
def mark_all_read() -> None:
    """Mark every unread notification on the newest page as read."""

    async def _read_all() -> int:
        async with open_session(get_config(), on_logout=_session_expired) as session:
            return await session.notifications().mark_all_read()

    try:
        count = asyncio.run(_read_all())
    except RuntimeError as e:
        handle_error(e)
        raise typer.Exit(1)
    console.print(f"[green]Marked {count} notification(s) as read.[/green]")


@app.command("watch")
def watch(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Follow the notification stream until interrupted."""

    async def _watch() -> None:
        async with open_session(get_config(), on_logout=_session_expired) as session:
            feed = session.notifications()
            stream = session.stream()

            async def show(event: StreamEvent) -> None:
                await feed.handle_event(event)
                unread = await feed.unread_count()
                console.print(f"[bold]{event.event}[/bold] {event.data} [dim]({unread} unread)[/dim]")

            stream.on(session.config.tuning.notification_event, show)
            stream.subscribe()
            poller = asyncio.create_task(feed.poll(stream))
            try:
                await stream.wait_stopped()
                if stream.state == StreamState.ABORTED:
                    return
                console.print("[yellow]Notification stream stopped, falling back to polling.[/yellow]")
                await poller
            finally:
                poller.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await poller
                await stream.unsubscribe()

    console.print("Watching notifications (Ctrl-C to stop)...", style="yellow")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
    except RuntimeError as e:
        handle_error(e)
        raise typer.Exit(1)
