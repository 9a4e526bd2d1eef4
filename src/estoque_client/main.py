"""Estoque CLI — entry point.

Agent-friendly CLI for the Estoque Inteligente API session: log in, keep
the token fresh, and follow notifications.
"""

from __future__ import annotations

import logging

import typer

from estoque_client.commands.api_cmd import app as api_app
from estoque_client.commands.auth_cmd import app as auth_app
from estoque_client.commands.notifications_cmd import app as notifications_app

app = typer.Typer(
    name="estoque",
    help="CLI client for the Estoque Inteligente API.",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(auth_app, name="auth")
app.add_typer(notifications_app, name="notifications")
app.add_typer(api_app, name="api")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Estoque CLI — session, notifications and raw API calls."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


if __name__ == "__main__":
    app()
