"""CLI command for raw authenticated API calls."""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Any

import typer

from estoque_client.config import get_config
from estoque_client.session import open_session
from estoque_client.utils.errors import handle_error
from estoque_client.utils.output import OutputFormat, print_output

app = typer.Typer(name="api", help="Call any API endpoint with the saved session.")

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


@app.command("call")
def call(
    method: Annotated[str, typer.Argument(help="HTTP method")],
    path: Annotated[str, typer.Argument(help="API path, e.g. /itens")],
    body: Annotated[str | None, typer.Option("--body", "-b", help="JSON request body")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.JSON,
) -> None:
    """Make one authenticated request and print the JSON response."""
    method = method.upper()
    if method not in METHODS:
        raise typer.BadParameter(f"Method must be one of {', '.join(METHODS)}")

    try:
        payload = json.loads(body) if body else None
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--body is not valid JSON: {e}")

    async def _call() -> Any:
        async with open_session(get_config()) as session:
            return await session.client.request_json(method, path, body=payload)

    try:
        result = asyncio.run(_call())
    except RuntimeError as e:
        handle_error(e)
        raise typer.Exit(1)

    if isinstance(result, (dict, list)):
        print_output(result, output, title=f"{method} {path}")
    else:
        print_output({"result": result}, output)
