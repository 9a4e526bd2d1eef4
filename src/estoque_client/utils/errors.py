"""Error taxonomy and structured error handling for agent-friendly output."""

from __future__ import annotations

import json
import sys
from typing import Any

from rich.console import Console

console = Console(stderr=True)


class EstoqueClientError(RuntimeError):
    """Base class for every error raised by the client."""

    code = "RUNTIME_ERROR"


class ConfigError(EstoqueClientError):
    """Configuration is missing or invalid."""

    code = "CONFIG_ERROR"


class TransportError(EstoqueClientError):
    """The request never got a response (connection refused, timeout, ...)."""

    code = "CONNECTION_ERROR"


class ServerError(EstoqueClientError):
    """Non-auth, non-2xx response, surfaced verbatim."""

    code = "SERVER_ERROR"

    def __init__(self, status_code: int, message: str, payload: Any = None) -> None:
        super().__init__(f"API error (HTTP {status_code}): {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class AuthRejected(EstoqueClientError):
    """The server answered 401 or 498. Never escapes ApiClient."""

    code = "AUTH_ERROR"

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Credential rejected (HTTP {status_code})")
        self.status_code = status_code


class RenewalFailed(EstoqueClientError):
    """The refresh endpoint could not produce a new credential."""

    code = "AUTH_ERROR"


class AuthExpired(EstoqueClientError):
    """Terminal: the session cannot be renewed and the user was signed out."""

    code = "AUTH_EXPIRED"


class AuthenticationError(EstoqueClientError):
    """The identity provider rejected the supplied credentials."""

    code = "AUTH_ERROR"


# Actionable hints keyed by error substring
_ERROR_HINTS: list[tuple[str, str]] = [
    ("session expired", "Session expired — run `estoque auth login`"),
    ("401", "Token may be expired — run `estoque auth refresh`"),
    ("498", "Token may be expired — run `estoque auth refresh`"),
    ("unauthorized", "Token may be expired — run `estoque auth refresh`"),
    ("credential", "Check the e-mail and password and run `estoque auth login` again"),
    ("estoque_api_url", "Set ESTOQUE_API_URL in your .env file"),
    ("429", "Rate limited — wait a moment and retry"),
    ("timeout", "Request timed out — try again or check network connectivity"),
    ("connection", "Connection error — check network connectivity"),
    ("404", "The requested resource does not exist — verify the path or ID"),
]


def _get_hint(error_message: str) -> str | None:
    """Match an error message to an actionable hint."""
    lower = error_message.lower()
    for pattern, hint in _ERROR_HINTS:
        if pattern.lower() in lower:
            return hint
    return None


def _get_code(error: Exception) -> str:
    """Error code from the exception type, falling back to message heuristics."""
    if isinstance(error, EstoqueClientError):
        return error.code

    message = str(error).lower()
    if "401" in message or "unauthorized" in message:
        return "AUTH_ERROR"
    if "timeout" in message:
        return "TIMEOUT"
    if "connection" in message:
        return "CONNECTION_ERROR"
    return "RUNTIME_ERROR"


def handle_error(error: Exception) -> None:
    """Handle an error with structured output to stdout and human-readable output to stderr.

    Outputs a JSON error object to stdout for agent consumption:
    {"error": true, "code": "AUTH_EXPIRED", "message": "...", "hint": "..."}

    Also prints a human-readable error to stderr.
    """
    message = str(error)
    hint = _get_hint(message)

    error_obj: dict[str, object] = {
        "error": True,
        "code": _get_code(error),
        "message": message,
    }
    if isinstance(error, ServerError):
        error_obj["status"] = error.status_code
    if hint:
        error_obj["hint"] = hint

    json.dump(error_obj, sys.stdout)
    sys.stdout.write("\n")

    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
