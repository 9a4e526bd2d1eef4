"""Output formatting for CLI results (table, JSON or CSV)."""

from __future__ import annotations

import csv
import json
import sys
from enum import Enum
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

console = Console(stderr=True)

Rows = list[dict[str, Any]] | dict[str, Any] | BaseModel | list[BaseModel]


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def _rows(data: Any) -> list[dict[str, Any]]:
    """Normalize a dict, model, or list of either into a list of dicts."""
    if not isinstance(data, list):
        data = [data]
    return [row.model_dump(mode="json") if isinstance(row, BaseModel) else row for row in data]


def print_output(
    data: Rows,
    fmt: OutputFormat = OutputFormat.TABLE,
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    """Print data in the requested format.

    Args:
        data: The data to display (dict, pydantic model, or a list of them).
        fmt: Output format (table, json, csv).
        columns: Which columns to show in table/csv mode. None = all.
        title: Optional title for table output.
    """
    if fmt == OutputFormat.JSON:
        print_json(data)
    elif fmt == OutputFormat.CSV:
        print_csv(data, columns)
    else:
        print_table(data, columns, title)


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout."""
    if isinstance(data, list):
        data = _rows(data)
    elif isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    json.dump(data, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def print_table(data: Rows, columns: list[str] | None = None, title: str | None = None) -> None:
    """Print data as a Rich table on stderr."""
    rows = _rows(data)
    if not rows:
        console.print("[dim]No results.[/dim]")
        return

    if columns is None:
        columns = list(rows[0].keys())

    table = Table(title=title, show_lines=False)
    for col in columns:
        table.add_column(col, overflow="fold")

    for row in rows:
        table.add_row(*[str(row.get(col, "")) for col in columns])

    console.print(table)


def print_csv(data: Rows, columns: list[str] | None = None) -> None:
    """Print data as CSV to stdout."""
    rows = _rows(data)
    if not rows:
        return

    if columns is None:
        columns = list(rows[0].keys())

    writer = csv.DictWriter(sys.stdout, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: row.get(k, "") for k in columns})
