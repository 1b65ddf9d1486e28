"""
CLI result formatters.

Renders flat output records as a Rich table, JSON or CSV on stdout and
prints the end-of-command summary of errors and previews.
"""

import csv
import io
import json
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from sqladminops.application.common.reporting import CommandResult
from sqladminops.domain.models import record_columns

logger = logging.getLogger(__name__)
console = Console()
err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def render_json(records: List[Dict[str, Any]]) -> str:
    return json.dumps(
        [{key: _plain(value) for key, value in record.items()} for record in records],
        indent=2,
        ensure_ascii=False,
    )


def render_csv(records: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=record_columns(records), lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow({key: _plain(value) for key, value in record.items()})
    return buffer.getvalue()


def render_table(records: List[Dict[str, Any]], title: str) -> Table:
    table = Table(title=title)
    columns = record_columns(records)
    for column in columns:
        table.add_column(column, overflow="fold")
    for record in records:
        table.add_row(*[
            "" if record.get(column) is None else str(_plain(record.get(column)))
            for column in columns
        ])
    return table


def print_records(records: List[Dict[str, Any]], output_format: OutputFormat, title: str) -> None:
    """Write records to stdout in the requested format."""
    if output_format is OutputFormat.JSON:
        print(render_json(records))
    elif output_format is OutputFormat.CSV:
        print(render_csv(records), end="")
    elif records:
        console.print(render_table(records, title))
    else:
        err_console.print(f"[dim]{title}: no records[/dim]")


def print_summary(result: CommandResult) -> None:
    """Errors and previews go to stderr so stdout stays machine-readable."""
    for preview in result.previews:
        err_console.print(f"[cyan]What if:[/cyan] {preview}")
    if result.errors:
        err_console.print(
            f"[yellow]{len(result.errors)} error(s) reported; see warnings above[/yellow]"
        )
