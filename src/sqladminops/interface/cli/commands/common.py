"""
Helpers shared by the command functions.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer

from sqladminops.application.common.reporting import CommandResult
from sqladminops.application.container import Container
from sqladminops.domain.errors import SqlAdminError
from sqladminops.infrastructure.excel_report import write_records
from sqladminops.interface.cli.formatters import OutputFormat, print_records, print_summary
from sqladminops.interface.cli.formatters.result_formatters import err_console

logger = logging.getLogger(__name__)


def get_container(ctx: typer.Context) -> Container:
    """Container created by the root callback (or injected by tests)."""
    if ctx.obj is None:
        ctx.obj = Container()
    return ctx.obj


def load_credential(container: Container, cred_ref: Optional[str]):
    """Credential for a reference; configuration errors end the command."""
    try:
        return container.config_manager.get_credential(cred_ref)
    except SqlAdminError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=2) from e


def fail_fast(error: SqlAdminError) -> NoReturn:
    """Print a propagated error and exit non-zero."""
    err_console.print(f"[red]{type(error).__name__}:[/red] {error}")
    raise typer.Exit(code=1)


def finish(
    result: CommandResult,
    records: List[Dict[str, Any]],
    output_format: OutputFormat,
    title: str,
    export: Optional[Path],
    command: str,
) -> None:
    """Render, optionally export, and exit with 1 when errors were reported."""
    print_records(records, output_format, title)
    if export is not None:
        write_records(records, export, sheet_name=title, command=command)
        err_console.print(f"[green]Exported {len(records)} record(s) to {export}[/green]")
    print_summary(result)
    if result.errors:
        raise typer.Exit(code=1)
