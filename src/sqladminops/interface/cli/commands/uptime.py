"""
uptime command.

Reports SQL Server and Windows uptime for each instance.
"""

from pathlib import Path
from typing import List, Optional

import typer

from sqladminops.domain.errors import SqlAdminError
from sqladminops.interface.cli.commands.common import (
    fail_fast,
    finish,
    get_container,
    load_credential,
)
from sqladminops.interface.cli.formatters import OutputFormat
from sqladminops.interface.cli.formatters.result_formatters import err_console


def show_uptime(
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(
        None, "--sql-instance", "-S", help="Target instance; repeatable"
    ),
    all_targets: bool = typer.Option(
        False, "--all-targets", help="Use every enabled target from sql_targets.json"
    ),
    tag: Optional[List[str]] = typer.Option(
        None, "--tag", help="With --all-targets, only targets carrying this tag; repeatable"
    ),
    sql_credential: Optional[str] = typer.Option(
        None, "--sql-credential", "-C", help="Credential reference for SQL authentication"
    ),
    windows_credential: Optional[str] = typer.Option(
        None, "--windows-credential", "-W", help="Credential reference for WinRM/DCOM queries"
    ),
    enable_exception: bool = typer.Option(
        False, "--enable-exception", help="Stop on the first error instead of warning and continuing"
    ),
    output_format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", case_sensitive=False),
    export: Optional[Path] = typer.Option(None, "--export", help="Also write the report to an .xlsx file"),
):
    """
    Show SQL Server uptime (tempdb creation) and Windows uptime (last boot).
    """
    container = get_container(ctx)
    instances = list(sql_instance or [])

    if all_targets:
        try:
            targets = container.config_manager.get_target_instances(tag or None)
        except (FileNotFoundError, SqlAdminError) as e:
            err_console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=2) from e
        instances.extend(targets)

    if not instances:
        err_console.print("[red]Error:[/red] specify --sql-instance or --all-targets")
        raise typer.Exit(code=2)

    sql_cred = load_credential(container, sql_credential)
    windows_cred = load_credential(container, windows_credential)

    try:
        result = container.uptime_service.get_uptime(
            instances,
            sql_credential=sql_cred,
            windows_credential=windows_cred,
            enable_exception=enable_exception,
        )
    except SqlAdminError as e:
        fail_fast(e)

    finish(
        result,
        [report.to_record() for report in result.records],
        output_format,
        title="Uptime",
        export=export,
        command="uptime",
    )
