"""
grant-ag-permission command.

Grants endpoint and/or availability group permissions to logins.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer

from sqladminops.domain.errors import SqlAdminError
from sqladminops.domain.models import GrantType, Permission
from sqladminops.interface.cli.commands.common import (
    fail_fast,
    finish,
    get_container,
    load_credential,
)
from sqladminops.interface.cli.formatters import OutputFormat
from sqladminops.interface.cli.formatters.result_formatters import err_console


def _read_input_records(source: str) -> list:
    """Login records from a JSON array, or one JSON object per line."""
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    text = text.strip()
    if not text:
        return []
    if text.startswith("["):
        return json.loads(text)
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def grant_ag_permission(
    ctx: typer.Context,
    sql_instance: Optional[List[str]] = typer.Option(
        None, "--sql-instance", "-S", help="Target instance (HOST, HOST\\INSTANCE, HOST,PORT); repeatable"
    ),
    grant_type: List[GrantType] = typer.Option(
        ..., "--type", "-t", case_sensitive=False, help="Endpoint and/or AvailabilityGroup; repeatable"
    ),
    login: Optional[List[str]] = typer.Option(
        None, "--login", "-l", help="Login to grant to; missing DOMAIN\\name logins are created"
    ),
    availability_group: Optional[List[str]] = typer.Option(
        None, "--availability-group", "-a", help="Availability group name; repeatable"
    ),
    permission: Optional[List[Permission]] = typer.Option(
        None, "--permission", "-p", case_sensitive=False, help="Permission to grant (default: Connect)"
    ),
    sql_credential: Optional[str] = typer.Option(
        None, "--sql-credential", "-C", help="Credential reference for SQL authentication"
    ),
    input_path: Optional[str] = typer.Option(
        None, "--input", help="Login records from 'login list -f json' (file path or '-' for stdin)"
    ),
    what_if: bool = typer.Option(False, "--what-if", help="Show what would be granted without doing it"),
    enable_exception: bool = typer.Option(
        False, "--enable-exception", help="Stop on the first error instead of warning and continuing"
    ),
    output_format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", case_sensitive=False),
    export: Optional[Path] = typer.Option(None, "--export", help="Also write the results to an .xlsx file"),
):
    """
    Grant endpoint or availability group permissions to logins.
    """
    container = get_container(ctx)
    credential = load_credential(container, sql_credential)
    service = container.permission_service

    input_objects = []
    try:
        if input_path:
            try:
                records = _read_input_records(input_path)
            except (OSError, ValueError) as e:
                err_console.print(f"[red]Error:[/red] cannot read login records from {input_path}: {e}")
                raise typer.Exit(code=2) from e
            resolved = service.resolve_input_logins(records, credential, enable_exception)
            input_objects = resolved.records

        result = service.grant(
            instances=sql_instance or [],
            grant_types=grant_type,
            sql_credential=credential,
            logins=login or [],
            availability_groups=availability_group or [],
            permissions=permission or [Permission.CONNECT],
            input_objects=input_objects,
            what_if=what_if,
            enable_exception=enable_exception,
        )
        if input_path:
            result.errors[:0] = resolved.errors
    except SqlAdminError as e:
        fail_fast(e)
    finally:
        service.close_sessions(input_objects)

    finish(
        result,
        [record.to_record() for record in result.records],
        output_format,
        title="Grants",
        export=export,
        command="grant-ag-permission",
    )
