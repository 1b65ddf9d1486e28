"""
login commands.

`login list` prints login records that `grant-ag-permission --input`
accepts back.
"""

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

login_app = typer.Typer(name="login", help="Inspect server logins", no_args_is_help=True)


@login_app.command("list")
def list_logins(
    ctx: typer.Context,
    sql_instance: List[str] = typer.Option(..., "--sql-instance", "-S", help="Target instance; repeatable"),
    login: Optional[List[str]] = typer.Option(None, "--login", "-l", help="Only these logins"),
    sql_credential: Optional[str] = typer.Option(
        None, "--sql-credential", "-C", help="Credential reference for SQL authentication"
    ),
    enable_exception: bool = typer.Option(False, "--enable-exception"),
    output_format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", case_sensitive=False),
):
    """
    List the logins of one or more instances.
    """
    container = get_container(ctx)
    credential = load_credential(container, sql_credential)
    service = container.permission_service

    try:
        result = service.list_logins(sql_instance, credential, login or [], enable_exception)
    except SqlAdminError as e:
        fail_fast(e)

    records = [item.to_record() for item in result.records]
    service.close_sessions(result.records)
    finish(result, records, output_format, title="Logins", export=None, command="login list")
