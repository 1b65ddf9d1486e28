"""
credential commands.

`credential set` writes config/credentials/<ref>.json, encrypted with
the master password when one is available.
"""

import os

import typer
from pydantic import SecretStr, ValidationError

from sqladminops.domain.config import Credential
from sqladminops.domain.errors import ConfigurationError
from sqladminops.infrastructure.config.credential_manager import MASTER_PASSWORD_ENV
from sqladminops.interface.cli.commands.common import get_container
from sqladminops.interface.cli.formatters.result_formatters import err_console

credential_app = typer.Typer(name="credential", help="Manage stored credentials", no_args_is_help=True)


@credential_app.command("set")
def set_credential(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Credential reference (file name without .json)"),
    username: str = typer.Option(..., "--username", "-u", help="Login or DOMAIN\\user"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True,
        help="Password (prompted when omitted)",
    ),
    plain: bool = typer.Option(False, "--plain", help=f"Store unencrypted (no {MASTER_PASSWORD_ENV} needed)"),
):
    """
    Store a credential for --sql-credential / --windows-credential.
    """
    container = get_container(ctx)
    manager = container.config_manager.credential_manager

    if not plain and not manager.master_password and not os.environ.get(MASTER_PASSWORD_ENV):
        err_console.print(f"[red]Error:[/red] set {MASTER_PASSWORD_ENV} or pass --plain")
        raise typer.Exit(code=2)

    try:
        credential = Credential(username=username, password=SecretStr(password))
        manager.save(ref, credential, encrypt=not plain)
    except (ValidationError, ConfigurationError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=2) from e

    err_console.print(f"[green]Saved credential '{ref}'[/green]")
