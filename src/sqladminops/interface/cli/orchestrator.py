"""
CLI Orchestrator - root Typer app.

Wires the command functions and sub-apps together and sets up logging
and the dependency container for every invocation.
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from sqladminops import __version__
from sqladminops.application.container import Container
from sqladminops.infrastructure.logging_config import setup_logging
from sqladminops.interface.cli.commands.credential import credential_app
from sqladminops.interface.cli.commands.grant_ag_permission import grant_ag_permission
from sqladminops.interface.cli.commands.login import login_app
from sqladminops.interface.cli.commands.uptime import show_uptime

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="sqladminops",
    help="SQL Server administrative automation",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sqladminops {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a debug log to this file"),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Directory holding settings.json, sql_targets.json and credentials/"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    """
    SqlAdminOps - grant availability group permissions and report uptime
    across SQL Server instances.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)
    if ctx.obj is None:
        ctx.obj = Container(config_dir)


app.command("grant-ag-permission")(grant_ag_permission)
app.command("uptime")(show_uptime)
app.add_typer(login_app, name="login")
app.add_typer(credential_app, name="credential")
