"""Root CLI group for minicrm with global flags and command registration."""

from __future__ import annotations

import click

from minicrm import __version__
from minicrm.commands import register_commands
from minicrm.commands._context import AppContext
from minicrm.config.settings import CrmSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="minicrm")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--db", "db_path", default=None, help="Override the database file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    db_path: str | None,
) -> None:
    """minicrm — customers and suppliers from the command line."""
    settings = CrmSettings.from_cli(
        config_path=config_path,
        db_path=db_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
