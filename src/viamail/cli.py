"""Root CLI group for viamail with global flags and command registration."""

from __future__ import annotations

import click

from viamail import __version__
from viamail.commands import register_commands
from viamail.commands._context import AppContext
from viamail.config.settings import ViaSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="viamail")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """viamail — email subject-line command channel for the back office."""
    ctx.ensure_object(dict)
    settings = ViaSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
