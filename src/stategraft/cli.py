"""Root CLI group for stategraft with global flags and command registration."""

from __future__ import annotations

import click

from stategraft import __version__
from stategraft.commands import register_commands
from stategraft.commands._context import AppContext
from stategraft.config.settings import GraftSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="stategraft")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-s", "--state", "state_file", default=None, help="State file (overrides [state] path)."
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    state_file: str | None,
) -> None:
    """stategraft — rewrite and repair infrastructure state graphs."""
    ctx.ensure_object(dict)
    settings = GraftSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        state_file=state_file,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
