"""Command: state integrity checking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stategraft.commands._base import GraftCommand

if TYPE_CHECKING:
    from stategraft.commands._context import AppContext


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft check
  stategraft check --errors-only
  stategraft --json check""",
)
@click.option(
    "--min-severity",
    type=click.Choice(["warning", "error"]),
    default="warning",
    help="Hide issues below this severity.",
)
@click.option("--errors-only", is_flag=True, help="Shortcut for --min-severity error.")
@click.pass_obj
def check(app: AppContext, min_severity: str, errors_only: bool) -> None:
    """Report malformed keys, bad dependency references, and cycles."""
    from stategraft.services.check import CheckService

    threshold = "error" if errors_only else min_severity
    app.emit(CheckService(app.workspace).check(min_severity=threshold))
