"""Command group: plan diff remapping and explanation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stategraft.commands._base import GraftGroup
from stategraft.services.diff import DiffService

if TYPE_CHECKING:
    from stategraft.commands._context import AppContext

_DIFF_EXAMPLES = """\
  stategraft diff transform plan.json renames.json
  stategraft diff transform plan.json renames.json -o - | less
  stategraft diff explain plan.json"""


@click.group(cls=GraftGroup, examples=_DIFF_EXAMPLES)
@click.pass_obj
def diff(app: AppContext) -> None:
    """Work with plan diff documents."""


@diff.command(
    "transform",
    examples="""\
  stategraft diff transform plan.json renames.json
  stategraft diff transform plan.json renames.yaml -o remapped.json
  stategraft diff transform plan.json renames.json -o -""",
)
@click.argument("diff_file")
@click.argument("mapping")
@click.option(
    "-o", "--output", default=None, help="Output file ('-' for stdout; default: in place)."
)
@click.pass_obj
def diff_transform(app: AppContext, diff_file: str, mapping: str, output: str | None) -> None:
    """Apply an address mapping to a plan diff."""
    result = DiffService(app.workspace).transform(diff_file, mapping, output=output)
    if result.ok and "document" in result.data and not app.settings.json_output:
        # The document itself is the output; keep stdout parseable.
        click.echo(result.data["document"], nl=False)
        return
    app.emit(result)


@diff.command(
    examples="""\
  stategraft diff explain plan.json
  stategraft -q diff explain plan.json"""
)
@click.argument("diff_file")
@click.pass_obj
def explain(app: AppContext, diff_file: str) -> None:
    """Explain how the recorded state differs from the configuration."""
    app.emit(DiffService(app.workspace).explain(diff_file))
