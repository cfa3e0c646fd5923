"""Command: rule-driven dependency inference."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stategraft.commands._base import GraftCommand, dry_run_option
from stategraft.domain.types import AmbiguityPolicy

if TYPE_CHECKING:
    from stategraft.commands._context import AppContext


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft infer rules/aws.yaml
  stategraft infer rules/aws.yaml rules/extra.json --ambiguity skip
  stategraft infer --dry-run          # rule files from [infer] rules""",
)
@click.argument("rules", nargs=-1)
@click.option(
    "--ambiguity",
    type=click.Choice([p.value for p in AmbiguityPolicy]),
    default=None,
    help="Multi-valued source attributes: abort (strict) or skip the spec.",
)
@dry_run_option
@click.pass_obj
def infer(app: AppContext, rules: tuple[str, ...], ambiguity: str | None, dry_run: bool) -> None:
    """Add dependency edges inferred from attribute values."""
    from stategraft.services.infer import InferService

    policy = AmbiguityPolicy(ambiguity) if ambiguity else None
    app.emit(InferService(app.workspace).infer(list(rules), policy=policy, dry_run=dry_run))
