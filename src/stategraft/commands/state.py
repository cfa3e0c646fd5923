"""Commands: state inspection and address-level rewrites."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stategraft.commands._base import GraftCommand, dry_run_option
from stategraft.services.state import StateService

if TYPE_CHECKING:
    from stategraft.commands._context import AppContext


@click.command(
    "init",
    cls=GraftCommand,
    examples="""\
  stategraft init
  stategraft --state envs/prod.tfstate init --lineage 6f1c2d3e-prod""",
)
@click.option("--lineage", default=None, help="Lineage for the new state (default: random UUID).")
@click.pass_obj
def init_cmd(app: AppContext, lineage: str | None) -> None:
    """Create an empty state file."""
    app.emit(StateService(app.workspace).init(lineage))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft show
  stategraft show module.network.aws_vpc.main
  stategraft --json show 'aws_instance.web[0]'""",
)
@click.argument("address", required=False)
@click.pass_obj
def show(app: AppContext, address: str | None) -> None:
    """List resources, or show one resource in detail."""
    app.emit(StateService(app.workspace).show(address))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft mv aws_instance.web aws_instance.frontend
  stategraft mv aws_vpc.main module.network.aws_vpc.main
  stategraft mv --dry-run 'aws_instance.web[0]' aws_instance.web""",
)
@click.argument("source")
@click.argument("destination")
@dry_run_option
@click.pass_obj
def mv(app: AppContext, source: str, destination: str, dry_run: bool) -> None:
    """Move a resource to a new address, rewiring its dependents."""
    app.emit(StateService(app.workspace).move(source, destination, dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft rm aws_instance.old
  stategraft rm aws_eip.a aws_eip.b --dry-run""",
)
@click.argument("addresses", nargs=-1, required=True)
@dry_run_option
@click.pass_obj
def rm(app: AppContext, addresses: tuple[str, ...], dry_run: bool) -> None:
    """Remove resources and every dependency on them."""
    app.emit(StateService(app.workspace).remove(list(addresses), dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft transform renames.json
  stategraft transform renames.yaml --dry-run
  cat renames.json | stategraft transform -""",
)
@click.argument("mapping")
@dry_run_option
@click.pass_obj
def transform(app: AppContext, mapping: str, dry_run: bool) -> None:
    """Apply a JSON/YAML address mapping (destination "" deletes)."""
    app.emit(StateService(app.workspace).transform(mapping, dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft normalize --dry-run
  stategraft --json normalize""",
)
@dry_run_option
@click.pass_obj
def normalize(app: AppContext, dry_run: bool) -> None:
    """Rename managed resources after their provider and ID."""
    app.emit(StateService(app.workspace).normalize(dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft merge imported.tfstate
  stategraft merge - < imported.tfstate""",
)
@click.argument("other")
@dry_run_option
@click.pass_obj
def merge(app: AppContext, other: str, dry_run: bool) -> None:
    """Add resources from another state whose keys are not present yet."""
    app.emit(StateService(app.workspace).merge(other, dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft subtract managed-elsewhere.tfstate""",
)
@click.argument("other")
@dry_run_option
@click.pass_obj
def subtract(app: AppContext, other: str, dry_run: bool) -> None:
    """Remove resources whose keys appear in another state."""
    app.emit(StateService(app.workspace).subtract(other, dry_run=dry_run))


@click.command(
    "clear-deps",
    cls=GraftCommand,
    examples="""\
  stategraft clear-deps
  stategraft clear-deps && stategraft infer rules/aws.yaml""",
)
@dry_run_option
@click.pass_obj
def clear_deps(app: AppContext, dry_run: bool) -> None:
    """Remove every dependency edge from the state."""
    app.emit(StateService(app.workspace).clear_deps(dry_run=dry_run))


@click.command(
    cls=GraftCommand,
    examples="""\
  stategraft invert renames.json
  stategraft invert renames.json -o undo.json""",
)
@click.argument("mapping")
@click.option("-o", "--output", default=None, help="Write the inverse mapping to this file.")
@click.pass_obj
def invert(app: AppContext, mapping: str, output: str | None) -> None:
    """Print the mapping that undoes a transform."""
    app.emit(StateService(app.workspace).invert(mapping, output=output))
