"""Command group: dependency graph traversal."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from stategraft.commands._base import GraftGroup
from stategraft.services.graph import GraphService

if TYPE_CHECKING:
    from stategraft.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  stategraft graph order
  stategraft graph dependents aws_vpc.main
  stategraft graph dependencies module.app.aws_instance.web --direct"""


@click.group(cls=GraftGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Query the resource dependency graph."""


@graph.command(
    examples="""\
  stategraft graph order
  stategraft -q graph order"""
)
@click.pass_obj
def order(app: AppContext) -> None:
    """List resources dependencies-first."""
    app.emit(GraphService(app.workspace).order())


@graph.command(
    examples="""\
  stategraft graph dependents aws_vpc.main
  stategraft --json graph dependents aws_subnet.a --direct"""
)
@click.argument("address")
@click.option("--direct", is_flag=True, help="Only immediate dependents.")
@click.pass_obj
def dependents(app: AppContext, address: str, direct: bool) -> None:
    """Resources that depend on ADDRESS."""
    app.emit(GraphService(app.workspace).dependents(address, direct=direct))


@graph.command(
    examples="""\
  stategraft graph dependencies aws_instance.web
  stategraft graph dependencies aws_instance.web --direct"""
)
@click.argument("address")
@click.option("--direct", is_flag=True, help="Only immediate dependencies.")
@click.pass_obj
def dependencies(app: AppContext, address: str, direct: bool) -> None:
    """Resources ADDRESS depends on."""
    app.emit(GraphService(app.workspace).dependencies(address, direct=direct))
