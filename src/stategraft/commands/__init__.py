"""Subcommand modules for stategraft.

Provides register_commands() which uses deferred imports to keep
``stategraft --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group.

    2 groups (have subcommands) + 12 standalone commands.
    """
    # --- Groups ---
    from stategraft.commands.diff import diff
    from stategraft.commands.graph import graph

    cli.add_command(graph)
    cli.add_command(diff)

    # --- Standalone commands ---
    from stategraft.commands.check import check
    from stategraft.commands.infer import infer
    from stategraft.commands.state import (
        clear_deps,
        init_cmd,
        invert,
        merge,
        mv,
        normalize,
        rm,
        show,
        subtract,
        transform,
    )

    cli.add_command(init_cmd)
    cli.add_command(show)
    cli.add_command(mv)
    cli.add_command(rm)
    cli.add_command(transform)
    cli.add_command(normalize)
    cli.add_command(merge)
    cli.add_command(subtract)
    cli.add_command(clear_deps)
    cli.add_command(invert)
    cli.add_command(infer)
    cli.add_command(check)
