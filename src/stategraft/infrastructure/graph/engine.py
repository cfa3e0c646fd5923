"""GraphEngine — lazy-built NetworkX view of a state graph.

Nodes are canonical resource addresses; an edge ``a -> b`` means ``a``
depends on ``b``. Dependency keys that do not resolve to a sibling
record are left out (see ``CheckService`` for reporting them).
Rebuilt per invocation, invalidated whenever the workspace writes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import networkx as nx

from stategraft.domain.addressing import to_address
from stategraft.domain.errors import KeyParseError

if TYPE_CHECKING:
    from stategraft.domain.state import StateGraph

type _Graph = nx.DiGraph


def build_dependency_graph(state: StateGraph) -> _Graph:
    """Build a DiGraph of every record and its resolvable dependencies.

    Records with malformed keys are skipped.
    """
    g: _Graph = nx.DiGraph()
    for module in state.modules:
        addresses: dict[str, str] = {}
        for key, record in module.resources.items():
            try:
                address = to_address(module.path, key)
            except KeyParseError:
                continue
            addresses[key] = address
            g.add_node(
                address,
                key=key,
                type=record.type,
                module=".".join(module.path),
            )
        for key, record in module.resources.items():
            if key not in addresses:
                continue
            for dep in record.dependencies:
                if dep in addresses and dep != key:
                    g.add_edge(addresses[key], addresses[dep])
    return g


class GraphEngine:
    """Lazy-loading dependency graph over a state loader."""

    def __init__(self, loader: Callable[[], StateGraph]) -> None:
        self._loader = loader
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, loading the state on first access."""
        if self._graph is None:
            self._graph = build_dependency_graph(self._loader())
        return self._graph

    def invalidate(self) -> None:
        """Clear the cached graph, forcing a rebuild on next access."""
        self._graph = None
