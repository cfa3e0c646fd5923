"""GraphService — dependency graph traversal.

Read-only algorithms via NetworkX computed on the lazy-built DiGraph.
Uses ``self._workspace.graph.graph`` to access the graph (triggers lazy
build). An edge ``a -> b`` means ``a`` depends on ``b``.
"""

from __future__ import annotations

from typing import Any

import networkx as nx

from stategraft.domain.addressing import canonical_address
from stategraft.domain.errors import StateGraphError
from stategraft.services.base import BaseService
from stategraft.services.result import ServiceResult


class GraphService(BaseService):
    """Handles dependency graph queries."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _items(g: nx.DiGraph, addresses: list[str]) -> list[dict[str, Any]]:
        return [
            {
                "address": address,
                "type": g.nodes[address].get("type", ""),
                "module": g.nodes[address].get("module", ""),
            }
            for address in addresses
        ]

    # ------------------------------------------------------------------
    # order: dependency-first topological sort
    # ------------------------------------------------------------------

    def order(self) -> ServiceResult:
        """List every resource so that each comes after its dependencies.

        Ties are broken by address, so the order is stable across runs.
        """
        try:
            g = self._workspace.graph.graph
        except StateGraphError as exc:
            return self._failure("order", exc)

        try:
            ordered = list(nx.lexicographical_topological_sort(g.reverse(copy=False)))
        except nx.NetworkXUnfeasible:
            return self._error(
                "order",
                "CYCLE",
                "Dependency graph has cycles; run `stategraft check` for details",
            )

        items = self._items(g, ordered)
        for position, item in enumerate(items, start=1):
            item["position"] = position
        return ServiceResult(
            ok=True,
            op="order",
            data={"count": len(items), "items": items},
        )

    # ------------------------------------------------------------------
    # dependents / dependencies: reachability
    # ------------------------------------------------------------------

    def dependents(self, address: str, *, direct: bool = False) -> ServiceResult:
        """Resources that depend on *address* (transitively unless *direct*)."""
        return self._reach("dependents", address, direct=direct, upstream=True)

    def dependencies(self, address: str, *, direct: bool = False) -> ServiceResult:
        """Resources *address* depends on (transitively unless *direct*)."""
        return self._reach("dependencies", address, direct=direct, upstream=False)

    def _reach(self, op: str, address: str, *, direct: bool, upstream: bool) -> ServiceResult:
        try:
            node = canonical_address(address)
            g = self._workspace.graph.graph
        except StateGraphError as exc:
            return self._failure(op, exc)

        if node not in g:
            return self._error(op, "NOT_FOUND", f"No resource at {node!r}", address=node)

        if direct:
            found = set(g.predecessors(node) if upstream else g.successors(node))
        else:
            found = nx.ancestors(g, node) if upstream else nx.descendants(g, node)
        items = self._items(g, sorted(found))
        return ServiceResult(
            ok=True,
            op=op,
            data={"address": node, "direct": direct, "count": len(items), "items": items},
        )
