"""CheckService — state integrity report.

Single read-only command following the linter pattern. Three
categories: state keys, dependency references, and graph health
(dependency cycles via NetworkX).
"""

from __future__ import annotations

from collections import Counter
from typing import Any

import networkx as nx

from stategraft.domain.addressing import parse_state_key, to_address
from stategraft.domain.errors import KeyParseError, StateGraphError
from stategraft.domain.state import ModuleState, StateGraph
from stategraft.services.base import BaseService
from stategraft.services.result import ServiceResult

# ---------------------------------------------------------------------------
# Issue severity and category constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_KEYS = "state_keys"
CAT_DEPS = "dependencies"
CAT_GRAPH = "graph_health"

_SEVERITY_RANK = {SEVERITY_WARNING: 0, SEVERITY_ERROR: 1}


def _issue(category: str, severity: str, address: str, message: str) -> dict[str, Any]:
    return {"category": category, "severity": severity, "address": address, "message": message}


class CheckService(BaseService):
    """Reports structural problems in the workspace state."""

    def check(self, *, min_severity: str = SEVERITY_WARNING) -> ServiceResult:
        """Report integrity issues without modifying anything."""
        try:
            graph = self._workspace.load()
            issues: list[dict[str, Any]] = []
            for module in graph.modules:
                issues.extend(self._check_keys(module))
                issues.extend(self._check_dependencies(graph, module))
            issues.extend(self._check_cycles())
        except StateGraphError as exc:
            return self._failure("check", exc)

        threshold = _SEVERITY_RANK.get(min_severity, 0)
        issues = [i for i in issues if _SEVERITY_RANK[i["severity"]] >= threshold]
        return ServiceResult(
            ok=True,
            op="check",
            data={"issues": issues, "count": len(issues)},
            meta=self._meta(),
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @staticmethod
    def _check_keys(module: ModuleState) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        where = ".".join(module.path)
        for key in sorted(module.resources):
            try:
                parse_state_key(key)
            except KeyParseError as exc:
                issues.append(_issue(CAT_KEYS, SEVERITY_ERROR, f"{where}:{key}", exc.message))
        return issues

    @staticmethod
    def _check_dependencies(graph: StateGraph, module: ModuleState) -> list[dict[str, Any]]:
        issues: list[dict[str, Any]] = []
        where = ".".join(module.path)
        for key in sorted(module.resources):
            try:
                address = to_address(module.path, key)
            except KeyParseError:
                continue  # reported by _check_keys
            deps = module.resources[key].dependencies

            for dep, n in sorted(Counter(deps).items()):
                if n > 1:
                    msg = f"Dependency {dep!r} listed {n} times"
                    issues.append(_issue(CAT_DEPS, SEVERITY_WARNING, address, msg))

            for dep in sorted(set(deps)):
                if dep == key:
                    issues.append(_issue(CAT_DEPS, SEVERITY_WARNING, address, "Depends on itself"))
                    continue
                if dep in module.resources:
                    continue
                try:
                    parse_state_key(dep)
                except KeyParseError:
                    msg = f"Malformed dependency key {dep!r}"
                    issues.append(_issue(CAT_DEPS, SEVERITY_ERROR, address, msg))
                    continue
                elsewhere = [
                    ".".join(m.path)
                    for m in graph.modules
                    if m is not module and dep in m.resources
                ]
                if elsewhere:
                    msg = (
                        f"Dependency {dep!r} is not in module {where} "
                        f"(found in {', '.join(elsewhere)}); transforms will drop it"
                    )
                else:
                    msg = f"Dangling dependency {dep!r}; transforms will drop it"
                issues.append(_issue(CAT_DEPS, SEVERITY_WARNING, address, msg))
        return issues

    def _check_cycles(self) -> list[dict[str, Any]]:
        g = self._workspace.graph.graph
        issues: list[dict[str, Any]] = []
        cycles = []
        for cycle in nx.simple_cycles(g):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        for cycle in sorted(cycles):
            chain = " -> ".join([*cycle, cycle[0]])
            issues.append(_issue(CAT_GRAPH, SEVERITY_ERROR, cycle[0], f"Dependency cycle: {chain}"))
        return issues
