"""InferService — recover dependency edges from rule tables.

Rule files come from the command line or, when none are given, from
``[infer] rules`` in ``stategraft.toml`` (resolved against the workspace
root). Several files are merged; a resource type defined twice is an
error.
"""

from __future__ import annotations

from pathlib import Path

from stategraft.domain.errors import StateGraphError
from stategraft.domain.types import AmbiguityPolicy
from stategraft.infrastructure.documents import read_depmap
from stategraft.services.base import BaseService
from stategraft.services.result import ServiceResult


class InferService(BaseService):
    """Adds inferred dependency edges to the workspace state."""

    def infer(
        self,
        rules: list[str | Path] | None = None,
        *,
        policy: AmbiguityPolicy | None = None,
        dry_run: bool = False,
    ) -> ServiceResult:
        """Run dependency inference over every module of the state.

        Args:
            rules: Rule-table files; defaults to ``[infer] rules``.
            policy: Ambiguous-source handling; defaults to ``[infer] ambiguity``.
            dry_run: Compute the edges without writing the state file.
        """
        config = self._workspace.settings.infer
        sources = list(rules) if rules else [self._resolve(r) for r in config.rules]
        if not sources:
            return self._error(
                "infer",
                "NO_RULES",
                "No rule tables given and none configured under [infer] rules",
            )
        policy = policy or config.ambiguity

        try:
            depmap = read_depmap(sources)
            with self._workspace.transaction(dry_run=dry_run) as graph:
                report = depmap.infer(graph, policy=policy)
        except StateGraphError as exc:
            return self._failure("infer", exc)

        warnings = [
            f"Skipped {s['attr']} on {s['address']}: {s['reason']}" for s in report.skipped
        ]
        return ServiceResult(
            ok=True,
            op="infer",
            data={
                "added": report.added,
                "edge_count": report.edge_count,
                "resources": len(report.added),
                "skipped": report.skipped,
                "rules": [str(s) for s in sources],
                "policy": str(policy),
                "dry_run": dry_run,
            },
            warnings=warnings,
            meta=self._meta(),
        )
