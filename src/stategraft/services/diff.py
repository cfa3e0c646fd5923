"""DiffService — plan diff remapping and explanation.

Plan diffs are standalone documents; these operations never touch the
workspace state file.
"""

from __future__ import annotations

from pathlib import Path

from stategraft.domain.diff import ChangeType, explain_diff
from stategraft.domain.errors import StateGraphError
from stategraft.infrastructure.documents import dump_diff, read_diff, read_transform, write_diff
from stategraft.services.base import BaseService
from stategraft.services.result import ServiceResult


class DiffService(BaseService):
    """Rewrites and explains plan diff documents."""

    def transform(
        self,
        diff_path: str | Path,
        mapping: str | Path,
        *,
        output: str | Path | None = None,
    ) -> ServiceResult:
        """Apply a transform rule file to the addresses in a plan diff.

        The result is written to *output* (default: in place). When
        *output* is ``"-"`` the minified document is returned in
        ``data["document"]`` instead of written.
        """
        target = output if output is not None else diff_path
        try:
            diff = read_diff(diff_path)
            transform = read_transform(mapping)
            report = transform.apply_to_diff(diff)
            diff.normalize()
            if str(target) == "-":
                document = dump_diff(diff)
            else:
                write_diff(target, diff)
                document = None
        except StateGraphError as exc:
            return self._failure("diff_transform", exc)

        data = self._report_data(report, dry_run=False)
        del data["dry_run"]
        data["output"] = str(target)
        if document is not None:
            data["document"] = document
        return ServiceResult(ok=True, op="diff_transform", data=data)

    def explain(self, diff_path: str | Path) -> ServiceResult:
        """Describe missing, extra, and mismatched resources in a plan diff."""
        try:
            diff = read_diff(diff_path)
        except StateGraphError as exc:
            return self._failure("explain", exc)

        counts = dict.fromkeys((ChangeType.CREATE, ChangeType.DESTROY, ChangeType.UPDATE), 0)
        for module in diff.modules:
            for d in module.resources.values():
                change = d.change_type
                if change is ChangeType.DESTROY_CREATE:
                    change = ChangeType.UPDATE
                if change in counts:
                    counts[change] += 1

        return ServiceResult(
            ok=True,
            op="explain",
            data={
                "source": str(diff_path),
                "empty": diff.is_empty,
                "missing": counts[ChangeType.CREATE],
                "extra": counts[ChangeType.DESTROY],
                "mismatched": counts[ChangeType.UPDATE],
                "explanation": explain_diff(diff),
            },
        )
