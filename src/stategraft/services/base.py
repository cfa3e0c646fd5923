"""BaseService — foundation for all stategraft services.

Every service receives a :class:`Workspace` at construction time. The
Workspace provides load/save access to the state file and the cached
dependency graph. Services own their transaction boundaries via
``self._workspace.transaction()``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stategraft.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from stategraft.domain.errors import StateGraphError
    from stategraft.domain.transform import TransformReport
    from stategraft.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class StateService(BaseService):
            def move(self, src: str, dst: str) -> ServiceResult:
                with self._workspace.transaction() as graph:
                    ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @staticmethod
    def _failure(op: str, exc: StateGraphError) -> ServiceResult:
        """Convert a domain exception into a failed result."""
        logger.debug("%s failed: [%s] %s", op, exc.code, exc.message)
        return ServiceResult(ok=False, op=op, error=ServiceError.from_exception(exc))

    @staticmethod
    def _error(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )

    def _meta(self) -> dict[str, Any]:
        return {"state": str(self._workspace.state_path)}

    def _resolve(self, path: str | Path) -> str | Path:
        """Resolve a config-supplied path against the workspace root."""
        if str(path) == "-" or Path(path).is_absolute():
            return path
        return self._workspace.settings.workspace_root / path

    @staticmethod
    def _report_data(report: TransformReport, *, dry_run: bool) -> dict[str, Any]:
        return {
            "moved": dict(sorted(report.moved.items())),
            "deleted": sorted(report.deleted),
            "superseded": dict(sorted(report.superseded.items())),
            "kept": report.kept,
            "changed": report.changed,
            "dry_run": dry_run,
        }
