"""Workspace — owns the state file and coordinates load/mutate/save.

The Workspace is the single dependency injected into every service.
:meth:`Workspace.transaction` loads the state, yields it for in-place
mutation, and writes it back only if the block finishes without error:

- **State file**: written once at the end (serial incremented), after the
  previous file is copied to ``<path><backup_suffix>`` when backups are on.
- **Failure**: any exception inside the block leaves the file untouched.
- **Graph**: the NetworkX cache is invalidated on transaction end.
"""

from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from stategraft.domain.errors import DocumentError
from stategraft.domain.state import StateGraph, new_state
from stategraft.infrastructure.documents import read_state, write_state
from stategraft.infrastructure.graph.engine import GraphEngine

if TYPE_CHECKING:
    from collections.abc import Iterator

    from stategraft.config.settings import GraftSettings

logger = logging.getLogger(__name__)


class Workspace:
    """State file access for one invocation."""

    def __init__(self, settings: GraftSettings) -> None:
        self.settings = settings
        self._graph = GraphEngine(self.load)

    @property
    def state_path(self) -> Path:
        """Resolved state file path (relative paths are workspace-relative)."""
        path = Path(self.settings.state_path_setting)
        if not path.is_absolute():
            path = self.settings.workspace_root / path
        return path

    @property
    def backup_path(self) -> Path:
        return self.state_path.with_name(self.state_path.name + self.settings.state.backup_suffix)

    @property
    def graph(self) -> GraphEngine:
        return self._graph

    def exists(self) -> bool:
        return self.state_path.is_file()

    def load(self) -> StateGraph:
        """Read the state file.

        Raises:
            DocumentError: if the file is missing or invalid.
        """
        if not self.exists():
            msg = f"No state file at {self.state_path}"
            raise DocumentError(msg, path=str(self.state_path))
        return read_state(self.state_path)

    def save(self, graph: StateGraph) -> None:
        """Back up the current file, bump the serial, and write *graph*."""
        path = self.state_path
        if self.settings.state.backup and path.is_file():
            try:
                shutil.copy2(path, self.backup_path)
            except OSError as exc:
                msg = f"Cannot back up {path} to {self.backup_path}: {exc.strerror or exc}"
                raise DocumentError(msg, path=str(self.backup_path)) from exc
            logger.debug("Backed up %s to %s", path, self.backup_path)
        graph.serial += 1
        write_state(path, graph, indent=self.settings.state.indent)
        logger.debug("Wrote state serial=%d to %s", graph.serial, path)

    def init(self, lineage: str | None = None) -> StateGraph:
        """Create an empty state file. Refuses to overwrite."""
        if self.exists():
            msg = f"State file already exists at {self.state_path}"
            raise DocumentError(msg, path=str(self.state_path))
        graph = new_state(lineage)
        write_state(self.state_path, graph, indent=self.settings.state.indent)
        self._graph.invalidate()
        return graph

    @contextmanager
    def transaction(self, *, dry_run: bool = False) -> Iterator[StateGraph]:
        """Yield the loaded state; save it on success unless *dry_run*."""
        graph = self.load()
        try:
            yield graph
            if not dry_run:
                self.save(graph)
        finally:
            self._graph.invalidate()
