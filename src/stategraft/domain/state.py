"""State graph model — modules, resource records, and dependency edges.

A :class:`StateGraph` is an ordered list of :class:`ModuleState` objects,
each mapping state keys to :class:`ResourceRecord` objects. Dependency
edges are state keys of sibling records in the same module.

The model is deliberately plain mutable data: the transform and
inference engines mutate it in place, and the caller owns it.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from stategraft.domain.addressing import ModulePath, module_sort_key, normalize_path
from stategraft.domain.errors import StateInvariantError

STATE_VERSION = 3


@dataclass
class ResourceRecord:
    """One tracked infrastructure object.

    Identity (mode, type, name, index) lives in the state key the record
    is stored under; ``type`` here is the schema type used for inference.
    """

    type: str
    provider: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        """Primary resource ID (``attributes["id"]``), or ``""``."""
        value = self.attributes.get("id")
        return "" if value is None else str(value)


@dataclass
class ModuleState:
    """Records of one module, keyed by state key."""

    path: ModulePath
    resources: dict[str, ResourceRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.path = normalize_path(self.path)

    def add(self, key: str, record: ResourceRecord) -> None:
        """Insert *record* under *key*, refusing to overwrite."""
        if key in self.resources:
            msg = f"Duplicate state key {key!r} in module {'.'.join(self.path)}"
            raise StateInvariantError(msg, key=key, path=list(self.path))
        self.resources[key] = record

    def remove(self, key: str) -> ResourceRecord | None:
        """Remove and return the record under *key*, if any."""
        return self.resources.pop(key, None)

    def clear_resources(self) -> None:
        """Discard every record, keeping the module itself."""
        self.resources.clear()

    @property
    def is_empty(self) -> bool:
        return not self.resources


@dataclass
class StateGraph:
    """Versioned state document: lineage, serial, and ordered modules."""

    version: int = STATE_VERSION
    serial: int = 0
    lineage: str = ""
    modules: list[ModuleState] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Module access
    # ------------------------------------------------------------------

    @property
    def root_module(self) -> ModuleState:
        return self.ensure_module(())

    def module(self, path: Sequence[str] | None) -> ModuleState | None:
        """Return the module at *path*, or None."""
        norm = normalize_path(path)
        for module in self.modules:
            if module.path == norm:
                return module
        return None

    def ensure_module(self, path: Sequence[str] | None) -> ModuleState:
        """Return the module at *path*, creating an empty one if needed."""
        module = self.module(path)
        if module is None:
            module = ModuleState(path=normalize_path(path))
            self.modules.append(module)
        return module

    def add_module(self, module: ModuleState) -> None:
        """Append an existing module object. Paths must stay unique."""
        if self.module(module.path) is not None:
            msg = f"Module {'.'.join(module.path)} already exists"
            raise StateInvariantError(msg, path=list(module.path))
        self.modules.append(module)

    def sort_modules(self) -> None:
        """Order modules root first, then by path."""
        self.modules.sort(key=lambda m: module_sort_key(m.path))

    def iter_resources(self) -> Iterator[tuple[ModuleState, str, ResourceRecord]]:
        """Yield ``(module, key, record)`` in module order, keys sorted."""
        for module in self.modules:
            for key in sorted(module.resources):
                yield module, key, module.resources[key]

    @property
    def resource_count(self) -> int:
        return sum(len(m.resources) for m in self.modules)

    # ------------------------------------------------------------------
    # Whole-graph operations
    # ------------------------------------------------------------------

    def deep_copy(self) -> StateGraph:
        return copy.deepcopy(self)

    def merge(self, other: StateGraph) -> StateGraph:
        """``self += other``: copy in records whose keys are not present yet."""
        for src in other.modules:
            dst = self.module(src.path)
            if dst is None:
                self.modules.append(copy.deepcopy(src))
                continue
            for key, record in src.resources.items():
                if key not in dst.resources:
                    dst.resources[key] = copy.deepcopy(record)
        return self

    def subtract(self, other: StateGraph) -> StateGraph:
        """``self -= other``: drop records whose keys appear in *other*."""
        for src in other.modules:
            dst = self.module(src.path)
            if dst is None:
                continue
            for key in src.resources:
                dst.resources.pop(key, None)
        return self

    def clear_dependencies(self) -> None:
        for module in self.modules:
            for record in module.resources.values():
                record.dependencies.clear()


def new_state(lineage: str | None = None) -> StateGraph:
    """Create an empty graph with a root module and a fresh lineage."""
    graph = StateGraph(lineage=lineage or str(uuid.uuid4()))
    graph.ensure_module(())
    return graph
