"""StateService — state inspection and address-level mutations.

Every mutation runs inside ``Workspace.transaction()``: the state file is
rewritten (with a backup and a bumped serial) only when the whole
operation succeeds, and never on ``dry_run``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from stategraft.domain.addressing import canonical_address, to_address
from stategraft.domain.attributes import encode_value
from stategraft.domain.errors import ResourceNotFoundError, StateGraphError
from stategraft.domain.names import NameNormalizer
from stategraft.domain.state import ResourceRecord, StateGraph
from stategraft.domain.transform import StateTransform, normalize_state_keys
from stategraft.infrastructure.documents import read_state, read_transform, write_text
from stategraft.services.base import BaseService
from stategraft.services.result import ServiceResult

logger = logging.getLogger(__name__)


def _addresses(graph: StateGraph) -> set[str]:
    return {to_address(module.path, key) for module, key, _ in graph.iter_resources()}


def _resource_item(address: str, record: ResourceRecord) -> dict[str, Any]:
    return {
        "address": address,
        "type": record.type,
        "provider": record.provider,
        "id": record.id,
        "dependencies": list(record.dependencies),
    }


class StateService(BaseService):
    """Inspects and rewrites the workspace state file."""

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    def show(self, address: str | None = None) -> ServiceResult:
        """List every resource, or describe the one at *address*."""
        op = "show" if address is None else "show_resource"
        try:
            graph = self._workspace.load()
            if address is not None:
                return self._show_one(graph, canonical_address(address))
            items = [
                _resource_item(to_address(module.path, key), record)
                for module, key, record in graph.iter_resources()
            ]
        except StateGraphError as exc:
            return self._failure(op, exc)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "version": graph.version,
                "serial": graph.serial,
                "lineage": graph.lineage,
                "modules": len(graph.modules),
                "count": len(items),
                "items": items,
            },
            meta=self._meta(),
        )

    def _show_one(self, graph: StateGraph, address: str) -> ServiceResult:
        for module, key, record in graph.iter_resources():
            if to_address(module.path, key) != address:
                continue
            data = _resource_item(address, record)
            data["module"] = ".".join(module.path)
            data["key"] = key
            data["attributes"] = encode_value(record.attributes)
            return ServiceResult(ok=True, op="show_resource", data=data, meta=self._meta())
        return self._error(
            "show_resource", "NOT_FOUND", f"No resource at {address!r}", address=address
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, lineage: str | None = None) -> ServiceResult:
        """Create an empty state file."""
        try:
            graph = self._workspace.init(lineage)
        except StateGraphError as exc:
            return self._failure("init", exc)
        return ServiceResult(
            ok=True,
            op="init",
            data={"path": str(self._workspace.state_path), "lineage": graph.lineage},
        )

    # ------------------------------------------------------------------
    # Address mutations
    # ------------------------------------------------------------------

    def move(self, src: str, dst: str, *, dry_run: bool = False) -> ServiceResult:
        """Rename or relocate one resource, rewiring its dependents.

        Moving onto an existing resource replaces it; the replaced
        resource's dependents then depend on the moved one.
        """
        try:
            source = canonical_address(src)
            target = canonical_address(dst)
            if not target:
                return self._error(
                    "move", "INCOMPLETE_ADDRESS", "Destination address must not be empty"
                )
            with self._workspace.transaction(dry_run=dry_run) as graph:
                if source not in _addresses(graph):
                    msg = f"No resource at {source!r}"
                    raise ResourceNotFoundError(msg, address=source)
                report = StateTransform({source: target}).apply(graph)
        except StateGraphError as exc:
            return self._failure("move", exc)

        warnings = [f"{old} was replaced by {new}" for old, new in report.superseded.items()]
        return ServiceResult(
            ok=True,
            op="move",
            data=self._report_data(report, dry_run=dry_run),
            warnings=warnings,
            meta=self._meta(),
        )

    def remove(self, addresses: list[str], *, dry_run: bool = False) -> ServiceResult:
        """Delete resources; dependencies on them are dropped."""
        warnings: list[str] = []
        try:
            transform = StateTransform({canonical_address(a): "" for a in addresses})
            with self._workspace.transaction(dry_run=dry_run) as graph:
                present = _addresses(graph)
                for address in sorted(transform):
                    if address not in present:
                        warnings.append(f"No resource at {address!r}")
                report = transform.apply(graph)
        except StateGraphError as exc:
            return self._failure("remove", exc)

        return ServiceResult(
            ok=True,
            op="remove",
            data=self._report_data(report, dry_run=dry_run),
            warnings=warnings,
            meta=self._meta(),
        )

    def transform(self, mapping: str | Path, *, dry_run: bool = False) -> ServiceResult:
        """Apply a transform rule file (JSON or YAML) to the state."""
        try:
            transform = read_transform(mapping)
            with self._workspace.transaction(dry_run=dry_run) as graph:
                report = transform.apply(graph)
        except StateGraphError as exc:
            return self._failure("transform", exc)

        return ServiceResult(
            ok=True,
            op="transform",
            data=self._report_data(report, dry_run=dry_run),
            meta=self._meta(),
        )

    def normalize(self, *, dry_run: bool = False) -> ServiceResult:
        """Rename managed resources after their IDs.

        Whether the provider name prefixes the ID follows
        ``[transform] normalize_provider_prefix``.
        """
        include_provider = self._workspace.settings.transform.normalize_provider_prefix
        try:
            with self._workspace.transaction(dry_run=dry_run) as graph:
                transform = normalize_state_keys(
                    graph, NameNormalizer(), include_provider=include_provider
                )
                report = transform.apply(graph)
        except StateGraphError as exc:
            return self._failure("normalize", exc)

        data = self._report_data(report, dry_run=dry_run)
        data["mapping"] = dict(sorted(transform.items()))
        return ServiceResult(ok=True, op="normalize", data=data, meta=self._meta())

    def invert(self, mapping: str | Path, *, output: str | Path | None = None) -> ServiceResult:
        """Compute the reverse of a transform rule file.

        The inverse is written to *output* as JSON when given.
        """
        try:
            inverse = read_transform(mapping).inverse()
            if inverse is None:
                return self._error(
                    "invert",
                    "NOT_INVERTIBLE",
                    "Transform deletes resources or maps two sources to one destination",
                    mapping=str(mapping),
                )
            ordered = dict(sorted(inverse.items()))
            if output is not None:
                write_text(output, json.dumps(ordered, indent=2) + "\n")
        except StateGraphError as exc:
            return self._failure("invert", exc)

        data: dict[str, Any] = {"mapping": ordered, "count": len(ordered)}
        if output is not None:
            data["output"] = str(output)
        return ServiceResult(ok=True, op="invert", data=data)

    # ------------------------------------------------------------------
    # Whole-state operations
    # ------------------------------------------------------------------

    def merge(self, other: str | Path, *, dry_run: bool = False) -> ServiceResult:
        """Copy in resources from another state whose keys are not present yet."""
        try:
            incoming = read_state(other)
            with self._workspace.transaction(dry_run=dry_run) as graph:
                before = graph.resource_count
                graph.merge(incoming)
                graph.sort_modules()
                added = graph.resource_count - before
        except StateGraphError as exc:
            return self._failure("merge", exc)

        skipped = incoming.resource_count - added
        warnings = [f"{skipped} resource(s) already present were left unchanged"] if skipped else []
        return ServiceResult(
            ok=True,
            op="merge",
            data={"source": str(other), "added": added, "dry_run": dry_run},
            warnings=warnings,
            meta=self._meta(),
        )

    def subtract(self, other: str | Path, *, dry_run: bool = False) -> ServiceResult:
        """Drop resources whose keys appear in another state."""
        try:
            incoming = read_state(other)
            with self._workspace.transaction(dry_run=dry_run) as graph:
                before = graph.resource_count
                graph.subtract(incoming)
                removed = before - graph.resource_count
        except StateGraphError as exc:
            return self._failure("subtract", exc)

        return ServiceResult(
            ok=True,
            op="subtract",
            data={"source": str(other), "removed": removed, "dry_run": dry_run},
            meta=self._meta(),
        )

    def clear_deps(self, *, dry_run: bool = False) -> ServiceResult:
        """Remove every dependency edge from the state."""
        try:
            with self._workspace.transaction(dry_run=dry_run) as graph:
                edges = sum(len(r.dependencies) for _, _, r in graph.iter_resources())
                graph.clear_dependencies()
        except StateGraphError as exc:
            return self._failure("clear_deps", exc)

        logger.debug("Cleared %d dependency edge(s)", edges)
        return ServiceResult(
            ok=True,
            op="clear_deps",
            data={"removed": edges, "dry_run": dry_run},
            meta=self._meta(),
        )
