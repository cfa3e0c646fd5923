"""DepMap — rule-driven dependency inference.

A rule table maps a destination resource type to ordered
:class:`DepSpec` entries. Each spec says: the value of ``attr`` on the
destination is normally obtained by referencing ``src_attr`` on a
resource of ``src_type``. Matching values across resources of one module
recover the dependency edges that a scan-produced state lacks.

INVARIANT: inference only adds edges; existing dependencies are kept.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from stategraft.domain.addressing import to_address
from stategraft.domain.attributes import flatten
from stategraft.domain.errors import AmbiguousSourceError, DocumentError, DuplicateRuleError
from stategraft.domain.state import ModuleState, ResourceRecord, StateGraph
from stategraft.domain.types import AmbiguityPolicy

logger = logging.getLogger(__name__)

_SPEC_FIELDS = ("attr", "src_type", "src_attr")


@dataclass(frozen=True)
class DepSpec:
    """``attr`` on the destination holds ``src_type.<name>.src_attr``."""

    attr: str
    src_type: str
    src_attr: str


@dataclass
class InferenceReport:
    """Edges added per destination address, plus skipped specs."""

    added: dict[str, list[str]] = field(default_factory=dict)
    skipped: list[dict[str, str]] = field(default_factory=list)

    @property
    def edge_count(self) -> int:
        return sum(len(keys) for keys in self.added.values())


type _Candidates = list[tuple[str, ResourceRecord]]


class DepMap(dict[str, list[DepSpec]]):
    """Resource type -> dependency specs for that type."""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DepMap:
        """Build a rule table from ``{type: [{attr, src_type, src_attr}]}``."""
        depmap = cls()
        for typ, entries in data.items():
            if not isinstance(entries, Sequence) or isinstance(entries, str):
                msg = f"Rules for {typ!r} must be a list of specs"
                raise DocumentError(msg, type=typ)
            specs: list[DepSpec] = []
            for entry in entries:
                if not isinstance(entry, Mapping) or not all(
                    isinstance(entry.get(f), str) and entry.get(f) for f in _SPEC_FIELDS
                ):
                    msg = f"Invalid dependency spec for {typ!r}: {entry!r}"
                    raise DocumentError(msg, type=typ)
                specs.append(DepSpec(*(entry[f] for f in _SPEC_FIELDS)))
            depmap[str(typ)] = specs
        return depmap

    def add(self, other: Mapping[str, Sequence[DepSpec]]) -> DepMap:
        """Merge another rule table into this one. Types must not overlap."""
        for typ, specs in other.items():
            if typ in self:
                msg = f"Duplicate dependency rules for resource type {typ!r}"
                raise DuplicateRuleError(msg, type=typ)
            self[typ] = list(specs)
        return self

    def infer(
        self,
        graph: StateGraph,
        *,
        policy: AmbiguityPolicy = AmbiguityPolicy.STRICT,
    ) -> InferenceReport:
        """Add inferred dependency edges to every record in *graph*.

        Edges are computed for the whole graph before any record changes,
        so a raised error leaves the graph untouched.

        Raises:
            AmbiguousSourceError: a source attribute has several values and
                *policy* is STRICT.
            AttributePathError: a rule path does not fit an attribute tree.
        """
        report = InferenceReport()
        plan: list[tuple[ModuleState, str, ResourceRecord, list[str]]] = []

        for module in graph.modules:
            by_type: dict[str, _Candidates] = {}
            for key in sorted(module.resources):
                record = module.resources[key]
                by_type.setdefault(record.type, []).append((key, record))

            for dst_type in sorted(by_type):
                specs = self.get(dst_type)
                if not specs:
                    continue
                for key, record in by_type[dst_type]:
                    found: list[str] = []
                    for spec in specs:
                        candidates = by_type.get(spec.src_type, [])
                        try:
                            found.extend(_match(spec, key, record, candidates))
                        except AmbiguousSourceError as exc:
                            if policy is AmbiguityPolicy.STRICT:
                                raise
                            address = to_address(module.path, key)
                            logger.warning("Skipping dependency spec for %s: %s", address, exc)
                            report.skipped.append(
                                {"address": address, "attr": spec.attr, "reason": exc.message}
                            )
                    plan.append((module, key, record, found))

        for module, key, record, found in plan:
            new = sorted(set(found) - set(record.dependencies))
            record.dependencies = sorted(set(record.dependencies) | set(found))
            if new:
                report.added[to_address(module.path, key)] = new

        logger.debug(
            "Dependency inference added %d edge(s) to %d resource(s)",
            report.edge_count,
            len(report.added),
        )
        return report


def _match(spec: DepSpec, key: str, record: ResourceRecord, candidates: _Candidates) -> list[str]:
    """Return keys of *candidates* whose source value appears on *record*."""
    if not candidates:
        return []
    values = flatten(record.attributes, spec.attr)
    if not values:
        return []
    matched: list[str] = []
    for src_key, src in candidates:
        if src_key == key:
            continue
        # One source value per instance; the destination may hold several
        # (a list of references matching several sources of one type).
        src_values = flatten(src.attributes, spec.src_attr)
        if len(src_values) > 1:
            msg = f"Multiple source values for {spec.src_type}.{spec.src_attr} on {src_key}"
            raise AmbiguousSourceError(
                msg, source=src_key, src_type=spec.src_type, src_attr=spec.src_attr
            )
        if src_values and src_values[0] in values:
            matched.append(src_key)
    return matched
