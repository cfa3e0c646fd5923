"""StateTransform — address remapping with dependency rewiring.

A transform maps source addresses to destination addresses. It can
rename resources, move them between modules, replace one resource with
another, and delete resources (destination ``""``).

Apply runs in five phases: INDEX -> REMAP -> PLACE -> SWAP -> REWIRE.
Every check that can fail happens before SWAP, so a failed apply leaves
the graph untouched.

Replacement: ``{A: B}`` with an existing, unmapped ``B`` supersedes ``B``
with ``A``. Records that depended on ``B`` depend on ``A`` afterwards,
unless the transform also deletes ``B`` explicitly. Only one level of
replacement is followed; a dependency on a resource whose replacement
was itself replaced is dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from stategraft.domain.addressing import (
    ModulePath,
    canonical_address,
    format_state_key,
    parse_state_key,
    to_address,
    to_key,
)
from stategraft.domain.diff import ModuleDiff, PlanDiff
from stategraft.domain.errors import (
    AddressCollisionError,
    DocumentError,
    IncompleteAddressError,
    StateInvariantError,
)
from stategraft.domain.names import NameNormalizer
from stategraft.domain.state import ModuleState, StateGraph
from stategraft.domain.types import Fate, ResourceMode

logger = logging.getLogger(__name__)

_SURVIVING = frozenset({Fate.KEPT, Fate.MOVED})


@dataclass
class _Node:
    """One resource (or resource diff) during a transform run."""

    handle: int
    address: str
    key: str
    path: ModulePath
    payload: Any
    deps: list[int | None] = field(default_factory=list)  # None = dangling
    fate: Fate = Fate.KEPT
    replacement: int | None = None
    new_address: str = ""
    new_path: ModulePath = ()
    new_key: str = ""


@dataclass
class TransformReport:
    """What a transform did, keyed by original address."""

    moved: dict[str, str] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    superseded: dict[str, str] = field(default_factory=dict)
    kept: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.deleted or self.superseded or any(k != v for k, v in self.moved.items()))


class StateTransform(dict[str, str]):
    """Mapping of source address -> destination address (``""`` deletes).

    Keys and values may use either canonical addresses or the legacy
    ``module.root.`` form. Resources named here but missing from the
    graph are ignored.
    """

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, Any]) -> StateTransform:
        """Build a transform from untyped rule input, checking value types."""
        transform = cls()
        for src, dst in mapping.items():
            if not isinstance(src, str) or not isinstance(dst, str):
                msg = f"Transform entries must map strings to strings, got {src!r}: {dst!r}"
                raise DocumentError(msg)
            transform[src] = dst
        return transform

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, graph: StateGraph) -> TransformReport:
        """Remap resource addresses in *graph* and rewire dependencies.

        Raises:
            KeyParseError: a state key or transform address is malformed.
            IncompleteAddressError: a transform address lacks type or name.
            AddressCollisionError: two mapped resources share a destination.
            StateInvariantError: the graph holds duplicate addresses.
        """
        mapping = self._canonical()

        # -- INDEX --
        nodes = _index_graph(graph)

        # -- REMAP --
        final = _remap(nodes, mapping)

        # -- PLACE --
        new_paths = _place(nodes, final, exists=lambda p: graph.module(p) is not None)

        # -- SWAP --
        for module in graph.modules:
            module.clear_resources()
        for path in new_paths:
            graph.add_module(ModuleState(path=path))
        targets = {m.path: m for m in graph.modules}
        for handle in final.values():
            node = nodes[handle]
            targets[node.new_path].resources[node.new_key] = node.payload

        # -- REWIRE --
        for handle in final.values():
            _rewire(nodes, nodes[handle])

        report = _report(nodes)
        logger.debug(
            "Transform applied: kept=%d moved=%d deleted=%d superseded=%d",
            report.kept,
            len(report.moved),
            len(report.deleted),
            len(report.superseded),
        )
        return report

    def apply_to_diff(self, diff: PlanDiff) -> TransformReport:
        """Remap resource addresses in a plan diff.

        Same replacement, deletion, and collision rules as :meth:`apply`,
        without dependency rewiring. The diff is untouched on error.
        """
        mapping = self._canonical()
        if not mapping:
            return TransformReport()

        nodes = _index(
            (m.path, key, d) for m in diff.modules for key, d in sorted(m.resources.items())
        )
        final = _remap(nodes, mapping)
        new_paths = _place(nodes, final, exists=lambda p: diff.module(p) is not None)

        for module in diff.modules:
            module.resources.clear()
        for path in new_paths:
            diff.modules.append(ModuleDiff(path=path))
        targets = {m.path: m for m in diff.modules}
        for handle in final.values():
            node = nodes[handle]
            targets[node.new_path].resources[node.new_key] = node.payload

        return _report(nodes)

    def inverse(self) -> StateTransform | None:
        """Return the reverse transform, or None if none exists.

        A transform is invertible only if it deletes nothing and no two
        sources share a destination.
        """
        inverse = StateTransform()
        for src, dst in self._canonical().items():
            if dst == "" or dst in inverse:
                return None
            inverse[dst] = src
        return inverse

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _canonical(self) -> dict[str, str]:
        """Canonicalize every source and destination address."""
        result: dict[str, str] = {}
        for src, dst in self.items():
            if src == "":
                msg = "Transform source address must not be empty"
                raise IncompleteAddressError(msg, address=src)
            key = canonical_address(src)
            if key in result:
                msg = f"Transform maps {key!r} more than once"
                raise AddressCollisionError(msg, address=key)
            result[key] = canonical_address(dst)
        return result


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def _index_graph(graph: StateGraph) -> list[_Node]:
    """INDEX: one node per record, dependencies resolved to sibling handles."""
    nodes = _index(
        (m.path, key, m.resources[key]) for m in graph.modules for key in sorted(m.resources)
    )
    by_module: dict[ModulePath, dict[str, int]] = {}
    for node in nodes:
        by_module.setdefault(node.path, {})[node.key] = node.handle
    for node in nodes:
        siblings = by_module[node.path]
        node.deps = [siblings.get(dep) for dep in node.payload.dependencies]
    return nodes


def _index(entries: Iterable[tuple[ModulePath, str, Any]]) -> list[_Node]:
    nodes: list[_Node] = []
    seen: set[str] = set()
    for path, key, payload in entries:
        address = to_address(path, key)
        if address in seen:
            msg = f"Duplicate resource address in input: {address!r}"
            raise StateInvariantError(msg, address=address)
        seen.add(address)
        nodes.append(_Node(handle=len(nodes), address=address, key=key, path=path, payload=payload))
    return nodes


def _remap(nodes: list[_Node], mapping: dict[str, str]) -> dict[str, int]:
    """REMAP: decide each node's fate. Returns final address -> handle."""
    final: dict[str, int] = {}
    for node in nodes:
        if node.address not in mapping:
            holder = final.get(node.address)
            if holder is None:
                final[node.address] = node.handle
            else:
                node.fate = Fate.SUPERSEDED
                node.replacement = holder
            continue

        dst = mapping[node.address]
        if dst == "":
            node.fate = Fate.DELETED
            continue

        holder = final.get(dst)
        if holder is not None:
            other = nodes[holder]
            if other.fate is Fate.MOVED:
                msg = f"Transform maps both {other.address!r} and {node.address!r} to {dst!r}"
                raise AddressCollisionError(
                    msg, address=dst, sources=[other.address, node.address]
                )
            other.fate = Fate.SUPERSEDED
            other.replacement = node.handle

        node.fate = Fate.MOVED
        node.new_address = dst
        final[dst] = node.handle
    return final


def _place(
    nodes: list[_Node],
    final: dict[str, int],
    *,
    exists: Callable[[ModulePath], bool],
) -> list[ModulePath]:
    """PLACE: decode new addresses. Returns module paths that must be created."""
    new_paths: list[ModulePath] = []
    placed: set[tuple[ModulePath, str]] = set()
    for address, handle in final.items():
        node = nodes[handle]
        if node.fate is Fate.MOVED:
            path, key = to_key(address)
        else:
            path, key = node.path, node.key
        if (path, key) in placed:
            msg = f"State key collision for {address!r}"
            raise StateInvariantError(msg, address=address)
        placed.add((path, key))
        node.new_path, node.new_key = path, key
        if not exists(path) and path not in new_paths:
            new_paths.append(path)
    return new_paths


def _rewire(nodes: list[_Node], node: _Node) -> None:
    """REWIRE: rebuild one surviving record's dependency list."""
    deps: set[str] = set()
    for handle in node.deps:
        if handle is None:
            continue
        target = nodes[handle]
        if target.fate is Fate.SUPERSEDED and target.replacement is not None:
            target = nodes[target.replacement]
        if target.fate not in _SURVIVING or target.new_path != node.new_path:
            continue
        if target.new_key and target.new_key != node.new_key:
            deps.add(target.new_key)
    node.payload.dependencies = sorted(deps)


def _report(nodes: list[_Node]) -> TransformReport:
    report = TransformReport()
    for node in nodes:
        match node.fate:
            case Fate.KEPT:
                report.kept += 1
            case Fate.MOVED:
                report.moved[node.address] = node.new_address
            case Fate.DELETED:
                report.deleted.append(node.address)
            case Fate.SUPERSEDED:
                assert node.replacement is not None
                report.superseded[node.address] = nodes[node.replacement].new_address
    return report


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------


def normalize_state_keys(
    graph: StateGraph,
    normalizer: NameNormalizer,
    *,
    include_provider: bool = True,
) -> StateTransform:
    """Build a transform renaming managed resources after their IDs.

    The new name is ``normalizer.make_name(provider + "_" + id)`` (or just
    the ID when *include_provider* is False). Records without an ID and
    data resources are left alone.
    """
    transform = StateTransform()
    for module, key, record in graph.iter_resources():
        rk = parse_state_key(key)
        if rk.mode is not ResourceMode.MANAGED or not record.id:
            continue
        seed = record.id
        if include_provider and record.provider:
            seed = f"{record.provider}_{record.id}"
        name = normalizer.make_name(seed)
        if rk.name == name:
            continue
        dst = format_state_key(replace(rk, name=name))
        transform[to_address(module.path, key)] = to_address(module.path, dst)
    return transform
