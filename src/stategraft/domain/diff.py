"""Plan diff model — per-resource attribute changes keyed like the state.

A :class:`PlanDiff` is produced by an external planner. This package only
re-addresses it (``StateTransform.apply_to_diff``), normalizes it, and
explains it to humans.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import StrEnum

from stategraft.domain.addressing import ModulePath, module_sort_key, normalize_path, to_address


class ChangeType(StrEnum):
    """Kind of change a resource diff represents."""

    NONE = "none"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    DESTROY_CREATE = "destroy_create"


@dataclass
class AttrDiff:
    """Old and new value of one flattened attribute."""

    old: str = ""
    new: str = ""
    new_computed: bool = False
    requires_new: bool = False
    sensitive: bool = False


@dataclass
class InstanceDiff:
    """Changes for a single resource."""

    destroy: bool = False
    attributes: dict[str, AttrDiff] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.destroy and not self.attributes

    @property
    def requires_new(self) -> bool:
        return any(a.requires_new for a in self.attributes.values())

    @property
    def change_type(self) -> ChangeType:
        if self.is_empty:
            return ChangeType.NONE
        if self.requires_new and self.destroy:
            return ChangeType.DESTROY_CREATE
        if self.destroy:
            return ChangeType.DESTROY
        if self.requires_new:
            return ChangeType.CREATE
        return ChangeType.UPDATE


@dataclass
class ModuleDiff:
    path: ModulePath
    resources: dict[str, InstanceDiff] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.path = normalize_path(self.path)

    @property
    def is_empty(self) -> bool:
        return all(d.is_empty for d in self.resources.values())


@dataclass
class PlanDiff:
    modules: list[ModuleDiff] = field(default_factory=list)

    def module(self, path: tuple[str, ...] | list[str] | None) -> ModuleDiff | None:
        norm = normalize_path(path)
        for module in self.modules:
            if module.path == norm:
                return module
        return None

    def ensure_module(self, path: tuple[str, ...] | list[str] | None) -> ModuleDiff:
        module = self.module(path)
        if module is None:
            module = ModuleDiff(path=normalize_path(path))
            self.modules.append(module)
        return module

    @property
    def is_empty(self) -> bool:
        return all(m.is_empty for m in self.modules)

    def normalize(self) -> PlanDiff:
        """Drop empty modules and sort the rest, root first."""
        self.modules = sorted(
            (m for m in self.modules if not m.is_empty),
            key=lambda m: module_sort_key(m.path),
        )
        return self


# ---------------------------------------------------------------------------
# Explanation
# ---------------------------------------------------------------------------

# Sort order and section label per change type.
_SECTIONS: dict[ChangeType, tuple[int, str]] = {
    ChangeType.CREATE: (1, "MISSING RESOURCE"),
    ChangeType.DESTROY: (2, "EXTRA RESOURCE"),
    ChangeType.UPDATE: (3, "ATTRIBUTE MISMATCH"),
}


def explain_diff(diff: PlanDiff) -> str:
    """Describe how the recorded state differs from the desired config.

    Resources are grouped into missing, extra, and mismatched sections.
    Mismatches list every attribute whose recorded value differs from
    the expected one; sensitive values are masked.
    """
    entries: list[tuple[ChangeType, str, InstanceDiff]] = []
    for module in diff.modules:
        for key, d in module.resources.items():
            change = d.change_type
            if change is ChangeType.DESTROY_CREATE:
                change = ChangeType.UPDATE
            if change in _SECTIONS:
                entries.append((change, to_address(module.path, key), d))
    entries.sort(key=lambda e: (_SECTIONS[e[0]][0], e[1]))

    lines: list[str] = []
    current: ChangeType | None = None
    for change, address, d in entries:
        if change is not current:
            if current is not None:
                lines.append("")
            lines.append(f"{_SECTIONS[change][1]}:")
            current = change
        elif change is ChangeType.UPDATE:
            lines.append("")
        lines.append(f"- {address}")
        if change is not ChangeType.UPDATE:
            continue

        names = sorted(
            name
            for name, a in d.attributes.items()
            if not (a.new == a.old or (a.new_computed and a.old != ""))
        )
        width = max((len(n) for n in names), default=0)
        for name in names:
            a = d.attributes[name]
            have, want = json.dumps(a.old), json.dumps(a.new)
            if a.new_computed:
                want = json.dumps("<computed>")
            if a.sensitive:
                have = json.dumps("<sensitive>")
                want = json.dumps("<sensitive>, value mismatch")
            lines.append(f"  {name:<{width}} = {have} (expected: {want})")
    return "\n".join(lines)
