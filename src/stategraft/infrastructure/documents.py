"""Document I/O — state graphs, plan diffs, transforms, and rule tables.

Files are JSON except rule inputs, which may also be YAML (``.yaml`` /
``.yml``). The path ``-`` (or ``""``) means stdin for reads and stdout
for writes. Every read is validated with pydantic document models and
converted into plain domain objects; every failure surfaces as
:class:`~stategraft.domain.errors.DocumentError`.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from stategraft.domain.attributes import decode_value, encode_value
from stategraft.domain.depmap import DepMap
from stategraft.domain.diff import AttrDiff, InstanceDiff, ModuleDiff, PlanDiff
from stategraft.domain.errors import DocumentError
from stategraft.domain.state import STATE_VERSION, ModuleState, ResourceRecord, StateGraph
from stategraft.domain.transform import StateTransform

STDIN_LIMIT = 64 * 1024 * 1024
_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def is_stdio(path: str | Path) -> bool:
    """True if *path* stands for stdin/stdout."""
    return str(path) in ("", "-")


# ---------------------------------------------------------------------------
# Document models
# ---------------------------------------------------------------------------


class ResourceDoc(BaseModel):
    model_config = {"extra": "ignore"}

    type: str
    provider: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)


class ModuleDoc(BaseModel):
    model_config = {"extra": "ignore"}

    path: list[str] = Field(default_factory=lambda: ["root"])
    resources: dict[str, ResourceDoc] = Field(default_factory=dict)


class StateDoc(BaseModel):
    """Persisted state graph."""

    model_config = {"extra": "ignore"}

    version: int = STATE_VERSION
    serial: int = 0
    lineage: str = ""
    modules: list[ModuleDoc] = Field(default_factory=list)


class AttrDiffDoc(BaseModel):
    old: str = ""
    new: str = ""
    new_computed: bool = False
    requires_new: bool = False
    sensitive: bool = False


class InstanceDiffDoc(BaseModel):
    destroy: bool = False
    attributes: dict[str, AttrDiffDoc] = Field(default_factory=dict)


class ModuleDiffDoc(BaseModel):
    path: list[str] = Field(default_factory=lambda: ["root"])
    resources: dict[str, InstanceDiffDoc] = Field(default_factory=dict)


class PlanDiffDoc(BaseModel):
    modules: list[ModuleDiffDoc] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Raw text
# ---------------------------------------------------------------------------


def read_text(source: str | Path) -> str:
    """Read a document from a file, or stdin for ``-``."""
    if is_stdio(source):
        return sys.stdin.read(STDIN_LIMIT)
    try:
        return Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read {source}: {exc.strerror or exc}"
        raise DocumentError(msg, path=str(source)) from exc


def write_text(target: str | Path, text: str) -> None:
    """Write a document to a file (creating parents), or stdout for ``-``."""
    if is_stdio(target):
        sys.stdout.write(text)
        return
    path = Path(target)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot write {target}: {exc.strerror or exc}"
        raise DocumentError(msg, path=str(target)) from exc


def load_data(text: str, *, name: str = "<document>", yaml: bool = False) -> Any:
    """Parse JSON (or YAML when *yaml* is set) into plain data."""
    try:
        if yaml:
            return YAML(typ="safe").load(text)
        return json.loads(text)
    except (json.JSONDecodeError, YAMLError) as exc:
        msg = f"Cannot parse {name}: {exc}"
        raise DocumentError(msg, path=name) from exc


def _validate[M: BaseModel](model: type[M], data: Any, name: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid document {name}: {exc.error_count()} validation error(s)"
        errors = [f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]
        raise DocumentError(msg, path=name, errors=errors) from exc


# ---------------------------------------------------------------------------
# State graphs
# ---------------------------------------------------------------------------


def parse_state(text: str, *, name: str = "<state>") -> StateGraph:
    doc = _validate(StateDoc, load_data(text, name=name), name)
    if doc.version > STATE_VERSION:
        msg = f"Unsupported state version {doc.version} in {name}"
        raise DocumentError(msg, path=name, version=doc.version)
    graph = StateGraph(version=doc.version, serial=doc.serial, lineage=doc.lineage)
    for mdoc in doc.modules:
        module = ModuleState(path=tuple(mdoc.path))
        for key, rdoc in mdoc.resources.items():
            module.resources[key] = ResourceRecord(
                type=rdoc.type,
                provider=rdoc.provider,
                attributes=decode_value(rdoc.attributes),
                dependencies=list(rdoc.dependencies),
            )
        graph.modules.append(module)
    return graph


def dump_state(graph: StateGraph, *, indent: int | None = 2) -> str:
    data = {
        "version": graph.version,
        "serial": graph.serial,
        "lineage": graph.lineage,
        "modules": [
            {
                "path": list(module.path),
                "resources": {
                    key: {
                        "type": record.type,
                        "provider": record.provider,
                        "attributes": encode_value(record.attributes),
                        "dependencies": list(record.dependencies),
                    }
                    for key, record in sorted(module.resources.items())
                },
            }
            for module in graph.modules
        ],
    }
    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def read_state(source: str | Path) -> StateGraph:
    return parse_state(read_text(source), name=str(source) or "-")


def write_state(target: str | Path, graph: StateGraph, *, indent: int | None = 2) -> None:
    write_text(target, dump_state(graph, indent=indent))


# ---------------------------------------------------------------------------
# Plan diffs
# ---------------------------------------------------------------------------


def parse_diff(text: str, *, name: str = "<diff>") -> PlanDiff:
    doc = _validate(PlanDiffDoc, load_data(text, name=name), name)
    return PlanDiff(
        modules=[
            ModuleDiff(
                path=tuple(mdoc.path),
                resources={
                    key: InstanceDiff(
                        destroy=idoc.destroy,
                        attributes={
                            attr: AttrDiff(**adoc.model_dump())
                            for attr, adoc in idoc.attributes.items()
                        },
                    )
                    for key, idoc in mdoc.resources.items()
                },
            )
            for mdoc in doc.modules
        ]
    )


def _minify(value: Any) -> Any:
    """Drop false, empty-string, and empty-container values recursively."""
    if value is False or value == "":
        return None
    if isinstance(value, list):
        kept = [v for v in (_minify(e) for e in value) if v is not None]
        return kept or None
    if isinstance(value, dict):
        kept_map = {k: m for k, v in value.items() if (m := _minify(v)) is not None}
        return kept_map or None
    return value


def dump_diff(diff: PlanDiff) -> str:
    doc = PlanDiffDoc(
        modules=[
            ModuleDiffDoc(
                path=list(m.path),
                resources={
                    key: InstanceDiffDoc(
                        destroy=d.destroy,
                        attributes={
                            attr: AttrDiffDoc(
                                old=a.old,
                                new=a.new,
                                new_computed=a.new_computed,
                                requires_new=a.requires_new,
                                sensitive=a.sensitive,
                            )
                            for attr, a in d.attributes.items()
                        },
                    )
                    for key, d in sorted(m.resources.items())
                },
            )
            for m in diff.modules
        ]
    )
    data = _minify(doc.model_dump()) or {}
    return json.dumps(data, indent="\t", ensure_ascii=False) + "\n"


def read_diff(source: str | Path) -> PlanDiff:
    return parse_diff(read_text(source), name=str(source) or "-")


def write_diff(target: str | Path, diff: PlanDiff) -> None:
    write_text(target, dump_diff(diff))


# ---------------------------------------------------------------------------
# Rule inputs
# ---------------------------------------------------------------------------


def read_mapping(source: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML object from a file (or stdin, as JSON)."""
    yaml = not is_stdio(source) and Path(source).suffix.lower() in _YAML_SUFFIXES
    name = str(source) or "-"
    data = load_data(read_text(source), name=name, yaml=yaml)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected an object at the top of {name}"
        raise DocumentError(msg, path=name)
    return data


def read_transform(source: str | Path) -> StateTransform:
    return StateTransform.from_mapping(read_mapping(source))


def read_depmap(sources: Iterable[str | Path]) -> DepMap:
    """Load and merge rule tables. A type defined twice is an error."""
    depmap = DepMap()
    for source in sources:
        depmap.add(DepMap.from_mapping(read_mapping(source)))
    return depmap
