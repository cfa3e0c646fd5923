"""Shared pytest fixtures and test helpers for stategraft tests."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from stategraft.config.settings import GraftSettings
from stategraft.domain.state import ModuleState, ResourceRecord, StateGraph
from stategraft.infrastructure.workspace import Workspace

# A small VPC layout used across service and command tests.
SAMPLE_STATE: dict[str, Any] = {
    "version": 3,
    "serial": 4,
    "lineage": "11111111-2222-3333-4444-555555555555",
    "modules": [
        {
            "path": ["root"],
            "resources": {
                "aws_vpc.main": {
                    "type": "aws_vpc",
                    "provider": "provider.aws",
                    "attributes": {"id": "vpc-1", "cidr_block": "10.0.0.0/16"},
                },
                "aws_subnet.a": {
                    "type": "aws_subnet",
                    "provider": "provider.aws",
                    "attributes": {"id": "subnet-a", "vpc_id": "vpc-1"},
                    "dependencies": ["aws_vpc.main"],
                },
                "aws_security_group.web": {
                    "type": "aws_security_group",
                    "provider": "provider.aws",
                    "attributes": {"id": "sg-1", "vpc_id": "vpc-1"},
                    "dependencies": ["aws_vpc.main"],
                },
                "aws_instance.web": {
                    "type": "aws_instance",
                    "provider": "provider.aws",
                    "attributes": {
                        "id": "i-1",
                        "subnet_id": "subnet-a",
                        "vpc_security_group_ids": {"__set__": ["sg-1"]},
                    },
                    "dependencies": ["aws_security_group.web", "aws_subnet.a"],
                },
            },
        },
        {
            "path": ["root", "app"],
            "resources": {
                "aws_instance.api": {
                    "type": "aws_instance",
                    "provider": "provider.aws",
                    "attributes": {"id": "i-2"},
                },
            },
        },
    ],
}

SAMPLE_RULES: dict[str, Any] = {
    "aws_subnet": [{"attr": "vpc_id", "src_type": "aws_vpc", "src_attr": "id"}],
    "aws_security_group": [{"attr": "vpc_id", "src_type": "aws_vpc", "src_attr": "id"}],
    "aws_instance": [
        {"attr": "subnet_id", "src_type": "aws_subnet", "src_attr": "id"},
        {"attr": "vpc_security_group_ids", "src_type": "aws_security_group", "src_attr": "id"},
    ],
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of settings resolution."""
    monkeypatch.delenv("STATEGRAFT_CONFIG", raising=False)
    monkeypatch.delenv("STATEGRAFT_STATE_FILE", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """Temporary workspace holding ``terraform.tfstate`` with SAMPLE_STATE."""
    write_json(tmp_path / "terraform.tfstate", SAMPLE_STATE)
    return tmp_path


@pytest.fixture
def settings(workspace_root: Path) -> GraftSettings:
    return GraftSettings.from_cli(workspace_root=workspace_root)


@pytest.fixture
def workspace(settings: GraftSettings) -> Iterator[Workspace]:
    yield Workspace(settings)


@pytest.fixture
def _isolated_workspace(workspace_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp workspace so the CLI picks up its state file.

    Use via ``@pytest.mark.usefixtures("_isolated_workspace")`` on command
    test classes.
    """
    monkeypatch.chdir(workspace_root)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def make_graph(
    modules: Mapping[tuple[str, ...], Mapping[str, Sequence[str]]],
    *,
    attributes: Mapping[str, Mapping[str, Any]] | None = None,
) -> StateGraph:
    """Build a graph from ``{path: {state_key: [dependency keys]}}``.

    Each record's type is the first segment of its key. *attributes* maps
    ``"<module>:<key>"`` or a bare root key to the record's attributes.
    """
    attributes = attributes or {}
    graph = StateGraph(lineage="test")
    for path, resources in modules.items():
        module = ModuleState(path=path)
        where = ".".join(module.path)
        for key, deps in resources.items():
            attrs = attributes.get(f"{where}:{key}", attributes.get(key, {}))
            rtype = key.removeprefix("data.").split(".")[0]
            module.resources[key] = ResourceRecord(
                type=rtype, attributes=dict(attrs), dependencies=list(deps)
            )
        graph.modules.append(module)
    return graph


def deps_of(graph: StateGraph, key: str, path: tuple[str, ...] = ()) -> list[str]:
    module = graph.module(path)
    assert module is not None, f"no module {path}"
    return module.resources[key].dependencies


def keys_of(graph: StateGraph, path: tuple[str, ...] = ()) -> list[str]:
    module = graph.module(path)
    assert module is not None, f"no module {path}"
    return sorted(module.resources)
