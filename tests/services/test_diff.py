"""Tests for DiffService: plan diff remapping and explanation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stategraft.infrastructure.workspace import Workspace
from stategraft.services.diff import DiffService
from tests.conftest import read_json, write_json

PLAN = {
    "modules": [
        {
            "path": ["root"],
            "resources": {
                "aws_instance.web": {"attributes": {"ami": {"old": "ami-1", "new": "ami-2"}}},
                "aws_instance.old": {"destroy": True},
                "aws_instance.new": {
                    "attributes": {"id": {"new_computed": True, "requires_new": True}}
                },
            },
        }
    ]
}


@pytest.fixture
def plan(tmp_path: Path) -> Path:
    return write_json(tmp_path / "plan.json", PLAN)


@pytest.fixture
def moves(tmp_path: Path) -> Path:
    return write_json(
        tmp_path / "moves.json",
        {"aws_instance.web": "module.app.aws_instance.web", "aws_instance.old": ""},
    )


class TestDiffTransform:
    def test_in_place(self, workspace: Workspace, plan: Path, moves: Path) -> None:
        result = DiffService(workspace).transform(plan, moves)
        assert result.ok
        assert result.op == "diff_transform"
        assert result.data["output"] == str(plan)
        assert result.data["moved"] == {"aws_instance.web": "module.app.aws_instance.web"}
        assert result.data["deleted"] == ["aws_instance.old"]
        assert "dry_run" not in result.data

        data = read_json(plan)
        assert [m["path"] for m in data["modules"]] == [["root"], ["root", "app"]]
        assert list(data["modules"][0]["resources"]) == ["aws_instance.new"]

    def test_to_other_file(
        self, workspace: Workspace, plan: Path, moves: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "out" / "plan.json"
        result = DiffService(workspace).transform(plan, moves, output=out)
        assert result.ok
        assert read_json(plan) == PLAN
        assert "aws_instance.web" in read_json(out)["modules"][1]["resources"]

    def test_to_stdout_returns_document(
        self, workspace: Workspace, plan: Path, moves: Path
    ) -> None:
        result = DiffService(workspace).transform(plan, moves, output="-")
        assert result.ok
        document = json.loads(result.data["document"])
        assert document["modules"][1]["path"] == ["root", "app"]
        assert read_json(plan) == PLAN

    def test_collision(self, workspace: Workspace, plan: Path, tmp_path: Path) -> None:
        moves = write_json(
            tmp_path / "bad.json", {"aws_instance.web": "a.a", "aws_instance.old": "a.a"}
        )
        result = DiffService(workspace).transform(plan, moves)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "ADDRESS_COLLISION"
        assert read_json(plan) == PLAN


class TestExplain:
    def test_counts_and_text(self, workspace: Workspace, plan: Path) -> None:
        result = DiffService(workspace).explain(plan)
        assert result.ok
        assert result.data["empty"] is False
        assert (result.data["missing"], result.data["extra"], result.data["mismatched"]) == (
            1,
            1,
            1,
        )
        assert result.data["explanation"].startswith("MISSING RESOURCE:\n- aws_instance.new")

    def test_empty(self, workspace: Workspace, tmp_path: Path) -> None:
        result = DiffService(workspace).explain(write_json(tmp_path / "empty.json", {}))
        assert result.ok
        assert result.data["empty"] is True
        assert result.data["explanation"] == ""

    def test_invalid_document(self, workspace: Workspace, tmp_path: Path) -> None:
        path = write_json(tmp_path / "bad.json", {"modules": [{"resources": {"a.a": []}}]})
        result = DiffService(workspace).explain(path)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_DOCUMENT"
