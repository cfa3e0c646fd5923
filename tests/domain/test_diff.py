"""Tests for the plan diff model and its explanation."""

from __future__ import annotations

from stategraft.domain.diff import (
    AttrDiff,
    ChangeType,
    InstanceDiff,
    ModuleDiff,
    PlanDiff,
    explain_diff,
)


class TestChangeType:
    def test_empty(self) -> None:
        assert InstanceDiff().change_type is ChangeType.NONE

    def test_update(self) -> None:
        d = InstanceDiff(attributes={"a": AttrDiff(old="1", new="2")})
        assert d.change_type is ChangeType.UPDATE

    def test_destroy(self) -> None:
        assert InstanceDiff(destroy=True).change_type is ChangeType.DESTROY

    def test_create(self) -> None:
        d = InstanceDiff(attributes={"id": AttrDiff(new_computed=True, requires_new=True)})
        assert d.change_type is ChangeType.CREATE

    def test_destroy_create(self) -> None:
        d = InstanceDiff(destroy=True, attributes={"a": AttrDiff(requires_new=True)})
        assert d.change_type is ChangeType.DESTROY_CREATE


class TestNormalize:
    def test_drops_empty_modules_and_sorts(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(path=("b",), resources={"x.x": InstanceDiff(destroy=True)}),
                ModuleDiff(path=("a",)),
                ModuleDiff(path=(), resources={"y.y": InstanceDiff(destroy=True)}),
                ModuleDiff(path=("c",), resources={"z.z": InstanceDiff()}),
            ]
        )
        diff.normalize()
        assert [m.path for m in diff.modules] == [("root",), ("root", "b")]

    def test_is_empty(self) -> None:
        assert PlanDiff().is_empty
        assert PlanDiff(modules=[ModuleDiff(path=(), resources={"a.a": InstanceDiff()})]).is_empty

    def test_ensure_module(self) -> None:
        diff = PlanDiff()
        module = diff.ensure_module(["app"])
        assert diff.ensure_module(("root", "app")) is module


class TestExplain:
    def test_empty_diff_has_no_lines(self) -> None:
        assert explain_diff(PlanDiff()) == ""

    def test_sections_in_order(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=(),
                    resources={
                        "aws_instance.web": InstanceDiff(
                            attributes={
                                "ami": AttrDiff(old="ami-1", new="ami-2"),
                                "tags.Name": AttrDiff(old="web", new="web"),
                            }
                        ),
                        "aws_instance.old": InstanceDiff(destroy=True),
                        "aws_instance.new": InstanceDiff(
                            attributes={"id": AttrDiff(new_computed=True, requires_new=True)}
                        ),
                    },
                ),
                ModuleDiff(
                    path=("app",),
                    resources={
                        "aws_instance.api": InstanceDiff(
                            attributes={"instance_type": AttrDiff(old="t2.micro", new="t3.micro")}
                        )
                    },
                ),
            ]
        )
        assert explain_diff(diff).splitlines() == [
            "MISSING RESOURCE:",
            "- aws_instance.new",
            "",
            "EXTRA RESOURCE:",
            "- aws_instance.old",
            "",
            "ATTRIBUTE MISMATCH:",
            "- aws_instance.web",
            '  ami = "ami-1" (expected: "ami-2")',
            "",
            "- module.app.aws_instance.api",
            '  instance_type = "t2.micro" (expected: "t3.micro")',
        ]

    def test_sensitive_values_are_masked(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=(),
                    resources={
                        "db.main": InstanceDiff(
                            attributes={"password": AttrDiff(old="a", new="b", sensitive=True)}
                        )
                    },
                )
            ]
        )
        text = explain_diff(diff)
        assert '"<sensitive>" (expected: "<sensitive>, value mismatch")' in text
        assert '"a"' not in text

    def test_computed_values(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=(),
                    resources={
                        "a.a": InstanceDiff(
                            attributes={
                                "arn": AttrDiff(old="arn:1", new_computed=True),
                                "ip": AttrDiff(old="", new_computed=True),
                            }
                        )
                    },
                )
            ]
        )
        lines = explain_diff(diff).splitlines()
        assert lines == ["ATTRIBUTE MISMATCH:", "- a.a", '  ip = "" (expected: "<computed>")']

    def test_destroy_create_is_a_mismatch(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=(),
                    resources={
                        "a.a": InstanceDiff(
                            destroy=True,
                            attributes={"ami": AttrDiff(old="1", new="2", requires_new=True)},
                        )
                    },
                )
            ]
        )
        assert explain_diff(diff).splitlines()[0] == "ATTRIBUTE MISMATCH:"

    def test_names_are_aligned(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=(),
                    resources={
                        "a.a": InstanceDiff(
                            attributes={
                                "x": AttrDiff(old="1", new="2"),
                                "longer": AttrDiff(old="3", new="4"),
                            }
                        )
                    },
                )
            ]
        )
        assert explain_diff(diff).splitlines()[2:] == [
            '  longer = "3" (expected: "4")',
            '  x      = "1" (expected: "2")',
        ]
