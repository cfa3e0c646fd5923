"""Tests for StateTransform: remapping, replacement, deletion, and rewiring."""

from __future__ import annotations

import pytest

from stategraft.domain.diff import AttrDiff, InstanceDiff, ModuleDiff, PlanDiff
from stategraft.domain.errors import (
    AddressCollisionError,
    AddressParseError,
    DocumentError,
    IncompleteAddressError,
    KeyParseError,
    StateInvariantError,
)
from stategraft.domain.names import NameNormalizer
from stategraft.domain.state import ModuleState, ResourceRecord, StateGraph
from stategraft.domain.transform import StateTransform, normalize_state_keys
from tests.conftest import deps_of, keys_of, make_graph

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _xyz() -> StateGraph:
    return make_graph({(): {"x.x": [], "y.y": ["x.x"], "z.z": ["x.x", "y.y"]}})


def _assert_no_dangling(graph: StateGraph) -> None:
    for module in graph.modules:
        for key, record in module.resources.items():
            for dep in record.dependencies:
                assert dep in module.resources, f"{key} -> {dep} dangles"
                assert dep != key


class TestScenarios:
    def test_rename_rewires_dependents(self) -> None:
        graph = _xyz()
        StateTransform({"x.x": "w.w"}).apply(graph)
        assert keys_of(graph) == ["w.w", "y.y", "z.z"]
        assert deps_of(graph, "w.w") == []
        assert deps_of(graph, "y.y") == ["w.w"]
        assert deps_of(graph, "z.z") == ["w.w", "y.y"]

    def test_deletion_removes_dependents_edges(self) -> None:
        graph = _xyz()
        StateTransform({"x.x": "w.w"}).apply(graph)
        StateTransform({"y.y": ""}).apply(graph)
        assert keys_of(graph) == ["w.w", "z.z"]
        assert deps_of(graph, "z.z") == ["w.w"]

    def test_collision_is_rejected_and_graph_unchanged(self) -> None:
        graph = make_graph({(): {"a.a": [], "b.b": ["a.a"]}})
        before = graph.deep_copy()
        with pytest.raises(AddressCollisionError) as exc_info:
            StateTransform({"a.a": "c.c", "b.b": "c.c"}).apply(graph)
        assert graph == before
        assert exc_info.value.detail["address"] == "c.c"

    def test_swap_replace_and_delete(self) -> None:
        graph = make_graph(
            {
                (): {
                    "a.a": ["d.d", "e.e", "unknown.resource"],
                    "b.b": ["a.a", "c.c", "d.d", "e.e"],
                    "c.c": ["a.a", "e.e"],
                    "d.d": [],
                    "e.e": [],
                }
            }
        )
        transform = StateTransform(
            {
                "module.root.a.a": "b.b",  # swap a and b
                "b.b": "module.root.a.a",
                "c.c": "e.e",  # replace e with c
                "d.d": "",  # delete d
            }
        )
        report = transform.apply(graph)

        root = graph.root_module
        assert keys_of(graph) == ["a.a", "b.b", "e.e"]
        assert root.resources["b.b"].type == "a"
        assert root.resources["a.a"].type == "b"
        assert root.resources["e.e"].type == "c"
        # Dangling "unknown.resource" is dropped; e.e now means the old c.c.
        assert deps_of(graph, "b.b") == ["e.e"]
        assert deps_of(graph, "a.a") == ["b.b", "e.e"]
        assert deps_of(graph, "e.e") == ["b.b"]

        assert report.moved == {"a.a": "b.b", "b.b": "a.a", "c.c": "e.e"}
        assert report.deleted == ["d.d"]
        assert report.superseded == {"e.e": "e.e"}
        assert report.changed


class TestProperties:
    def test_empty_transform_is_noop(self) -> None:
        graph = _xyz()
        before = graph.deep_copy()
        report = StateTransform().apply(graph)
        assert graph == before
        assert not report.changed
        assert report.kept == 3

    def test_empty_transform_drops_dangling_edges(self) -> None:
        graph = make_graph({(): {"a.a": ["ghost.g", "b.b"], "b.b": ["b.b"]}})
        report = StateTransform().apply(graph)
        assert deps_of(graph, "a.a") == ["b.b"]
        assert deps_of(graph, "b.b") == []
        assert not report.changed
        _assert_no_dangling(graph)

    def test_identity_transform_is_noop(self) -> None:
        graph = _xyz()
        before = graph.deep_copy()
        report = StateTransform({"x.x": "x.x", "y.y": "module.root.y.y"}).apply(graph)
        assert graph == before
        assert not report.changed

    def test_missing_sources_are_ignored(self) -> None:
        graph = _xyz()
        before = graph.deep_copy()
        StateTransform({"nope.nope": "w.w", "gone.gone": ""}).apply(graph)
        assert graph == before

    def test_invertible(self) -> None:
        graph = _xyz()
        before = graph.deep_copy()
        transform = StateTransform({"x.x": "w.w", "y.y": "v.v"})
        inverse = transform.inverse()
        assert inverse == {"w.w": "x.x", "v.v": "y.y"}

        transform.apply(graph)
        assert graph != before
        inverse.apply(graph)
        assert graph == before

    def test_not_invertible(self) -> None:
        assert StateTransform({"a.a": ""}).inverse() is None
        assert StateTransform({"a.a": "c.c", "b.b": "module.root.c.c"}).inverse() is None

    def test_no_dangling_edges_after_apply(self) -> None:
        graph = make_graph(
            {
                (): {"a.a": ["b.b", "ghost.g"], "b.b": ["c.c", "b.b"], "c.c": []},
                ("m",): {"d.d": ["a.a", "e.e"], "e.e": []},
            }
        )
        StateTransform({"c.c": "", "module.m.e.e": "module.m.f.f"}).apply(graph)
        _assert_no_dangling(graph)
        assert deps_of(graph, "a.a") == ["b.b"]
        assert deps_of(graph, "b.b") == []
        assert deps_of(graph, "d.d", ("m",)) == ["f.f"]

    def test_dependencies_are_sorted_and_unique(self) -> None:
        graph = make_graph({(): {"a.a": [], "b.b": [], "c.c": ["b.b", "a.a", "b.b"]}})
        StateTransform({"b.b": "z.z"}).apply(graph)
        assert deps_of(graph, "c.c") == ["a.a", "z.z"]


class TestReplacement:
    def test_dependents_follow_the_replacement(self) -> None:
        graph = make_graph({(): {"old.r": [], "new.r": [], "user.u": ["old.r"]}})
        report = StateTransform({"new.r": "old.r"}).apply(graph)
        assert keys_of(graph) == ["old.r", "user.u"]
        assert graph.root_module.resources["old.r"].type == "new"
        assert deps_of(graph, "user.u") == ["old.r"]
        assert report.superseded == {"old.r": "old.r"}

    def test_replaced_and_deleted_drops_edges(self) -> None:
        graph = make_graph({(): {"c.c": [], "e.e": [], "u.u": ["e.e"]}})
        StateTransform({"c.c": "e.e", "e.e": ""}).apply(graph)
        assert keys_of(graph) == ["e.e", "u.u"]
        assert graph.root_module.resources["e.e"].type == "c"
        assert deps_of(graph, "u.u") == []

    def test_replacement_is_resolved_before_kept_resources(self) -> None:
        # Unmapped z.z is visited after a.a already claimed its address.
        graph = make_graph({(): {"a.a": [], "z.z": [], "u.u": ["z.z", "a.a"]}})
        StateTransform({"a.a": "z.z"}).apply(graph)
        assert keys_of(graph) == ["u.u", "z.z"]
        assert graph.root_module.resources["z.z"].type == "a"
        assert deps_of(graph, "u.u") == ["z.z"]

    def test_replacement_is_followed_one_hop(self) -> None:
        # c.c is displaced by b.b, which itself moved; no chain is resolved.
        graph = make_graph({(): {"a.a": [], "b.b": [], "c.c": [], "u.u": ["a.a", "b.b", "c.c"]}})
        report = StateTransform({"a.a": "b.b", "b.b": "c.c"}).apply(graph)
        assert keys_of(graph) == ["b.b", "c.c", "u.u"]
        assert graph.root_module.resources["b.b"].type == "a"
        assert graph.root_module.resources["c.c"].type == "b"
        assert deps_of(graph, "u.u") == ["b.b", "c.c"]
        assert report.moved == {"a.a": "b.b", "b.b": "c.c"}
        assert report.superseded == {"c.c": "c.c"}


class TestModules:
    def test_move_into_new_module(self) -> None:
        graph = make_graph({(): {"a.a": [], "b.b": ["a.a"], "c.c": ["b.b"]}})
        StateTransform({"b.b": "module.app.b.b"}).apply(graph)
        assert keys_of(graph) == ["a.a", "c.c"]
        assert keys_of(graph, ("app",)) == ["b.b"]
        # Edges never cross modules.
        assert deps_of(graph, "b.b", ("app",)) == []
        assert deps_of(graph, "c.c") == []

    def test_move_whole_module(self) -> None:
        graph = make_graph({("old",): {"a.a": [], "b.b": ["a.a"]}})
        StateTransform(
            {"module.old.a.a": "module.new.a.a", "module.old.b.b": "module.new.b.b"}
        ).apply(graph)
        assert keys_of(graph, ("old",)) == []
        assert keys_of(graph, ("new",)) == ["a.a", "b.b"]
        assert deps_of(graph, "b.b", ("new",)) == ["a.a"]

    def test_move_out_of_module_with_index(self) -> None:
        graph = make_graph({(): {}, ("m",): {"aws_instance.web.0": []}})
        StateTransform({"module.m.aws_instance.web[0]": "aws_instance.web"}).apply(graph)
        assert keys_of(graph) == ["aws_instance.web"]

    def test_same_key_in_different_modules(self) -> None:
        graph = make_graph({(): {"a.a": []}, ("m",): {"a.a": [], "b.b": ["a.a"]}})
        StateTransform({"a.a": "z.z"}).apply(graph)
        assert keys_of(graph) == ["z.z"]
        assert deps_of(graph, "b.b", ("m",)) == ["a.a"]


class TestErrors:
    def test_incomplete_destination(self) -> None:
        graph = _xyz()
        before = graph.deep_copy()
        with pytest.raises(IncompleteAddressError):
            StateTransform({"x.x": "module.app"}).apply(graph)
        assert graph == before

    def test_empty_source(self) -> None:
        with pytest.raises(IncompleteAddressError):
            StateTransform({"": "a.a"}).apply(_xyz())

    def test_malformed_address(self) -> None:
        with pytest.raises(AddressParseError):
            StateTransform({"x.x": "a.b.c"}).apply(_xyz())

    def test_duplicate_source_after_canonicalization(self) -> None:
        with pytest.raises(AddressCollisionError):
            StateTransform({"x.x": "a.a", "module.root.x.x": "b.b"}).apply(_xyz())

    def test_malformed_state_key(self) -> None:
        graph = StateGraph(modules=[ModuleState(path=(), resources={"bad": ResourceRecord("a")})])
        with pytest.raises(KeyParseError):
            StateTransform({"a.a": "b.b"}).apply(graph)

    def test_duplicate_module_paths(self) -> None:
        graph = StateGraph(
            modules=[
                ModuleState(path=(), resources={"a.a": ResourceRecord("a")}),
                ModuleState(path=("root",), resources={"a.a": ResourceRecord("a")}),
            ]
        )
        with pytest.raises(StateInvariantError):
            StateTransform({"a.a": "b.b"}).apply(graph)

    def test_from_mapping_rejects_non_strings(self) -> None:
        with pytest.raises(DocumentError):
            StateTransform.from_mapping({"a.a": None})
        assert StateTransform.from_mapping({"a.a": "b.b"}) == {"a.a": "b.b"}


class TestApplyToDiff:
    def test_remaps_and_normalizes(self) -> None:
        diff = PlanDiff(
            modules=[
                ModuleDiff(
                    path=("root",),
                    resources={
                        "a.a": InstanceDiff(attributes={"x": AttrDiff(old="1", new="2")}),
                        "b.b": InstanceDiff(destroy=True),
                    },
                )
            ]
        )
        report = StateTransform({"a.a": "module.m.a.a", "b.b": ""}).apply_to_diff(diff)
        diff.normalize()

        assert [m.path for m in diff.modules] == [("root", "m")]
        assert diff.modules[0].resources["a.a"].attributes["x"].new == "2"
        assert report.deleted == ["b.b"]

    def test_collision_leaves_diff_untouched(self) -> None:
        diff = PlanDiff(
            modules=[ModuleDiff(path=(), resources={"a.a": InstanceDiff(), "b.b": InstanceDiff()})]
        )
        with pytest.raises(AddressCollisionError):
            StateTransform({"a.a": "c.c", "b.b": "c.c"}).apply_to_diff(diff)
        assert sorted(diff.modules[0].resources) == ["a.a", "b.b"]


class TestNormalizeStateKeys:
    _GUID = "00000000-0000-0000-0000-000000000000"

    def _graph(self) -> StateGraph:
        graph = StateGraph()
        graph.root_module.resources["azurerm_resource_group.rg"] = ResourceRecord(
            type="azurerm_resource_group",
            provider="provider.azurerm",
            attributes={"id": f"/subscriptions/{self._GUID}/resourceGroups/tf-test-rg"},
        )
        graph.root_module.resources["data.azurerm_client_config.c"] = ResourceRecord(
            type="azurerm_client_config", attributes={"id": "x"}
        )
        graph.root_module.resources["null_resource.n"] = ResourceRecord(type="null_resource")
        return graph

    def test_provider_prefixed_names(self) -> None:
        graph = self._graph()
        transform = normalize_state_keys(graph, NameNormalizer())
        transform.apply(graph)
        want = (
            "azurerm_resource_group.provider_azurerm_subscriptions_"
            f"{self._GUID}_resourceGroups_tf-test-rg"
        )
        assert keys_of(graph) == sorted(
            [want, "data.azurerm_client_config.c", "null_resource.n"]
        )

    def test_without_provider(self) -> None:
        graph = self._graph()
        transform = normalize_state_keys(graph, NameNormalizer(), include_provider=False)
        assert transform == {
            "azurerm_resource_group.rg": (
                f"azurerm_resource_group._subscriptions_{self._GUID}_resourceGroups_tf-test-rg"
            )
        }

    def test_already_normalized_is_skipped(self) -> None:
        graph = make_graph(
            {(): {"aws_instance.i-1": []}}, attributes={"aws_instance.i-1": {"id": "i-1"}}
        )
        assert normalize_state_keys(graph, NameNormalizer()) == {}
