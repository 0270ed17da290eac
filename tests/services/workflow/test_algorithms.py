"""Tests for leveling, cycle detection and loop-body discovery."""

import pytest

from hiveflow.schemas.graph import Edge
from hiveflow.services.workflow.algorithms import (
    GraphAlgorithms,
    compute_levels,
    find_loop_body,
)
from hiveflow.services.workflow.exceptions import (
    CyclicGraphError,
    InvalidNodeReferenceError,
)
from hiveflow.services.workflow.graph import Graph


def _edges(*pairs: tuple[str, str]) -> list[Edge]:
    return [
        Edge(id=f"e{index}", source=source, target=target)
        for index, (source, target) in enumerate(pairs)
    ]


class TestBuild:
    """Test building scheduling graphs from workflow edges."""

    def test_strict_build_rejects_dangling_edges(self):
        with pytest.raises(InvalidNodeReferenceError) as exc_info:
            GraphAlgorithms.build(["a"], _edges(("a", "ghost")))

        assert exc_info.value.missing_nodes == ["ghost"]
        assert exc_info.value.error_code == "NODE_NOT_FOUND"

    def test_lenient_build_drops_dangling_edges(self):
        graph = GraphAlgorithms.build(
            ["a", "b"], _edges(("a", "b"), ("outside", "a")), strict=False
        )

        assert graph.edge_count == 1
        assert "outside" not in graph


class TestComputeLevels:
    """Test Kahn-style leveling."""

    def test_diamond(self):
        graph = Graph.from_edges(
            "abcd", [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]
        )

        assert GraphAlgorithms.compute_levels(graph) == [["a"], ["b", "c"], ["d"]]

    def test_independent_roots_share_level_zero(self):
        graph = Graph.from_edges(["x", "y", "z"], [("x", "z")])

        assert GraphAlgorithms.compute_levels(graph) == [["x", "y"], ["z"]]

    def test_every_edge_points_to_a_later_level(self):
        graph = Graph.from_edges(
            "abcde", [("a", "c"), ("b", "c"), ("c", "e"), ("a", "d"), ("d", "e")]
        )

        levels = GraphAlgorithms.compute_levels(graph)
        level_of = {node: index for index, level in enumerate(levels) for node in level}

        assert sorted(level_of) == list("abcde")
        for source in graph:
            for target in graph.get_successors(source):
                assert level_of[source] < level_of[target]

    def test_cycle_reports_unplaced_nodes(self):
        graph = Graph.from_edges(
            ["start", "a", "b", "after"],
            [("start", "a"), ("a", "b"), ("b", "a"), ("b", "after")],
        )

        with pytest.raises(CyclicGraphError) as exc_info:
            GraphAlgorithms.compute_levels(graph)

        assert exc_info.value.unplaced_nodes == ["a", "b", "after"]
        assert exc_info.value.error_code == "CYCLE_DETECTED"

    def test_empty_graph_has_no_levels(self):
        assert GraphAlgorithms.compute_levels(Graph[str]()) == []

    def test_workflow_levels(self, make_graph):
        graph = make_graph(
            [
                {"id": "t", "type": "trigger"},
                {"id": "a", "type": "merge"},
                {"id": "b", "type": "merge"},
            ],
            [("t", "a"), ("t", "b")],
        )

        assert compute_levels(graph) == [["t"], ["a", "b"]]


class TestDiagnostics:
    """Test cycle paths, reachability and disconnected nodes."""

    def test_detect_cycle_returns_closed_path(self):
        graph = Graph.from_edges("abc", [("a", "b"), ("b", "c"), ("c", "a")])

        assert GraphAlgorithms.detect_cycle(graph) == ["a", "b", "c", "a"]

    def test_detect_cycle_acyclic(self):
        graph = Graph.from_edges("abc", [("a", "b"), ("a", "c")])

        assert GraphAlgorithms.detect_cycle(graph) is None

    def test_self_loop_is_a_cycle(self):
        graph = Graph.from_edges("a", [("a", "a")])

        assert GraphAlgorithms.detect_cycle(graph) == ["a", "a"]

    def test_find_descendants_includes_start(self):
        graph = Graph.from_edges("abcd", [("a", "b"), ("b", "c")])

        assert GraphAlgorithms.find_descendants(graph, ["b"]) == {"b", "c"}

    def test_find_disconnected_skips_roots(self):
        graph = Graph.from_edges(["t", "a", "lonely"], [("t", "a")])
        graph.add_node("trigger2")

        assert GraphAlgorithms.find_disconnected(graph, exclude=["trigger2"]) == [
            "lonely"
        ]


class TestFindLoopBody:
    """Test which nodes a loop node runs per iteration."""

    def test_body_follows_body_handle_only(self, make_graph):
        graph = make_graph(
            [
                {"id": "t", "type": "trigger"},
                {"id": "loop", "type": "loop"},
                {"id": "step", "type": "merge"},
                {"id": "step2", "type": "merge"},
                {"id": "after", "type": "merge"},
            ],
            [
                ("t", "loop"),
                ("loop", "step", "body"),
                ("step", "step2"),
                ("loop", "after", "done"),
            ],
        )

        assert find_loop_body(graph, "loop") == {"step", "step2"}

    def test_without_handles_every_descendant_is_body(self, make_graph):
        graph = make_graph(
            [
                {"id": "loop", "type": "loop"},
                {"id": "a", "type": "merge"},
                {"id": "b", "type": "merge"},
            ],
            [("loop", "a"), ("a", "b")],
        )

        assert find_loop_body(graph, "loop") == {"a", "b"}

    def test_loop_node_is_never_its_own_body(self, make_graph):
        graph = make_graph(
            [{"id": "loop", "type": "loop"}, {"id": "a", "type": "merge"}],
            [("loop", "a"), ("a", "loop")],
        )

        assert find_loop_body(graph, "loop") == {"a"}
