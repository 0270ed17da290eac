"""Graph algorithms for workflow scheduling and diagnostics.

The level scheduler lives here: Kahn-style in-degree leveling that groups
independent nodes into levels for concurrent dispatch. The remaining
helpers support the validator (cycle path, disconnected nodes) and the
executor (branch descendants, loop bodies).

Time Complexity: O(V + E) for every algorithm in this module.
"""

from collections import deque
from collections.abc import Iterable

from hiveflow.schemas.graph import Edge, WorkflowGraph
from hiveflow.services.workflow.exceptions import (
    CyclicGraphError,
    InvalidNodeReferenceError,
)
from hiveflow.services.workflow.graph import Graph

LOOP_BODY_HANDLE = "body"

Level = list[str]


class GraphAlgorithms:
    """Static graph algorithms over ``Graph[str]``."""

    @staticmethod
    def build(
        node_ids: Iterable[str],
        edges: Iterable[Edge],
        *,
        strict: bool = True,
    ) -> Graph[str]:
        """Build a scheduling graph from workflow nodes and edges.

        Args:
            node_ids: Ids of the nodes to include.
            edges: Candidate edges.
            strict: When True, an edge touching an unknown node raises.
                When False, such edges are dropped, which is how a
                sub-graph (e.g. a loop body) keeps only its internal edges.

        Raises:
            InvalidNodeReferenceError: strict mode and a dangling edge.
        """
        graph = Graph[str]()
        for node_id in node_ids:
            graph.add_node(node_id)

        missing: list[str] = []
        for edge in edges:
            endpoints_known = edge.source in graph and edge.target in graph
            if endpoints_known:
                graph.add_edge(edge.source, edge.target)
            elif strict:
                missing.extend(
                    node_id
                    for node_id in (edge.source, edge.target)
                    if node_id not in graph and node_id not in missing
                )

        if missing:
            raise InvalidNodeReferenceError(missing)
        return graph

    @staticmethod
    def compute_levels(graph: Graph[str]) -> list[Level]:
        """Kahn's algorithm grouping nodes into dependency levels.

        Level 0 holds every node with in-degree 0. Each following level holds
        the nodes whose in-degree reaches 0 once the previous level's outgoing
        edges are removed.

        Args:
            graph: The graph to level.

        Returns:
            Levels in execution order. Every edge's source sits in a strictly
            earlier level than its target.

        Raises:
            CyclicGraphError: Some nodes could not be placed, which only
                happens when they are on or downstream of a directed cycle.

        Example:
            >>> graph = Graph.from_edges("abcd", [("a", "b"), ("a", "c"),
            ...                                   ("b", "d"), ("c", "d")])
            >>> GraphAlgorithms.compute_levels(graph)
            [['a'], ['b', 'c'], ['d']]
        """
        in_degree = {node: graph.get_in_degree(node) for node in graph}
        frontier = [node for node in graph if in_degree[node] == 0]

        levels: list[Level] = []
        placed = 0
        while frontier:
            levels.append(frontier)
            placed += len(frontier)

            next_frontier: list[str] = []
            for node in frontier:
                for successor in graph.get_successors(node):
                    in_degree[successor] -= 1
                    if in_degree[successor] == 0:
                        next_frontier.append(successor)
            frontier = next_frontier

        if placed < graph.node_count:
            unplaced = [node for node in graph if in_degree[node] > 0]
            raise CyclicGraphError(unplaced)

        return levels

    @staticmethod
    def detect_cycle(graph: Graph[str]) -> list[str] | None:
        """Find one directed cycle using DFS with path tracking.

        Returns:
            Node ids forming the cycle, first node repeated at the end,
            or None for an acyclic graph.
        """
        visited: set[str] = set()
        on_stack: set[str] = set()
        path: list[str] = []

        def dfs(node: str) -> list[str] | None:
            visited.add(node)
            on_stack.add(node)
            path.append(node)

            for neighbor in graph.get_successors(node):
                if neighbor not in visited:
                    result = dfs(neighbor)
                    if result:
                        return result
                elif neighbor in on_stack:
                    cycle_start = path.index(neighbor)
                    return [*path[cycle_start:], neighbor]

            path.pop()
            on_stack.remove(node)
            return None

        for node in graph:
            if node not in visited:
                result = dfs(node)
                if result:
                    return result

        return None

    @staticmethod
    def find_descendants(graph: Graph[str], start_nodes: Iterable[str]) -> set[str]:
        """Collect every node reachable from the start nodes (BFS).

        The start nodes themselves are included.
        """
        reachable: set[str] = set()
        queue: deque[str] = deque(start_nodes)

        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            queue.extend(
                successor
                for successor in graph.get_successors(current)
                if successor not in reachable
            )

        return reachable

    @staticmethod
    def find_disconnected(
        graph: Graph[str], exclude: Iterable[str] = ()
    ) -> list[str]:
        """Nodes that touch no edge at all, excluding the given roots."""
        excluded = set(exclude)
        return [
            node
            for node in graph
            if node not in excluded
            and graph.get_in_degree(node) == 0
            and graph.get_out_degree(node) == 0
        ]


def compute_levels(workflow: WorkflowGraph) -> list[Level]:
    """Level every node of a workflow graph.

    Raises:
        InvalidNodeReferenceError: An edge references an unknown node.
        CyclicGraphError: The graph has a directed cycle.
    """
    graph = GraphAlgorithms.build(
        (node.id for node in workflow.nodes), workflow.edges
    )
    return GraphAlgorithms.compute_levels(graph)


def find_loop_body(workflow: WorkflowGraph, loop_node_id: str) -> set[str]:
    """Nodes executed by a loop node on each iteration.

    The body starts at targets of the loop's ``body`` edges. When no
    outgoing edge of the loop carries a handle, every descendant belongs to
    the body. The loop node itself is never part of its body.
    """
    outgoing = workflow.outgoing_edges(loop_node_id)
    if any(edge.source_handle for edge in outgoing):
        roots = [
            edge.target for edge in outgoing if edge.source_handle == LOOP_BODY_HANDLE
        ]
    else:
        roots = [edge.target for edge in outgoing]

    graph = GraphAlgorithms.build(
        (node.id for node in workflow.nodes), workflow.edges, strict=False
    )
    body = GraphAlgorithms.find_descendants(graph, roots)
    body.discard(loop_node_id)
    return body


