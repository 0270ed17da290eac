"""Directed graph data structure for workflow scheduling.

This module provides a small directed graph used by the level scheduler,
the validator's diagnostics and loop-body discovery.

Nodes keep insertion order so that levels list nodes in the order they
were authored, which keeps logs and execution records stable across runs.

Time Complexity:
- Node/Edge addition: O(1)
- Leveling, cycle detection, reachability: O(V + E)
"""

from collections import defaultdict
from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

NodeId = TypeVar("NodeId", bound=Hashable)


class Graph(Generic[NodeId]):
    """Directed multigraph with forward and reverse adjacency.

    Type Parameters:
        NodeId: Hashable node identifier (node ids are strings in workflows).

    Example:
        >>> graph = Graph[str]()
        >>> graph.add_edge("trigger", "build")
        >>> graph.get_successors("trigger")
        ['build']
    """

    __slots__ = ("_adjacency", "_edge_count", "_nodes", "_reverse_adjacency")

    def __init__(self) -> None:
        self._adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        self._reverse_adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        self._nodes: dict[NodeId, None] = {}
        self._edge_count: int = 0

    @classmethod
    def from_edges(
        cls,
        node_ids: Iterable[NodeId],
        edges: Iterable[tuple[NodeId, NodeId]],
    ) -> "Graph[NodeId]":
        """Build a graph from a node list and (source, target) pairs."""
        graph = cls()
        for node_id in node_ids:
            graph.add_node(node_id)
        for source, target in edges:
            graph.add_edge(source, target)
        return graph

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    @property
    def nodes(self) -> list[NodeId]:
        """Node ids in insertion order."""
        return list(self._nodes)

    def add_node(self, node_id: NodeId) -> None:
        """Add a node to the graph. Adding an existing node is a no-op."""
        self._nodes.setdefault(node_id, None)

    def add_edge(self, source: NodeId, target: NodeId) -> None:
        """Add a directed edge from source to target.

        Both nodes are added to the graph if they don't exist. Parallel
        edges are kept: two edges between the same nodes count twice
        toward the target's in-degree.
        """
        self.add_node(source)
        self.add_node(target)
        self._adjacency[source].append(target)
        self._reverse_adjacency[target].append(source)
        self._edge_count += 1

    def get_successors(self, node_id: NodeId) -> list[NodeId]:
        return self._adjacency.get(node_id, [])

    def get_predecessors(self, node_id: NodeId) -> list[NodeId]:
        return self._reverse_adjacency.get(node_id, [])

    def get_in_degree(self, node_id: NodeId) -> int:
        return len(self._reverse_adjacency.get(node_id, []))

    def get_out_degree(self, node_id: NodeId) -> int:
        return len(self._adjacency.get(node_id, []))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[NodeId]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={self.node_count}, edges={self.edge_count})"
