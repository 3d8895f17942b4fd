"""
Graph Mutation Guard - keeps the prerequisite graph acyclic.

Edges point from an item to the item it requires. Adding
item -> prerequisite closes a cycle exactly when item is already reachable
from prerequisite, so every check is one reachability query on a DiGraph
built from the current edge snapshot.
"""

from typing import Iterable, List, Optional, Tuple

import networkx as nx

from lms_access.kernel.errors import CycleRejected, SelfReferenceRejected
from lms_access.logging_config import get_logger

logger = get_logger(__name__)

Edge = Tuple[str, str]  # (item_id, prerequisite_id)


def build_requirement_graph(edges: Iterable[Edge]) -> nx.DiGraph:
    """DiGraph of "requires" edges. Adjacency keeps edge insertion order."""
    graph = nx.DiGraph()
    graph.add_edges_from(edges)
    return graph


def find_requirement_path(start: str, goal: str, edges: Iterable[Edge]) -> Optional[List[str]]:
    """
    Shortest chain of "requires" edges from start to goal.

    Returns the node list [start, ..., goal], or None if goal is unreachable.
    """
    if start == goal:
        return [start]

    graph = build_requirement_graph(edges)
    try:
        return nx.shortest_path(graph, start, goal)
    except (nx.NetworkXNoPath, nx.NodeNotFound):
        return None


def would_create_cycle(item_id: str, prerequisite_id: str, current_edges: Iterable[Edge]) -> bool:
    """True if adding item_id -> prerequisite_id would make the graph cyclic."""
    graph = build_requirement_graph(current_edges)
    graph.add_nodes_from((item_id, prerequisite_id))
    return nx.has_path(graph, prerequisite_id, item_id)


def transitive_dependents(item_id: str, edges: Iterable[Edge]) -> List[str]:
    """Every item that (transitively) requires item_id, breadth-first, excluding item_id."""
    graph = build_requirement_graph(edges)
    if item_id not in graph:
        return []
    return [dependent for _, dependent in nx.bfs_edges(graph.reverse(copy=False), item_id)]


class GraphMutationGuard:
    """Validates a proposed edge against a snapshot of the edge set."""

    def validate_new_edge(self, item_id: str, prerequisite_id: str, current_edges: Iterable[Edge]) -> None:
        """
        Raise if the edge must not be added.

        Raises:
            SelfReferenceRejected: item_id == prerequisite_id
            CycleRejected: prerequisite_id already (transitively) requires item_id
        """
        if item_id == prerequisite_id:
            raise SelfReferenceRejected(item_id)

        path = find_requirement_path(prerequisite_id, item_id, current_edges)
        if path is not None:
            logger.info(
                "Rejected prerequisite that would close a cycle",
                extra={
                    "item_id": item_id,
                    "prerequisite_id": prerequisite_id,
                    "existing_chain": " -> ".join(path),
                },
            )
            raise CycleRejected(item_id, prerequisite_id)
