"""
Random dependency graph over grid cells and its topological order.

The graph is kept as flat per-node adjacency lists plus an in-degree array,
indexed by cell id. Edges are only inserted after a reachability check, so
the graph is acyclic by construction.
"""

from collections import deque
from dataclasses import dataclass
from typing import List

from .randomizer import SeededRandomizer
from ..errors import GraphInvariantViolated

MIN_FAN_OUT = 2
FAN_OUT_CHOICES = 3  # fan-out in {2, 3, 4}
ROOT_REPAIR_ATTEMPTS = 10


@dataclass
class DependencyGraph:
    """
    Directed acyclic graph over ``size`` nodes.

    Fields:
        edges: edges[j] lists every r with an edge j -> r (duplicates allowed)
        in_degree: in_degree[r] counts incoming edges of r
    """
    edges: List[List[int]]
    in_degree: List[int]

    @classmethod
    def empty(cls, size: int) -> 'DependencyGraph':
        return cls(edges=[[] for _ in range(size)], in_degree=[0] * size)

    @property
    def size(self) -> int:
        return len(self.in_degree)

    def add_edge(self, source: int, target: int) -> None:
        self.edges[source].append(target)
        self.in_degree[target] += 1

    def would_create_cycle(self, source: int, target: int) -> bool:
        """
        Check whether adding source -> target would close a cycle.

        Args:
            source: Proposed predecessor
            target: Proposed successor

        Returns:
            True if source is reachable from target
        """
        visited = [False] * self.size
        stack = [target]
        while stack:
            node = stack.pop()
            if node == source:
                return True
            if visited[node]:
                continue
            visited[node] = True
            stack.extend(self.edges[node])
        return False

    def try_add_edge(self, source: int, target: int) -> bool:
        """Add source -> target unless it is a self loop or would create a cycle."""
        if source == target or self.would_create_cycle(source, target):
            return False
        self.add_edge(source, target)
        return True

    def roots(self) -> List[int]:
        return [node for node, degree in enumerate(self.in_degree) if degree == 0]


def build_dependency_graph(seed: int, grid_size: int = 10) -> DependencyGraph:
    """
    Build the origin's random dependency graph for a seed.

    A separate randomizer with the same seed is used purely as a number
    source; its permutation is never read.

    Args:
        seed: 64-bit page seed
        grid_size: Grid dimension

    Returns:
        Acyclic DependencyGraph over grid_size**2 nodes
    """
    rng = SeededRandomizer(seed, grid_size)
    size = rng.size
    graph = DependencyGraph.empty(size)

    for r in range(size):
        fan_out = rng.next() % FAN_OUT_CHOICES + MIN_FAN_OUT
        for _ in range(fan_out):
            j = rng.next() % size
            graph.try_add_edge(j, r)

    # Give isolated roots a chance to acquire one predecessor
    for r in range(size):
        if graph.in_degree[r] != 0:
            continue
        for _ in range(ROOT_REPAIR_ATTEMPTS):
            s = rng.next() % size
            if graph.try_add_edge(s, r):
                break

    return graph


def topological_sort(graph: DependencyGraph) -> List[int]:
    """
    Order the graph with Kahn's algorithm (FIFO queue, ascending roots).

    Args:
        graph: Graph to sort; it is not modified

    Returns:
        List of all node ids in topological order

    Raises:
        GraphInvariantViolated: If the order does not cover every node
    """
    in_degree = list(graph.in_degree)
    queue = deque(node for node in range(graph.size) if in_degree[node] == 0)
    order = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for successor in graph.edges[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) != graph.size:
        raise GraphInvariantViolated(
            f"Scramble path covers {len(order)} of {graph.size} cells"
        )

    return order
