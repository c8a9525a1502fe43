"""
Topological Layering.

Deterministic Kahn's algorithm over strict-precedence edges:
- Zero in-degree frontier kept sorted by activity id (lexical tie-break)
- Newly released nodes inserted at their sorted position, not appended
- Cycle detection on the unvisited remainder, naming one offending edge

Level numbers are provided through versioned ``LevelAssignmentStrategy``
objects so the synthesizer can swap the assignment without changing the
order computation.
"""

from __future__ import annotations

import bisect
import logging
from abc import ABC, abstractmethod
from typing import Iterable

from armflow.arm.errors import CyclicDependency

logger = logging.getLogger(__name__)

Edge = tuple[str, str]


def _build_adjacency(
    activities: Iterable[str], edges: Iterable[Edge]
) -> tuple[list[str], dict[str, list[str]], dict[str, int]]:
    nodes = list(dict.fromkeys(activities))
    adjacency: dict[str, list[str]] = {node: [] for node in nodes}
    in_degree: dict[str, int] = {node: 0 for node in nodes}

    for source, target in edges:
        for node in (source, target):
            if node not in adjacency:
                nodes.append(node)
                adjacency[node] = []
                in_degree[node] = 0
        if target in adjacency[source]:
            continue
        adjacency[source].append(target)
        in_degree[target] += 1

    for successors in adjacency.values():
        successors.sort()

    return nodes, adjacency, in_degree


def find_cycle(nodes: Iterable[str], adjacency: dict[str, list[str]]) -> list[str] | None:
    """
    Find and return a cycle if one exists.

    Uses DFS with coloring (WHITE unvisited, GRAY on the current path,
    BLACK finished). Returns the cycle as a closed node list
    ``[n0, n1, ..., n0]``, or None.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    nodes = sorted(nodes)
    color = {node: WHITE for node in nodes}

    for root in nodes:
        if color[root] != WHITE:
            continue
        # Iterative DFS; the stack is exactly the current GRAY path
        color[root] = GRAY
        stack = [(root, iter(adjacency.get(root, [])))]
        while stack:
            node, successors = stack[-1]
            advanced = False
            for successor in successors:
                if successor not in color:
                    continue
                if color[successor] == GRAY:
                    path = [n for n, _ in stack]
                    return path[path.index(successor):] + [successor]
                if color[successor] == WHITE:
                    color[successor] = GRAY
                    stack.append((successor, iter(adjacency.get(successor, []))))
                    advanced = True
                    break
            if not advanced:
                color[node] = BLACK
                stack.pop()

    return None


def _raise_cycle(remaining: list[str], adjacency: dict[str, list[str]]) -> None:
    cycle = find_cycle(remaining, adjacency)
    if cycle and len(cycle) >= 2:
        pair = (cycle[0], cycle[1])
        description = " → ".join(cycle)
    else:
        pair = None
        description = ", ".join(sorted(remaining))
    raise CyclicDependency(
        f"Cycle detected: temporal relations are inconsistent ({description})",
        pair=pair,
        cycle=cycle,
    )


def topological_order(activities: Iterable[str], edges: Iterable[Edge]) -> list[str]:
    """
    Return activities in a stable topological order.

    Args:
        activities: All activities (isolated ones included)
        edges: Directed "must precede" edges

    Returns:
        Every activity exactly once, sources first, ties broken lexically

    Raises:
        CyclicDependency: If the edges contain a cycle
    """
    nodes, adjacency, in_degree = _build_adjacency(activities, edges)

    frontier = sorted(node for node in nodes if in_degree[node] == 0)
    order: list[str] = []

    while frontier:
        node = frontier.pop(0)
        order.append(node)
        for successor in adjacency[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                bisect.insort(frontier, successor)

    if len(order) < len(nodes):
        visited = set(order)
        _raise_cycle([n for n in nodes if n not in visited], adjacency)

    return order


def compute_levels(activities: Iterable[str], edges: Iterable[Edge]) -> dict[str, int]:
    """
    Level of every activity: 0 for sources, else 1 + max(level(predecessor)).

    BFS relaxation over the same edge set as ``topological_order``.

    Raises:
        CyclicDependency: If some activities are never released (cycle)
    """
    nodes, adjacency, in_degree = _build_adjacency(activities, edges)

    levels = {node: 0 for node in nodes}
    queue = sorted(node for node in nodes if in_degree[node] == 0)
    released = 0

    while queue:
        node = queue.pop(0)
        released += 1
        for successor in adjacency[node]:
            levels[successor] = max(levels[successor], levels[node] + 1)
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if released < len(nodes):
        _raise_cycle([n for n in nodes if in_degree[n] > 0], adjacency)

    return {node: levels[node] for node in nodes}


class LevelAssignmentStrategy(ABC):
    """Assigns a level number to every activity of an acyclic edge set."""

    name: str = "abstract"

    @abstractmethod
    def compute_levels(self, activities: list[str], edges: list[Edge]) -> dict[str, int]:
        """Return activity -> level. Must satisfy level(a) < level(b) for every edge a -> b."""


class LongestPathLevelStrategy(LevelAssignmentStrategy):
    """Level = length of the longest precedence path reaching the activity."""

    name = "longest_path"

    def compute_levels(self, activities: list[str], edges: list[Edge]) -> dict[str, int]:
        return compute_levels(activities, edges)


class TopologicalIndexLevelStrategy(LevelAssignmentStrategy):
    """Level = position in the stable topological order (one activity per level)."""

    name = "topological_index"

    def compute_levels(self, activities: list[str], edges: list[Edge]) -> dict[str, int]:
        return {node: i for i, node in enumerate(topological_order(activities, edges))}


LEVEL_STRATEGIES: dict[str, type[LevelAssignmentStrategy]] = {
    LongestPathLevelStrategy.name: LongestPathLevelStrategy,
    TopologicalIndexLevelStrategy.name: TopologicalIndexLevelStrategy,
}


def get_level_strategy(name: str) -> LevelAssignmentStrategy:
    """Look up a level strategy by name."""
    try:
        return LEVEL_STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown level strategy '{name}'. Available: {sorted(LEVEL_STRATEGIES)}"
        )
