"""
Relation Classifier.

Partitions the pairwise relations of a validated ARM matrix into the
sets the gateway synthesizer works from:
- temporal_chains: every strict "must precede" edge, direction-normalized
- direct_dependencies: the ``<d`` / ``>d`` subset of the chains
- exclusive / parallel / or relations: unordered, canonical pairs
- optional_dependencies: one-directional implications, one entry per
  cell read from that cell's side (``⇒`` optional_to, ``⇐`` optional_from)

Query helpers answer reachability and compute direct successors with
transitive reduction. All results are deterministic: sets are stored
as sorted tuples and neighbour lists follow the stable topological order.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterable

from armflow.arm.layering import topological_order
from armflow.arm.parser import ARMMatrix
from armflow.arm.relations import Existential

logger = logging.getLogger(__name__)

Edge = tuple[str, str]

EXCLUSIVE = "exclusive"
PARALLEL = "parallel"
INCLUSIVE = "inclusive"

OPTIONAL_TO = "optional_to"
OPTIONAL_FROM = "optional_from"


def canonical_pair(a: str, b: str) -> Edge:
    """Unordered pair with the lexically smaller activity first."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class RelationSets:
    """
    Classified relations of one matrix.

    Immutable; the adjacency indexes are derived once on construction.
    """

    activities: tuple[str, ...]
    order: tuple[str, ...]
    temporal_chains: tuple[Edge, ...] = ()
    direct_dependencies: tuple[Edge, ...] = ()
    exclusive_relations: tuple[Edge, ...] = ()
    parallel_relations: tuple[Edge, ...] = ()
    or_relations: tuple[Edge, ...] = ()
    optional_dependencies: tuple[tuple[str, str, str], ...] = ()

    _succ: dict[str, tuple[str, ...]] = field(default_factory=dict, init=False, repr=False, compare=False)
    _pred: dict[str, tuple[str, ...]] = field(default_factory=dict, init=False, repr=False, compare=False)
    _pairs: dict[Edge, str] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        index = {a: i for i, a in enumerate(self.order)}
        succ: dict[str, set[str]] = {a: set() for a in self.activities}
        pred: dict[str, set[str]] = {a: set() for a in self.activities}
        for a, b in (*self.temporal_chains, *self.direct_dependencies):
            succ.setdefault(a, set()).add(b)
            pred.setdefault(b, set()).add(a)

        def by_order(nodes):
            return tuple(sorted(nodes, key=lambda n: (index.get(n, len(index)), n)))

        object.__setattr__(self, "_succ", {a: by_order(s) for a, s in succ.items()})
        object.__setattr__(self, "_pred", {a: by_order(p) for a, p in pred.items()})

        pairs: dict[Edge, str] = {}
        for kind, edges in (
            (PARALLEL, self.parallel_relations),
            (INCLUSIVE, self.or_relations),
            (EXCLUSIVE, self.exclusive_relations),
        ):
            for a, b in edges:
                pairs[canonical_pair(a, b)] = kind
        object.__setattr__(self, "_pairs", pairs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def index(self, activity: str) -> int:
        try:
            return self.order.index(activity)
        except ValueError:
            return len(self.order)

    def sort_by_order(self, activities: Iterable[str]) -> list[str]:
        return sorted(set(activities), key=lambda a: (self.index(a), a))

    def successors(self, activity: str) -> list[str]:
        """Chain successors of an activity, in stable order."""
        return list(self._succ.get(activity, ()))

    def predecessors(self, activity: str) -> list[str]:
        return list(self._pred.get(activity, ()))

    def reachable(self, activity: str) -> set[str]:
        """Activities reachable from ``activity`` through temporal chains (itself excluded)."""
        return self._walk(activity, self._succ)

    def ancestors(self, activity: str) -> set[str]:
        return self._walk(activity, self._pred)

    @staticmethod
    def _walk(start: str, neighbours: dict[str, tuple[str, ...]]) -> set[str]:
        seen: set[str] = set()
        queue = deque(neighbours.get(start, ()))
        while queue:
            node = queue.popleft()
            if node in seen or node == start:
                continue
            seen.add(node)
            queue.extend(neighbours.get(node, ()))
        return seen

    def direct_successors(self, activity: str) -> list[str]:
        """
        Successors after transitive reduction.

        ``a -> c`` is dropped when another successor ``b`` of ``a`` reaches
        ``c``; the edge stays in ``temporal_chains``.
        """
        succ = self.successors(activity)
        reach = {b: self.reachable(b) for b in succ}
        return [
            c for c in succ
            if not any(c in reach[b] for b in succ if b != c)
        ]

    def direct_predecessors(self, activity: str) -> list[str]:
        """Predecessors after transitive reduction (mirror of ``direct_successors``)."""
        pred = self.predecessors(activity)
        reach = {p: self.reachable(p) for p in pred}
        return [
            p for p in pred
            if not any(q in reach[p] for q in pred if q != p)
        ]

    def start_activities(self) -> list[str]:
        """Activities with no incoming temporal chain."""
        return [a for a in self.order if not self._pred.get(a)]

    def end_activities(self) -> list[str]:
        """Activities with no outgoing temporal chain."""
        return [a for a in self.order if not self._succ.get(a)]

    def pair_relation(self, a: str, b: str) -> str | None:
        """``exclusive``, ``parallel``, ``inclusive`` or None for an unordered pair."""
        return self._pairs.get(canonical_pair(a, b))

    def pair_relations(self, activities: Iterable[str]) -> list[str | None]:
        """Relation of every unordered pair of ``activities``."""
        return [self.pair_relation(a, b) for a, b in combinations(activities, 2)]

    def latest_common_predecessor(self, activities: Iterable[str]) -> str | None:
        """Latest activity (in stable order) that precedes every given activity."""
        common: set[str] | None = None
        for activity in activities:
            ancestors = self.ancestors(activity)
            common = ancestors if common is None else common & ancestors
        if not common:
            return None
        return max(common, key=lambda a: (self.index(a), a))


def classify_relations(matrix: ARMMatrix, order: list[str] | None = None) -> RelationSets:
    """
    Classify the relations of a validated matrix.

    Args:
        matrix: Validated ARM matrix
        order: Stable topological order, recomputed when omitted

    Returns:
        RelationSets
    """
    chains: set[Edge] = set()
    direct: set[Edge] = set()
    exclusive: set[Edge] = set()
    parallel: set[Edge] = set()
    inclusive: set[Edge] = set()
    optional: set[tuple[str, str, str]] = set()

    for a, b, rel in matrix.iter_cells():
        if a == b:
            continue

        if rel.precedes:
            edge = (a, b)
        elif rel.follows:
            edge = (b, a)
        else:
            edge = None
        if edge is not None:
            chains.add(edge)
            if rel.is_direct:
                direct.add(edge)

        existential = rel.existential
        if existential == Existential.EXCLUSIVE.value:
            exclusive.add(canonical_pair(a, b))
        elif existential == Existential.OR.value:
            inclusive.add(canonical_pair(a, b))
        elif existential == Existential.EQUIVALENT.value:
            if rel.is_unordered and matrix.relation(b, a).is_unordered:
                parallel.add(canonical_pair(a, b))
        elif existential == Existential.IMPLIES.value:
            optional.add((a, b, OPTIONAL_TO))
        elif existential == Existential.IMPLIED_BY.value:
            optional.add((a, b, OPTIONAL_FROM))

    # A pair may not be both exclusive and co-occurring; exclusivity wins
    parallel -= exclusive
    inclusive -= exclusive

    if order is None:
        order = topological_order(matrix.activities, sorted(chains))

    relations = RelationSets(
        activities=tuple(matrix.activities),
        order=tuple(order),
        temporal_chains=tuple(sorted(chains)),
        direct_dependencies=tuple(sorted(direct)),
        exclusive_relations=tuple(sorted(exclusive)),
        parallel_relations=tuple(sorted(parallel)),
        or_relations=tuple(sorted(inclusive)),
        optional_dependencies=tuple(sorted(optional)),
    )
    logger.debug(
        f"Classified {len(matrix.activities)} activities: "
        f"{len(chains)} chains, {len(direct)} direct, {len(exclusive)} exclusive, "
        f"{len(parallel)} parallel, {len(inclusive)} inclusive"
    )
    return relations
