"""
Gateway Policy.

Gateway-type inference and grouping of branch targets.

``infer_gateway_type`` is the documented "all pairs agree" heuristic:
- every pair mutually exclusive -> exclusive (XOR)
- at least one inclusive pair and no exclusive pair -> inclusive (OR)
- anything else, mixed pairs included -> parallel (AND)

Grouping strategies decide how the targets of one anchor are split into
gateway groups. They are versioned, swappable objects so the synthesizer
runs one parameterized pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from armflow.arm.classifier import EXCLUSIVE, INCLUSIVE, PARALLEL, RelationSets
from armflow.bpmn.graph import NodeKind

logger = logging.getLogger(__name__)


class GatewayKind(str, Enum):
    EXCLUSIVE = NodeKind.EXCLUSIVE_GATEWAY.value
    PARALLEL = NodeKind.PARALLEL_GATEWAY.value
    INCLUSIVE = NodeKind.INCLUSIVE_GATEWAY.value

    @property
    def node_kind(self) -> NodeKind:
        return NodeKind(self.value)

    @property
    def short_label(self) -> str:
        return _SHORT_LABELS[self]


_SHORT_LABELS = {
    GatewayKind.EXCLUSIVE: "XOR",
    GatewayKind.PARALLEL: "AND",
    GatewayKind.INCLUSIVE: "OR",
}


def infer_gateway_type(pairs: Iterable[str | None]) -> GatewayKind:
    """
    Infer a gateway kind from the pairwise relations of its branch targets.

    Args:
        pairs: Relation of every target pair (``exclusive``, ``inclusive``,
            ``parallel`` or None for unrelated)

    Returns:
        GatewayKind; parallel when there are no pairs
    """
    pairs = list(pairs)
    if not pairs:
        return GatewayKind.PARALLEL
    if all(p == EXCLUSIVE for p in pairs):
        return GatewayKind.EXCLUSIVE
    if any(p == INCLUSIVE for p in pairs) and not any(p == EXCLUSIVE for p in pairs):
        return GatewayKind.INCLUSIVE
    return GatewayKind.PARALLEL


def infer_group_type(targets: Iterable[str], relations: RelationSets) -> GatewayKind:
    return infer_gateway_type(relations.pair_relations(list(targets)))


def gateway_label(kind: GatewayKind, role: str) -> str:
    """Display name, e.g. ``XOR Split`` or ``AND Join``."""
    return f"{kind.short_label} {role.capitalize()}"


@dataclass
class GatewayGroup:
    """Targets that share one gateway of the given kind."""

    kind: GatewayKind
    targets: list[str] = field(default_factory=list)

    @property
    def is_singleton(self) -> bool:
        return len(self.targets) == 1


class GatewayGroupingStrategy(ABC):
    """Splits the targets of one anchor into gateway groups."""

    name: str = "abstract"

    @abstractmethod
    def group(
        self,
        anchor: str,
        targets: list[str],
        relations: RelationSets,
        levels: dict[str, int],
    ) -> list[GatewayGroup]:
        """Return one or more groups covering every target exactly once."""


class PairwiseGroupingStrategy(GatewayGroupingStrategy):
    """All targets behind one gateway, kind inferred over every pair."""

    name = "pairwise"

    def group(self, anchor, targets, relations, levels):
        return [GatewayGroup(infer_group_type(targets, relations), list(targets))]


_COMPONENT_KINDS = (
    (PARALLEL, GatewayKind.PARALLEL),
    (INCLUSIVE, GatewayKind.INCLUSIVE),
    (EXCLUSIVE, GatewayKind.EXCLUSIVE),
)


def _components(nodes: list[str], linked) -> list[list[str]]:
    """Connected components of ``nodes`` under the ``linked(a, b)`` predicate."""
    remaining = list(nodes)
    components = []
    while remaining:
        stack = [remaining.pop(0)]
        component = []
        while stack:
            node = stack.pop()
            component.append(node)
            for other in list(remaining):
                if linked(node, other):
                    remaining.remove(other)
                    stack.append(other)
        components.append(sorted(component, key=nodes.index))
    return components


class RelationGroupingStrategy(GatewayGroupingStrategy):
    """
    One group per relation kind.

    Targets connected by parallel, then inclusive, then exclusive pairs
    are collected into one group per kind; targets left over become
    singleton groups. Used for the start event, where several
    independently rooted gateways are merged under one higher-level gateway.
    """

    name = "relation"

    def group(self, anchor, targets, relations, levels):
        remaining = list(targets)
        groups: list[GatewayGroup] = []

        for relation, kind in _COMPONENT_KINDS:
            def linked(a, b, relation=relation):
                return relations.pair_relation(a, b) == relation

            members = [
                node
                for component in _components(remaining, linked)
                if len(component) > 1
                for node in component
            ]
            if members:
                groups.append(GatewayGroup(kind, members))
                remaining = [t for t in remaining if t not in members]

        groups.extend(GatewayGroup(GatewayKind.PARALLEL, [t]) for t in remaining)

        if len(groups) <= 1 or all(g.is_singleton for g in groups):
            return [GatewayGroup(infer_group_type(targets, relations), list(targets))]
        return groups


class LayerAwareGroupingStrategy(GatewayGroupingStrategy):
    """
    Group targets that sit on the same level.

    Targets on one level whose pairs all agree on a relation share a
    gateway of that kind; the remaining targets share a parallel gateway.
    """

    name = "layer_aware"

    def group(self, anchor, targets, relations, levels):
        by_level: dict[int, list[str]] = {}
        for target in targets:
            by_level.setdefault(levels.get(target, 0), []).append(target)

        groups: list[GatewayGroup] = []
        rest: list[str] = []
        for level in sorted(by_level):
            bucket = by_level[level]
            pairs = relations.pair_relations(bucket)
            if len(bucket) > 1 and pairs[0] is not None and all(p == pairs[0] for p in pairs):
                groups.append(GatewayGroup(infer_gateway_type(pairs), bucket))
            else:
                rest.extend(bucket)

        if rest:
            groups.append(GatewayGroup(GatewayKind.PARALLEL, rest))

        if len(groups) == 1:
            return [GatewayGroup(infer_group_type(targets, relations), list(targets))]
        logger.debug(f"Layer-aware grouping at {anchor}: {[g.targets for g in groups]}")
        return groups


GROUPING_STRATEGIES: dict[str, type[GatewayGroupingStrategy]] = {
    PairwiseGroupingStrategy.name: PairwiseGroupingStrategy,
    RelationGroupingStrategy.name: RelationGroupingStrategy,
    LayerAwareGroupingStrategy.name: LayerAwareGroupingStrategy,
}


def get_grouping_strategy(name: str) -> GatewayGroupingStrategy:
    """Look up a grouping strategy by name."""
    try:
        return GROUPING_STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown grouping strategy '{name}'. Available: {sorted(GROUPING_STRATEGIES)}"
        )
