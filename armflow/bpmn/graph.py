"""
Process Graph.

Nodes (tasks, start/end events, gateways) and sequence flows between
them. The graph enforces the structural guards the synthesizer relies on:
- no duplicate flows between the same two nodes
- a task has at most one incoming and one outgoing flow
- an acyclic graph rejects any flow that would close a cycle

Flows are kept in insertion order so serialization is deterministic.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

START_EVENT_ID = "StartEvent_1"
END_EVENT_ID = "EndEvent_1"


class NodeKind(str, Enum):
    """Element kinds of the process dialect (values are the XML tag names)."""

    TASK = "task"
    START_EVENT = "startEvent"
    END_EVENT = "endEvent"
    EXCLUSIVE_GATEWAY = "exclusiveGateway"
    PARALLEL_GATEWAY = "parallelGateway"
    INCLUSIVE_GATEWAY = "inclusiveGateway"

    @property
    def is_gateway(self) -> bool:
        return self in (
            NodeKind.EXCLUSIVE_GATEWAY,
            NodeKind.PARALLEL_GATEWAY,
            NodeKind.INCLUSIVE_GATEWAY,
        )


SPLIT = "split"
JOIN = "join"


@dataclass
class ProcessNode:
    id: str
    kind: NodeKind
    name: str = ""
    role: str | None = None  # SPLIT / JOIN for gateways

    @property
    def is_gateway(self) -> bool:
        return self.kind.is_gateway

    @property
    def is_split(self) -> bool:
        return self.is_gateway and self.role == SPLIT

    @property
    def is_join(self) -> bool:
        return self.is_gateway and self.role == JOIN

    @property
    def is_task(self) -> bool:
        return self.kind == NodeKind.TASK


@dataclass(frozen=True)
class SequenceFlow:
    source: str
    target: str

    @property
    def id(self) -> str:
        return f"Flow_{self.source}_{self.target}"


class ProcessGraph:
    """Mutable process graph; ``freeze()`` makes it read-only."""

    def __init__(self, acyclic: bool = False):
        self.acyclic = acyclic
        self._nodes: dict[str, ProcessNode] = {}
        self._flows: dict[tuple[str, str], SequenceFlow] = {}
        self._outgoing: dict[str, list[str]] = {}
        self._incoming: dict[str, list[str]] = {}
        self._frozen = False

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("ProcessGraph is frozen")

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_node(
        self,
        node_id: str,
        kind: NodeKind,
        name: str = "",
        role: str | None = None,
    ) -> ProcessNode:
        """Add a node; an existing node with the same id is returned unchanged."""
        self._check_mutable()
        if node_id in self._nodes:
            return self._nodes[node_id]
        node = ProcessNode(id=node_id, kind=kind, name=name, role=role)
        self._nodes[node_id] = node
        self._outgoing[node_id] = []
        self._incoming[node_id] = []
        return node

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every flow touching it."""
        self._check_mutable()
        for target in list(self._outgoing.get(node_id, [])):
            self.remove_flow(node_id, target)
        for source in list(self._incoming.get(node_id, [])):
            self.remove_flow(source, node_id)
        self._nodes.pop(node_id, None)
        self._outgoing.pop(node_id, None)
        self._incoming.pop(node_id, None)

    def can_add_flow(self, source: str, target: str) -> bool:
        """True if ``source -> target`` is new and respects the task and cycle guards."""
        if source not in self._nodes or target not in self._nodes:
            return False
        if source == target or (source, target) in self._flows:
            return False
        if self._nodes[source].is_task and self._outgoing[source]:
            return False
        if self._nodes[target].is_task and self._incoming[target]:
            return False
        if self.acyclic and self.can_reach(target, source):
            return False
        return True

    def add_flow(self, source: str, target: str) -> bool:
        """Add a sequence flow. Returns False when a guard rejects it."""
        self._check_mutable()
        if not self.can_add_flow(source, target):
            logger.debug(f"Flow {source} -> {target} rejected")
            return False
        self._flows[(source, target)] = SequenceFlow(source, target)
        self._outgoing[source].append(target)
        self._incoming[target].append(source)
        return True

    def remove_flow(self, source: str, target: str) -> bool:
        self._check_mutable()
        if self._flows.pop((source, target), None) is None:
            return False
        self._outgoing[source].remove(target)
        self._incoming[target].remove(source)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> ProcessNode:
        return self._nodes[node_id]

    @property
    def nodes(self) -> list[ProcessNode]:
        return list(self._nodes.values())

    @property
    def flows(self) -> list[SequenceFlow]:
        return list(self._flows.values())

    def has_flow(self, source: str, target: str) -> bool:
        return (source, target) in self._flows

    def outgoing(self, node_id: str) -> list[str]:
        return list(self._outgoing.get(node_id, []))

    def incoming(self, node_id: str) -> list[str]:
        return list(self._incoming.get(node_id, []))

    def outgoing_flows(self, node_id: str) -> list[SequenceFlow]:
        return [self._flows[(node_id, t)] for t in self._outgoing.get(node_id, [])]

    def incoming_flows(self, node_id: str) -> list[SequenceFlow]:
        return [self._flows[(s, node_id)] for s in self._incoming.get(node_id, [])]

    def gateways(self) -> list[ProcessNode]:
        return [n for n in self._nodes.values() if n.is_gateway]

    def splits(self) -> list[ProcessNode]:
        return [n for n in self._nodes.values() if n.is_split]

    def joins(self) -> list[ProcessNode]:
        return [n for n in self._nodes.values() if n.is_join]

    def tasks(self) -> list[ProcessNode]:
        return [n for n in self._nodes.values() if n.is_task]

    def reachable_from(self, node_id: str) -> set[str]:
        """Nodes reachable from ``node_id`` by following flows (itself excluded)."""
        seen: set[str] = set()
        queue = deque(self._outgoing.get(node_id, []))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self._outgoing.get(current, []))
        seen.discard(node_id)
        return seen

    def can_reach(self, source: str, target: str) -> bool:
        return target in self.reachable_from(source)

    def __repr__(self) -> str:
        return f"ProcessGraph(nodes={len(self._nodes)}, flows={len(self._flows)})"
