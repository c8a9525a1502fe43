"""
Graph Conversion Layer.

Converts ProcessGraph and RelationSets to NetworkX directed graphs and
back, and runs structural checks on a synthesized graph.
NetworkX is imported lazily.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from armflow.arm.classifier import RelationSets
from armflow.bpmn.graph import END_EVENT_ID, START_EVENT_ID, NodeKind, ProcessGraph

if TYPE_CHECKING:
    import networkx as nx

logger = logging.getLogger(__name__)


def process_graph_to_networkx(graph: ProcessGraph) -> "nx.DiGraph":
    """Convert a ProcessGraph to a NetworkX DiGraph, preserving node/flow attributes."""
    import networkx as nx

    G = nx.DiGraph()
    for node in graph.nodes:
        G.add_node(node.id, kind=node.kind.value, name=node.name, role=node.role)
    for flow in graph.flows:
        G.add_edge(flow.source, flow.target, id=flow.id)
    return G


def networkx_to_process_graph(G: "nx.DiGraph") -> ProcessGraph:
    """Convert a NetworkX DiGraph back to an (unfrozen) ProcessGraph."""
    graph = ProcessGraph()
    for node_id, attrs in G.nodes(data=True):
        graph.add_node(
            str(node_id),
            NodeKind(attrs.get("kind", NodeKind.TASK.value)),
            name=attrs.get("name", str(node_id)),
            role=attrs.get("role"),
        )
    for u, v in G.edges:
        if not graph.add_flow(str(u), str(v)):
            logger.warning(f"Edge {u} -> {v} violates the task guards and was dropped")
    return graph


def relations_to_networkx(relations: RelationSets, direct_only: bool = False) -> "nx.DiGraph":
    """Temporal chains (or only direct dependencies) as a NetworkX DiGraph."""
    import networkx as nx

    G = nx.DiGraph()
    G.add_nodes_from(relations.order)
    edges = relations.direct_dependencies if direct_only else relations.temporal_chains
    for a, b in edges:
        G.add_edge(a, b, direct=(a, b) in relations.direct_dependencies)
    return G


def structural_problems(graph: ProcessGraph) -> list[str]:
    """
    Check gateway well-formedness and connectivity.

    - splits: exactly 1 incoming, at least 2 outgoing
    - joins: at least 2 incoming, exactly 1 outgoing
    - tasks: at most 1 incoming and 1 outgoing
    - acyclic, every node on a start-to-end path

    Returns:
        Problem descriptions; empty when the graph is well-formed
    """
    import networkx as nx

    G = process_graph_to_networkx(graph)
    problems: list[str] = []

    for node in graph.nodes:
        n_in, n_out = G.in_degree(node.id), G.out_degree(node.id)
        if node.is_split and (n_in != 1 or n_out < 2):
            problems.append(f"split {node.id} has {n_in} incoming / {n_out} outgoing")
        elif node.is_join and (n_in < 2 or n_out != 1):
            problems.append(f"join {node.id} has {n_in} incoming / {n_out} outgoing")
        elif node.is_task and (n_in > 1 or n_out > 1):
            problems.append(f"task {node.id} has {n_in} incoming / {n_out} outgoing")

    if not nx.is_directed_acyclic_graph(G):
        problems.append(f"graph has a cycle: {nx.find_cycle(G)}")

    if START_EVENT_ID in G and END_EVENT_ID in G:
        from_start = nx.descendants(G, START_EVENT_ID) | {START_EVENT_ID}
        to_end = nx.ancestors(G, END_EVENT_ID) | {END_EVENT_ID}
        for node_id in G.nodes:
            if node_id not in from_start:
                problems.append(f"{node_id} is not reachable from {START_EVENT_ID}")
            elif node_id not in to_end:
                problems.append(f"{node_id} does not reach {END_EVENT_ID}")

    return problems
