"""
Tests for graph conversion layer.

Tests ProcessGraph ↔ NetworkX round-trips, relation graphs and the
structural checks.
"""

from __future__ import annotations

import pytest

from armflow.arm.classifier import classify_relations
from armflow.bpmn.graph import END_EVENT_ID, SPLIT, START_EVENT_ID, NodeKind, ProcessGraph
from armflow.bpmn.graph_convert import (
    networkx_to_process_graph,
    process_graph_to_networkx,
    relations_to_networkx,
    structural_problems,
)
from armflow.bpmn.synthesizer import GatewaySynthesizer
from tests.fixtures.arm_matrices import diamond_matrix, two_starts_matrix


@pytest.fixture
def diamond_graph() -> ProcessGraph:
    return GatewaySynthesizer().synthesize(classify_relations(diamond_matrix())).graph


class TestProcessGraphToNetworkX:
    def test_basic_conversion(self, diamond_graph):
        G = process_graph_to_networkx(diamond_graph)
        assert len(G.nodes) == len(diamond_graph.nodes)
        assert len(G.edges) == len(diamond_graph.flows)
        assert (START_EVENT_ID, "a") in G.edges

    def test_node_attributes_preserved(self, diamond_graph):
        G = process_graph_to_networkx(diamond_graph)
        assert G.nodes["a"]["kind"] == "task"
        assert G.nodes["parallelGateway_Split_a"]["role"] == "split"
        assert G.nodes["parallelGateway_Split_a"]["name"] == "AND Split"

    def test_edge_ids(self, diamond_graph):
        G = process_graph_to_networkx(diamond_graph)
        assert G.edges["d", END_EVENT_ID]["id"] == "Flow_d_EndEvent_1"


class TestNetworkXToProcessGraph:
    def test_round_trip(self, diamond_graph):
        G = process_graph_to_networkx(diamond_graph)
        graph = networkx_to_process_graph(G)
        assert [n.id for n in graph.nodes] == [n.id for n in diamond_graph.nodes]
        assert sorted(f.id for f in graph.flows) == sorted(f.id for f in diamond_graph.flows)
        assert graph.node("parallelGateway_Join_d").is_join
        assert not graph.frozen

    def test_guard_violations_dropped(self):
        import networkx as nx

        G = nx.DiGraph()
        G.add_node("a", kind="task")
        G.add_node("b", kind="task")
        G.add_node("c", kind="task")
        G.add_edge("a", "b")
        G.add_edge("a", "c")
        graph = networkx_to_process_graph(G)
        assert len(graph.flows) == 1

    def test_missing_kind_defaults_to_task(self):
        import networkx as nx

        G = nx.DiGraph()
        G.add_edge("x", "y")
        graph = networkx_to_process_graph(G)
        assert graph.node("x").kind == NodeKind.TASK
        assert graph.node("x").name == "x"


class TestRelationsToNetworkX:
    def test_temporal_chains(self):
        relations = classify_relations(diamond_matrix())
        G = relations_to_networkx(relations)
        assert set(G.edges) == set(relations.temporal_chains)
        assert not G.edges["a", "b"]["direct"]

    def test_direct_only(self):
        relations = classify_relations(two_starts_matrix())
        G = relations_to_networkx(relations, direct_only=True)
        assert set(G.edges) == {("a", "c"), ("b", "c")}
        assert G.edges["a", "c"]["direct"]
        assert set(G.nodes) == {"a", "b", "c"}


class TestStructuralProblems:
    def test_synthesized_graph_is_clean(self, diamond_graph):
        assert structural_problems(diamond_graph) == []

    def test_split_with_one_branch(self):
        graph = ProcessGraph()
        graph.add_node(START_EVENT_ID, NodeKind.START_EVENT)
        graph.add_node("s", NodeKind.PARALLEL_GATEWAY, role=SPLIT)
        graph.add_node("a", NodeKind.TASK)
        graph.add_node(END_EVENT_ID, NodeKind.END_EVENT)
        graph.add_flow(START_EVENT_ID, "s")
        graph.add_flow("s", "a")
        graph.add_flow("a", END_EVENT_ID)
        problems = structural_problems(graph)
        assert problems == ["split s has 1 incoming / 1 outgoing"]

    def test_unreachable_node(self):
        graph = ProcessGraph()
        graph.add_node(START_EVENT_ID, NodeKind.START_EVENT)
        graph.add_node("a", NodeKind.TASK)
        graph.add_node(END_EVENT_ID, NodeKind.END_EVENT)
        graph.add_flow(START_EVENT_ID, END_EVENT_ID)
        problems = structural_problems(graph)
        assert problems == [f"a is not reachable from {START_EVENT_ID}"]

    def test_cycle_detected(self):
        graph = ProcessGraph()
        graph.add_node("g", NodeKind.EXCLUSIVE_GATEWAY)
        graph.add_node("a", NodeKind.TASK)
        graph.add_flow("g", "a")
        graph.add_flow("a", "g")
        problems = structural_problems(graph)
        assert any("cycle" in p for p in problems)
