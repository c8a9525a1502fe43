"""
Tests for process XML serialization.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from armflow.arm.classifier import classify_relations
from armflow.bpmn.graph import NodeKind, ProcessGraph
from armflow.bpmn.serializer import BPMN_NS, serialize
from armflow.bpmn.synthesizer import GatewaySynthesizer
from tests.fixtures.arm_matrices import diamond_matrix

NS = {"bpmn": BPMN_NS}


@pytest.fixture
def diamond_xml() -> str:
    result = GatewaySynthesizer().synthesize(classify_relations(diamond_matrix()))
    return serialize(result.graph)


def parse(xml: str) -> ET.Element:
    return ET.fromstring(xml.encode("utf-8"))


class TestEnvelope:
    def test_declaration_and_root(self, diamond_xml):
        assert diamond_xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        root = parse(diamond_xml)
        assert root.tag == f"{{{BPMN_NS}}}definitions"
        assert root.get("id") == "Definitions_1"
        assert root.get("targetNamespace") == "http://bpmn.io/schema/bpmn"

    def test_bpmn_prefix(self, diamond_xml):
        assert "<bpmn:definitions" in diamond_xml
        assert 'xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL"' in diamond_xml

    def test_single_process(self, diamond_xml):
        processes = parse(diamond_xml).findall("bpmn:process", NS)
        assert len(processes) == 1
        assert processes[0].get("id") == "Process_1"
        assert processes[0].get("isExecutable") == "false"


class TestElements:
    def test_tasks_and_events(self, diamond_xml):
        process = parse(diamond_xml).find("bpmn:process", NS)
        tasks = [t.get("id") for t in process.findall("bpmn:task", NS)]
        assert tasks == ["a", "b", "c", "d"]
        assert process.find("bpmn:startEvent", NS).get("id") == "StartEvent_1"
        assert process.find("bpmn:endEvent", NS).get("id") == "EndEvent_1"

    def test_gateway_elements(self, diamond_xml):
        process = parse(diamond_xml).find("bpmn:process", NS)
        gateways = process.findall("bpmn:parallelGateway", NS)
        assert [g.get("name") for g in gateways] == ["AND Split", "AND Join"]

    def test_incoming_outgoing_references(self, diamond_xml):
        process = parse(diamond_xml).find("bpmn:process", NS)
        split = process.find("bpmn:parallelGateway[@id='parallelGateway_Split_a']", NS)
        assert [e.text for e in split.findall("bpmn:incoming", NS)] == ["Flow_a_parallelGateway_Split_a"]
        assert [e.text for e in split.findall("bpmn:outgoing", NS)] == [
            "Flow_parallelGateway_Split_a_b",
            "Flow_parallelGateway_Split_a_c",
        ]

    def test_sequence_flows(self, diamond_xml):
        process = parse(diamond_xml).find("bpmn:process", NS)
        flows = process.findall("bpmn:sequenceFlow", NS)
        assert len(flows) == 8
        first = flows[0]
        assert first.get("id") == "Flow_StartEvent_1_a"
        assert first.get("sourceRef") == "StartEvent_1"
        assert first.get("targetRef") == "a"

    def test_every_reference_resolves(self, diamond_xml):
        process = parse(diamond_xml).find("bpmn:process", NS)
        flow_ids = {f.get("id") for f in process.findall("bpmn:sequenceFlow", NS)}
        refs = [e.text for tag in ("incoming", "outgoing") for e in process.iter(f"{{{BPMN_NS}}}{tag}")]
        assert refs
        assert set(refs) <= flow_ids

    def test_unnamed_node_has_no_name_attribute(self):
        graph = ProcessGraph()
        graph.add_node("g", NodeKind.EXCLUSIVE_GATEWAY)
        element = parse(serialize(graph)).find("bpmn:process/bpmn:exclusiveGateway", NS)
        assert element.get("name") is None


class TestFormatting:
    def test_deterministic(self):
        relations = classify_relations(diamond_matrix())
        first = serialize(GatewaySynthesizer().synthesize(relations).graph)
        second = serialize(GatewaySynthesizer().synthesize(relations).graph)
        assert first == second

    def test_compact_output(self):
        graph = GatewaySynthesizer().synthesize(classify_relations(diamond_matrix())).graph
        compact = serialize(graph, pretty=False)
        body = compact.split("\n", 1)[1]
        assert "\n  " not in body
        assert len(parse(compact).findall(".//bpmn:sequenceFlow", NS)) == 8
