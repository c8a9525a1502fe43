"""
Process Assembler.

Serializes a ProcessGraph into the restricted BPMN XML dialect: one
element per node with its incoming/outgoing flow ids, one sequenceFlow
element per flow, inside a fixed definitions/process envelope.

Pure formatting; no decisions are made here.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from armflow.bpmn.graph import ProcessGraph

logger = logging.getLogger(__name__)

BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
TARGET_NS = "http://bpmn.io/schema/bpmn"
DEFINITIONS_ID = "Definitions_1"
PROCESS_ID = "Process_1"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

ET.register_namespace("bpmn", BPMN_NS)


def _tag(name: str) -> str:
    return f"{{{BPMN_NS}}}{name}"


def build_element(graph: ProcessGraph) -> ET.Element:
    """Build the ``bpmn:definitions`` element tree for a graph."""
    definitions = ET.Element(
        _tag("definitions"),
        {"id": DEFINITIONS_ID, "targetNamespace": TARGET_NS},
    )
    process = ET.SubElement(
        definitions,
        _tag("process"),
        {"id": PROCESS_ID, "isExecutable": "false"},
    )

    for node in graph.nodes:
        attrs = {"id": node.id}
        if node.name:
            attrs["name"] = node.name
        element = ET.SubElement(process, _tag(node.kind.value), attrs)
        for flow in graph.incoming_flows(node.id):
            ET.SubElement(element, _tag("incoming")).text = flow.id
        for flow in graph.outgoing_flows(node.id):
            ET.SubElement(element, _tag("outgoing")).text = flow.id

    for flow in graph.flows:
        ET.SubElement(
            process,
            _tag("sequenceFlow"),
            {"id": flow.id, "sourceRef": flow.source, "targetRef": flow.target},
        )

    return definitions


def serialize(graph: ProcessGraph, pretty: bool = True) -> str:
    """
    Serialize a graph to the process XML dialect.

    Args:
        graph: Process graph (frozen or not)
        pretty: Indent the output

    Returns:
        XML document string, starting with the XML declaration
    """
    root = build_element(graph)
    if pretty:
        ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    logger.debug(f"Serialized {len(graph.nodes)} nodes, {len(graph.flows)} flows")
    return f"{XML_DECLARATION}\n{body}\n"
