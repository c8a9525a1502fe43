"""Process graph, gateway policy, synthesis and XML serialization."""

from armflow.bpmn.graph import (
    START_EVENT_ID,
    END_EVENT_ID,
    NodeKind,
    ProcessNode,
    SequenceFlow,
    ProcessGraph,
)
from armflow.bpmn.gateways import (
    GatewayKind,
    GatewayGroup,
    GatewayGroupingStrategy,
    PairwiseGroupingStrategy,
    RelationGroupingStrategy,
    LayerAwareGroupingStrategy,
    get_grouping_strategy,
    infer_gateway_type,
    gateway_label,
)
from armflow.bpmn.synthesizer import (
    GatewaySynthesizer,
    SynthesisContext,
    SynthesisDiagnostic,
    SynthesisOptions,
    SynthesisResult,
)
from armflow.bpmn.serializer import serialize

__all__ = [
    "START_EVENT_ID",
    "END_EVENT_ID",
    "NodeKind",
    "ProcessNode",
    "SequenceFlow",
    "ProcessGraph",
    "GatewayKind",
    "GatewayGroup",
    "GatewayGroupingStrategy",
    "PairwiseGroupingStrategy",
    "RelationGroupingStrategy",
    "LayerAwareGroupingStrategy",
    "get_grouping_strategy",
    "infer_gateway_type",
    "gateway_label",
    "GatewaySynthesizer",
    "SynthesisContext",
    "SynthesisDiagnostic",
    "SynthesisOptions",
    "SynthesisResult",
    "serialize",
]
