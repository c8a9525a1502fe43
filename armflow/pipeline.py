"""
Translation Pipeline.

validate -> classify -> synthesize -> serialize, and, independently,
validate -> translate to Declare. Validation failures are terminal and
propagate; synthesis and Declare soft failures are reported on the result.

The optional layout step is an external collaborator: a callable taking
and returning process XML. It is attempted, never required.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from armflow.arm.classifier import RelationSets, classify_relations
from armflow.arm.parser import ARMMatrix, parse_matrix
from armflow.arm.validator import ValidationReport, validate_matrix
from armflow.bpmn.serializer import serialize
from armflow.bpmn.synthesizer import GatewaySynthesizer, SynthesisOptions, SynthesisResult
from armflow.declare.model import DeclareModel
from armflow.declare.translator import DeclareTranslator
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

LayoutFn = Callable[[str], str]


@dataclass
class TranslationResult:
    """Both artifacts of one matrix plus what was learned producing them."""

    report: ValidationReport
    relations: RelationSets
    synthesis: SynthesisResult
    xml: str
    declare: DeclareModel
    unmapped_pairs: list[tuple[str, str, str]] = field(default_factory=list)
    laid_out: bool = False

    @property
    def diagnostics(self):
        return self.synthesis.diagnostics


def options_from_settings(settings: Settings | None = None) -> SynthesisOptions:
    settings = settings or get_settings()
    return SynthesisOptions.from_names(
        grouping=settings.gateway_grouping,
        level_strategy=settings.level_strategy,
        allow_fallback_join=settings.allow_fallback_join,
    )


def _as_matrix(matrix: ARMMatrix | dict) -> ARMMatrix:
    return matrix if isinstance(matrix, ARMMatrix) else parse_matrix(matrix)


def apply_layout(xml: str, layout: LayoutFn | None) -> tuple[str, bool]:
    """Run the external layout step; on failure keep the unlaid XML."""
    if layout is None:
        return xml, False
    try:
        return layout(xml), True
    except Exception as e:
        logger.warning(f"Layout step failed, returning XML without layout: {e}")
        return xml, False


def matrix_to_bpmn(
    matrix: ARMMatrix | dict,
    allowed_activities: Iterable[str] | None = None,
    options: SynthesisOptions | None = None,
    pretty: bool = True,
) -> tuple[str, SynthesisResult]:
    """
    Translate a matrix into process XML.

    Raises:
        ARMValidationError: If the matrix is invalid
    """
    matrix = _as_matrix(matrix)
    report = validate_matrix(matrix, allowed_activities)
    relations = classify_relations(matrix, report.order)
    result = GatewaySynthesizer(options).synthesize(relations)
    return serialize(result.graph, pretty=pretty), result


def matrix_to_declare(
    matrix: ARMMatrix | dict,
    allowed_activities: Iterable[str] | None = None,
) -> DeclareModel:
    """
    Translate a matrix into a Declare model.

    Raises:
        ARMValidationError: If the matrix is invalid
    """
    matrix = _as_matrix(matrix)
    validate_matrix(matrix, allowed_activities)
    return DeclareTranslator(matrix).translate()


def translate_matrix(
    matrix: ARMMatrix | dict,
    allowed_activities: Iterable[str] | None = None,
    settings: Settings | None = None,
    options: SynthesisOptions | None = None,
    layout: LayoutFn | None = None,
) -> TranslationResult:
    """
    Run the full pipeline on one matrix.

    Args:
        matrix: ARMMatrix or nested mapping
        allowed_activities: Optional restricted activity set
        settings: Settings (defaults to the cached application settings)
        options: Synthesis options (defaults derived from settings)
        layout: Optional external layout step

    Returns:
        TranslationResult

    Raises:
        ARMValidationError: The first validation failure
    """
    settings = settings or get_settings()
    matrix = _as_matrix(matrix)

    report = validate_matrix(matrix, allowed_activities)
    logger.info(f"Validated ARM with {len(matrix)} activities")

    relations = classify_relations(matrix, report.order)
    synthesis = GatewaySynthesizer(options or options_from_settings(settings)).synthesize(relations)
    xml, laid_out = apply_layout(serialize(synthesis.graph, pretty=settings.pretty_xml), layout)

    translator = DeclareTranslator(matrix)
    declare = translator.translate()

    return TranslationResult(
        report=report,
        relations=relations,
        synthesis=synthesis,
        xml=xml,
        declare=declare,
        unmapped_pairs=list(translator.unmapped),
        laid_out=laid_out,
    )
