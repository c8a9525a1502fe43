"""ARM parsing, validation, layering and relation classification."""

from armflow.arm.relations import (
    Temporal,
    Existential,
    Relation,
    ILLEGAL_COMBINATIONS,
    normalize_symbol,
)
from armflow.arm.errors import (
    ARMValidationError,
    UnknownActivity,
    MalformedRelation,
    IllegalCombination,
    NonReciprocalRelation,
    TemporalClash,
    CyclicDependency,
)
from armflow.arm.parser import ARMMatrix, parse_matrix, load_matrix, matrix_from_pairs
from armflow.arm.validator import MatrixValidator, ValidationReport, validate_matrix
from armflow.arm.layering import (
    LevelAssignmentStrategy,
    LongestPathLevelStrategy,
    TopologicalIndexLevelStrategy,
    compute_levels,
    get_level_strategy,
    topological_order,
)
from armflow.arm.classifier import RelationSets, classify_relations

__all__ = [
    "Temporal",
    "Existential",
    "Relation",
    "ILLEGAL_COMBINATIONS",
    "normalize_symbol",
    "ARMValidationError",
    "UnknownActivity",
    "MalformedRelation",
    "IllegalCombination",
    "NonReciprocalRelation",
    "TemporalClash",
    "CyclicDependency",
    "ARMMatrix",
    "parse_matrix",
    "load_matrix",
    "matrix_from_pairs",
    "MatrixValidator",
    "ValidationReport",
    "validate_matrix",
    "LevelAssignmentStrategy",
    "LongestPathLevelStrategy",
    "TopologicalIndexLevelStrategy",
    "compute_levels",
    "get_level_strategy",
    "topological_order",
    "RelationSets",
    "classify_relations",
]
