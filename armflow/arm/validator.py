"""
ARM Matrix Validator.

Validates an Activity Relationship Matrix, in order, first failure wins:
1. Activity membership (when a restricted activity set is supplied)
2. Diagonal cells are the identity relation (x, x)
3. Off-diagonal cells use only legal symbols
4. No strict ordering paired with ⇎, ∨ or ∧
5. Reciprocity of ⇔ and ⇎
6. No simultaneous a < b and b < a
7. Strict-precedence edges are acyclic (via topological layering)

On success the report carries the stable topological order, so
downstream components may assume all properties hold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from armflow.arm.errors import (
    ARMValidationError,
    IllegalCombination,
    MalformedRelation,
    NonReciprocalRelation,
    TemporalClash,
    UnknownActivity,
)
from armflow.arm.layering import topological_order
from armflow.arm.parser import ARMMatrix
from armflow.arm.relations import RECIPROCAL

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of validating one matrix."""

    is_valid: bool
    activities: list[str] = field(default_factory=list)
    order: list[str] = field(default_factory=list)
    error: ARMValidationError | None = None

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "=" * 60,
            "ARM VALIDATION REPORT",
            "=" * 60,
            "",
            f"Status: {'VALID' if self.is_valid else 'INVALID'}",
            f"Activities: {len(self.activities)}",
        ]
        if self.error is not None:
            lines.append(f"Error: [{self.error.code}] {self.error.location} {self.error.message}")
        if self.order:
            lines.append(f"Order: {' → '.join(self.order)}")
        lines.append("=" * 60)
        return "\n".join(lines)


def precedence_edges(matrix: ARMMatrix) -> list[tuple[str, str]]:
    """
    Strict-precedence edges, direction-normalized.

    ``a < b`` read in row ``a`` and ``b > a`` read in row ``b`` both give
    the edge ``a -> b``.
    """
    edges: dict[tuple[str, str], None] = {}
    for source, target, rel in matrix.iter_cells():
        if source == target:
            continue
        if rel.precedes:
            edges.setdefault((source, target))
        elif rel.follows:
            edges.setdefault((target, source))
    return sorted(edges)


class MatrixValidator:
    """
    Validates an ARM matrix against the relation model's structural rules.

    Pure check: the matrix is never modified.
    """

    def __init__(self, matrix: ARMMatrix, allowed_activities: Iterable[str] | None = None):
        self.matrix = matrix
        self.allowed = set(allowed_activities) if allowed_activities is not None else None

    def validate(self) -> list[str]:
        """
        Run all checks and return the stable topological order.

        Raises:
            ARMValidationError: The first violation found
        """
        self._check_membership()
        self._check_diagonal()
        self._check_symbols()
        self._check_combinations()
        self._check_reciprocity()
        self._check_temporal_clash()
        return self._check_acyclic()

    def _ordered_pairs(self):
        activities = self.matrix.activities
        for a in activities:
            for b in activities:
                if a != b:
                    yield a, b

    def _check_membership(self) -> None:
        if self.allowed is None:
            return
        for source, columns in self.matrix.cells.items():
            if source not in self.allowed:
                raise UnknownActivity(
                    f'Activity "{source}" is not in the allowed activity list',
                    pair=(source, source),
                )
            for target in columns:
                if target not in self.allowed:
                    raise UnknownActivity(
                        f'Activity "{target}" is not in the allowed activity list',
                        pair=(source, target),
                    )

    def _check_diagonal(self) -> None:
        for activity in self.matrix.activities:
            rel = self.matrix.get(activity, activity)
            if rel is None or not rel.is_identity:
                found = "missing" if rel is None else str(rel)
                raise MalformedRelation(
                    f"Self-relationship on '{activity}' must be (x, x), got {found}",
                    pair=(activity, activity),
                )

    def _check_symbols(self) -> None:
        for a, b in self._ordered_pairs():
            rel = self.matrix.get(a, b)
            if rel is None:
                raise MalformedRelation(f"Missing relation at [{a}][{b}]", pair=(a, b))
            if not rel.is_legal_symbols:
                raise MalformedRelation(
                    f"Invalid dependency at [{a}][{b}]: {rel.temporal}, {rel.existential}",
                    pair=(a, b),
                )

    def _check_combinations(self) -> None:
        for a, b in self._ordered_pairs():
            rel = self.matrix.relation(a, b)
            if rel.is_illegal_combination:
                raise IllegalCombination(
                    f"Illogical combination at [{a}][{b}]: {rel.key}",
                    pair=(a, b),
                )

    def _check_reciprocity(self) -> None:
        for a, b in self._ordered_pairs():
            forward = self.matrix.relation(a, b).existential
            if forward not in RECIPROCAL:
                continue
            backward = self.matrix.relation(b, a).existential
            if backward != forward:
                raise NonReciprocalRelation(
                    f"Existential relation conflict: {a} {forward} {b} is not reciprocal "
                    f"([{b}][{a}] has {backward})",
                    pair=(a, b),
                )

    def _check_temporal_clash(self) -> None:
        for a, b in self.matrix.pairs():
            forward = self.matrix.relation(a, b)
            backward = self.matrix.relation(b, a)
            if forward.precedes and backward.precedes:
                raise TemporalClash(
                    f'Temporal order clash: both "{a} {forward.temporal} {b}" and '
                    f'"{b} {backward.temporal} {a}" present',
                    pair=(a, b),
                )
            if forward.follows and backward.follows:
                raise TemporalClash(
                    f'Temporal order clash: both "{a} {forward.temporal} {b}" and '
                    f'"{b} {backward.temporal} {a}" present',
                    pair=(a, b),
                )

    def _check_acyclic(self) -> list[str]:
        return topological_order(self.matrix.activities, precedence_edges(self.matrix))


def validate_matrix(
    matrix: ARMMatrix,
    allowed_activities: Iterable[str] | None = None,
    raise_on_error: bool = True,
) -> ValidationReport:
    """
    Validate an ARM matrix.

    Args:
        matrix: The matrix to validate
        allowed_activities: Optional restricted activity set
        raise_on_error: If True, raise the first violation

    Returns:
        ValidationReport with the stable order on success

    Raises:
        ARMValidationError: If raise_on_error=True and validation fails
    """
    validator = MatrixValidator(matrix, allowed_activities)
    try:
        order = validator.validate()
    except ARMValidationError as e:
        logger.info(f"ARM validation failed: [{e.code}] {e.message}")
        if raise_on_error:
            raise
        return ValidationReport(
            is_valid=False,
            activities=list(matrix.activities),
            error=e,
        )

    return ValidationReport(
        is_valid=True,
        activities=list(matrix.activities),
        order=order,
    )
