"""
Declare Constraint Translator.

Maps every unordered activity pair of an ARM matrix to a Declare
constraint, independently of the process-graph synthesis:
- the pair is visited once (upper triangle, activity order)
- the forward key ``temporal + existential`` is looked up first
- otherwise the mirrored key is looked up and source/target are swapped
- unresolvable pairs are skipped with a warning

A unary ``init`` constraint is added for the single activity (if any)
that strictly precedes every other activity.
"""

from __future__ import annotations

import logging

from armflow.arm.parser import ARMMatrix
from armflow.arm.relations import Relation
from armflow.declare.model import DeclareConstraint, DeclareModel, UnaryConstraint

logger = logging.getLogger(__name__)

CONSTRAINT_TABLE: dict[str, str] = {
    "<d⇒": "chain_response",
    "<d⇔": "chain_succession",
    ">d⇒": "chain_precedence",
    "<⇒": "response",
    "<⇔": "succession",
    ">⇒": "precedence",
    "<-": "neg_response",
    "-⇒": "resp_existence",
    "-⇔": "coexistence",
    "-⇎": "not_coexistence",
    "-∨": "choice",
    "-∧": "resp_absence",
    "--": "default_independence",
}

# Recognized but never emitted
SILENT_CONSTRAINTS = frozenset({"default_independence"})

# Unordered, symmetric: source is the lexically smaller activity
SYMMETRIC_CONSTRAINTS = frozenset({"coexistence", "not_coexistence", "choice", "resp_absence"})

INIT = "init"


def resolve_constraint(relation: Relation) -> tuple[str, bool] | None:
    """
    Resolve a relation to ``(constraint, reversed)``.

    ``reversed`` is True when the mirrored key matched, meaning the
    constraint's source is the column activity.
    """
    constraint = CONSTRAINT_TABLE.get(relation.key)
    if constraint is not None:
        return constraint, False
    constraint = CONSTRAINT_TABLE.get(relation.mirrored().key)
    if constraint is not None:
        return constraint, True
    return None


class DeclareTranslator:
    """Translates one ARM matrix into a DeclareModel."""

    def __init__(self, matrix: ARMMatrix):
        self.matrix = matrix
        self.unmapped: list[tuple[str, str, str]] = []

    def translate(self) -> DeclareModel:
        self.unmapped = []
        constraints: list[DeclareConstraint] = []

        for a, b in self.matrix.pairs():
            rel = self.matrix.relation(a, b)
            resolved = resolve_constraint(rel)
            if resolved is None:
                logger.warning(f"No Declare constraint for [{a}][{b}] = {rel.key}; pair skipped")
                self.unmapped.append((a, b, rel.key))
                continue

            name, reversed_ = resolved
            if name in SILENT_CONSTRAINTS:
                continue

            source, target = (b, a) if reversed_ else (a, b)
            if name in SYMMETRIC_CONSTRAINTS and target < source:
                source, target = target, source
            constraints.append(DeclareConstraint(source, target, name, label=name))

        unary = []
        init = self.find_init()
        if init is not None:
            unary.append(UnaryConstraint(init, INIT))

        logger.debug(
            f"Declare translation: {len(constraints)} constraints, "
            f"{len(unary)} unary, {len(self.unmapped)} unmapped pairs"
        )
        return DeclareModel(
            activities=tuple(self.matrix.activities),
            constraints=tuple(constraints),
            unary=tuple(unary),
        )

    def precedence_counts(self) -> dict[str, int]:
        """Number of other activities each activity strictly precedes."""
        counts = {}
        for a in self.matrix.activities:
            counts[a] = sum(
                1
                for b in self.matrix.activities
                if b != a and (self.matrix.relation(a, b).precedes or self.matrix.relation(b, a).follows)
            )
        return counts

    def find_init(self) -> str | None:
        """The unique activity preceding all n-1 others, or None."""
        n = len(self.matrix.activities)
        candidates = [a for a, count in self.precedence_counts().items() if count == n - 1]
        return candidates[0] if len(candidates) == 1 else None


def translate_to_declare(matrix: ARMMatrix) -> DeclareModel:
    """Translate an ARM matrix into a Declare model."""
    return DeclareTranslator(matrix).translate()
