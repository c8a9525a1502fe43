"""
Relation Model.

Vocabulary of the Activity Relationship Matrix (ARM):
- Temporal symbols: ordering between two activities
- Existential symbols: co-occurrence between two activities
- Which temporal/existential pairings are legal

A cell of the matrix is a ``Relation``: an immutable (temporal, existential)
pair read from the perspective of the row activity.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Temporal(str, Enum):
    """Temporal (ordering) symbols."""

    BEFORE = "<"             # eventually before
    DIRECTLY_BEFORE = "<d"   # immediately before
    AFTER = ">"              # eventually after
    DIRECTLY_AFTER = ">d"    # immediately after
    UNORDERED = "-"
    SELF = "x"               # diagonal only


class Existential(str, Enum):
    """Existential (co-occurrence) symbols."""

    IMPLIES = "⇒"        # source occurs => target occurs
    IMPLIED_BY = "⇐"     # converse of IMPLIES
    EQUIVALENT = "⇔"     # co-occurrence
    EXCLUSIVE = "⇎"      # mutual exclusion
    OR = "∨"             # inclusive or
    NAND = "∧"           # negated and
    NONE = "-"
    SELF = "x"           # diagonal only


SELF_SYMBOL = "x"

TEMPORAL_SYMBOLS = frozenset(t.value for t in Temporal if t is not Temporal.SELF)
EXISTENTIAL_SYMBOLS = frozenset(e.value for e in Existential if e is not Existential.SELF)

STRICT_BEFORE = frozenset({Temporal.BEFORE.value, Temporal.DIRECTLY_BEFORE.value})
STRICT_AFTER = frozenset({Temporal.AFTER.value, Temporal.DIRECTLY_AFTER.value})
DIRECT = frozenset({Temporal.DIRECTLY_BEFORE.value, Temporal.DIRECTLY_AFTER.value})

# Existential symbols that contradict a strict ordering
ORDER_INCOMPATIBLE = frozenset({
    Existential.EXCLUSIVE.value,
    Existential.OR.value,
    Existential.NAND.value,
})

# Existential symbols that must appear in both directions of a pair
RECIPROCAL = frozenset({Existential.EQUIVALENT.value, Existential.EXCLUSIVE.value})

ILLEGAL_COMBINATIONS = frozenset(
    t + e for t in STRICT_BEFORE | STRICT_AFTER for e in ORDER_INCOMPATIBLE
)

# Legacy spellings accepted on input
SYMBOL_ALIASES = {
    "¬∧": Existential.NAND.value,
}

_TEMPORAL_MIRROR = {
    Temporal.BEFORE.value: Temporal.AFTER.value,
    Temporal.AFTER.value: Temporal.BEFORE.value,
    Temporal.DIRECTLY_BEFORE.value: Temporal.DIRECTLY_AFTER.value,
    Temporal.DIRECTLY_AFTER.value: Temporal.DIRECTLY_BEFORE.value,
}

_EXISTENTIAL_MIRROR = {
    Existential.IMPLIES.value: Existential.IMPLIED_BY.value,
    Existential.IMPLIED_BY.value: Existential.IMPLIES.value,
}


def normalize_symbol(symbol: str) -> str:
    """Strip whitespace and map legacy aliases to their canonical symbol."""
    symbol = symbol.strip()
    return SYMBOL_ALIASES.get(symbol, symbol)


def mirror_temporal(temporal: str) -> str:
    return _TEMPORAL_MIRROR.get(temporal, temporal)


def mirror_existential(existential: str) -> str:
    return _EXISTENTIAL_MIRROR.get(existential, existential)


@dataclass(frozen=True)
class Relation:
    """A single matrix cell: (temporal, existential) from the row's perspective."""

    temporal: str
    existential: str

    @classmethod
    def identity(cls) -> Relation:
        return cls(SELF_SYMBOL, SELF_SYMBOL)

    @classmethod
    def unrelated(cls) -> Relation:
        return cls(Temporal.UNORDERED.value, Existential.NONE.value)

    @property
    def key(self) -> str:
        """Lookup key, e.g. ``'<d⇒'``."""
        return self.temporal + self.existential

    @property
    def is_identity(self) -> bool:
        return self.temporal == SELF_SYMBOL and self.existential == SELF_SYMBOL

    @property
    def precedes(self) -> bool:
        """Row activity strictly precedes the column activity."""
        return self.temporal in STRICT_BEFORE

    @property
    def follows(self) -> bool:
        """Row activity strictly follows the column activity."""
        return self.temporal in STRICT_AFTER

    @property
    def is_direct(self) -> bool:
        return self.temporal in DIRECT

    @property
    def is_unordered(self) -> bool:
        return self.temporal == Temporal.UNORDERED.value

    @property
    def is_legal_symbols(self) -> bool:
        return (
            self.temporal in TEMPORAL_SYMBOLS
            and self.existential in EXISTENTIAL_SYMBOLS
        )

    @property
    def is_illegal_combination(self) -> bool:
        return self.key in ILLEGAL_COMBINATIONS

    def mirrored(self) -> Relation:
        """The same relation read from the column activity's perspective."""
        return Relation(
            mirror_temporal(self.temporal),
            mirror_existential(self.existential),
        )

    def to_list(self) -> list[str]:
        return [self.temporal, self.existential]

    def __str__(self) -> str:
        return f"({self.temporal}, {self.existential})"
