"""
ARM validation errors.

All validator failures are terminal for a translation call. Each error
names the offending activity pair so the author can fix the input.
"""

from __future__ import annotations


class ARMValidationError(Exception):
    """Base class for matrix validation failures."""

    code = "ARM_INVALID"

    def __init__(self, message: str, pair: tuple[str, str] | None = None):
        self.pair = pair
        self.message = message
        super().__init__(message)

    @property
    def location(self) -> str:
        if self.pair is None:
            return "matrix"
        return f"[{self.pair[0]}][{self.pair[1]}]"

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "pair": list(self.pair) if self.pair else None,
        }


class UnknownActivity(ARMValidationError):
    """Activity referenced outside the declared activity set."""

    code = "UNKNOWN_ACTIVITY"


class MalformedRelation(ARMValidationError):
    """Unknown symbol, missing cell or bad diagonal."""

    code = "MALFORMED_RELATION"


class IllegalCombination(ARMValidationError):
    """Strict ordering paired with an exclusivity symbol."""

    code = "ILLEGAL_COMBINATION"


class NonReciprocalRelation(ARMValidationError):
    """``⇔`` or ``⇎`` asserted in one direction only."""

    code = "NON_RECIPROCAL"


class TemporalClash(ARMValidationError):
    """Both directions of a pair assert strict precedence."""

    code = "TEMPORAL_CLASH"


class CyclicDependency(ARMValidationError):
    """Strict-precedence edges form a cycle."""

    code = "CYCLIC_DEPENDENCY"

    def __init__(
        self,
        message: str,
        pair: tuple[str, str] | None = None,
        cycle: list[str] | None = None,
    ):
        super().__init__(message, pair)
        self.cycle = cycle or []
