"""
Declare Model.

Activities plus binary and unary Declare constraints, with the JSON
shape consumed by Declare modelers:

    {"activities": [...],
     "constraints": [{"source": ..., "target": ..., "constraint": ..., "label": ...}],
     "unary": [{"activity": ..., "constraint": ...}]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DeclareConstraint:
    source: str
    target: str
    constraint: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"source": self.source, "target": self.target, "constraint": self.constraint}
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass(frozen=True)
class UnaryConstraint:
    activity: str
    constraint: str

    def to_dict(self) -> dict[str, Any]:
        return {"activity": self.activity, "constraint": self.constraint}


@dataclass(frozen=True)
class DeclareModel:
    """Immutable once built; the JSON shape uses lists."""

    activities: tuple[str, ...] = ()
    constraints: tuple[DeclareConstraint, ...] = ()
    unary: tuple[UnaryConstraint, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "activities", tuple(self.activities))
        object.__setattr__(self, "constraints", tuple(self.constraints))
        object.__setattr__(self, "unary", tuple(self.unary))

    def constraints_named(self, name: str) -> list[DeclareConstraint]:
        return [c for c in self.constraints if c.constraint == name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "activities": list(self.activities),
            "constraints": [c.to_dict() for c in self.constraints],
            "unary": [u.to_dict() for u in self.unary],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeclareModel:
        """
        Build a model from its JSON shape.

        Raises:
            ValueError: If a constraint entry lacks a required key
        """
        try:
            constraints = [
                DeclareConstraint(
                    source=c["source"],
                    target=c["target"],
                    constraint=c["constraint"],
                    label=c.get("label"),
                )
                for c in data.get("constraints", [])
            ]
            unary = [
                UnaryConstraint(activity=u["activity"], constraint=u["constraint"])
                for u in data.get("unary", [])
            ]
        except KeyError as e:
            raise ValueError(f"Declare model entry missing key: {e}")

        return cls(
            activities=tuple(data.get("activities", [])),
            constraints=tuple(constraints),
            unary=tuple(unary),
        )

    @classmethod
    def from_json(cls, text: str) -> DeclareModel:
        return cls.from_dict(json.loads(text))
