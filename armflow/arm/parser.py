"""
ARM Matrix Parser.

Parses Activity Relationship Matrices from nested mappings, JSON or YAML
into an ``ARMMatrix``.

Input shape (JSON object of objects, each leaf a 2-element array):

    {"a": {"a": ["x", "x"], "b": ["<d", "⇐"]},
     "b": {"a": [">d", "⇒"], "b": ["x", "x"]}}

Parsing is structural only. Symbol legality, reciprocity and acyclicity
are checked by ``armflow.arm.validator``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping

import yaml

from armflow.arm.errors import MalformedRelation
from armflow.arm.relations import Relation, normalize_symbol


@dataclass
class ARMMatrix:
    """
    Activity Relationship Matrix.

    ``cells[a][b]`` is the relation of row activity ``a`` to column
    activity ``b``. ``activities`` keeps first-appearance order (rows
    first, then activities that only occur as columns).
    """

    cells: dict[str, dict[str, Relation]] = field(default_factory=dict)
    activities: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.activities:
            seen: dict[str, None] = {}
            for row, columns in self.cells.items():
                seen.setdefault(row)
                for column in columns:
                    seen.setdefault(column)
            self.activities = list(seen)

    def __contains__(self, activity: str) -> bool:
        return activity in self.cells

    def __len__(self) -> int:
        return len(self.activities)

    @property
    def rows(self) -> list[str]:
        return list(self.cells)

    def get(self, source: str, target: str) -> Relation | None:
        """Relation of ``source`` to ``target``, or None if the cell is missing."""
        return self.cells.get(source, {}).get(target)

    def relation(self, source: str, target: str) -> Relation:
        """Relation of ``source`` to ``target``; missing cells read as unrelated."""
        rel = self.get(source, target)
        if rel is None:
            return Relation.identity() if source == target else Relation.unrelated()
        return rel

    def iter_cells(self) -> Iterator[tuple[str, str, Relation]]:
        for source, columns in self.cells.items():
            for target, rel in columns.items():
                yield source, target, rel

    def pairs(self) -> Iterator[tuple[str, str]]:
        """Unordered pairs, upper triangle in activity order."""
        for i, a in enumerate(self.activities):
            for b in self.activities[i + 1:]:
                yield a, b

    def to_raw(self) -> dict[str, dict[str, list[str]]]:
        return {
            source: {target: rel.to_list() for target, rel in columns.items()}
            for source, columns in self.cells.items()
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_raw(), indent=indent, ensure_ascii=False)


def _parse_cell(source: str, target: str, raw: Any) -> Relation:
    """Parse a ``[temporal, existential]`` leaf."""
    if isinstance(raw, Relation):
        return raw
    if isinstance(raw, Mapping):
        raw = [raw.get("temporal"), raw.get("existential")]
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise MalformedRelation(
            f"Cell [{source}][{target}] must be a [temporal, existential] pair, got {raw!r}",
            pair=(source, target),
        )
    temporal, existential = raw
    if not isinstance(temporal, str) or not isinstance(existential, str):
        raise MalformedRelation(
            f"Cell [{source}][{target}] must contain symbol strings, got {raw!r}",
            pair=(source, target),
        )
    return Relation(normalize_symbol(temporal), normalize_symbol(existential))


def parse_matrix(data: Mapping[str, Mapping[str, Any]]) -> ARMMatrix:
    """
    Parse nested key-value data into an ARMMatrix.

    Args:
        data: Mapping of source activity -> (target activity -> leaf)

    Returns:
        Parsed ARMMatrix

    Raises:
        ValueError: If the data is not a mapping of mappings
        MalformedRelation: If a leaf is not a pair of symbols
    """
    if isinstance(data, ARMMatrix):
        return data
    if not isinstance(data, Mapping):
        raise ValueError(f"ARM matrix must be a mapping, got {type(data).__name__}")

    cells: dict[str, dict[str, Relation]] = {}
    for source, columns in data.items():
        if not isinstance(columns, Mapping):
            raise ValueError(f"Row '{source}' must be a mapping of target -> relation")
        cells[str(source)] = {
            str(target): _parse_cell(str(source), str(target), raw)
            for target, raw in columns.items()
        }

    return ARMMatrix(cells=cells)


def load_matrix(path: Path | str) -> ARMMatrix:
    """
    Load an ARM matrix from a JSON or YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or not a mapping
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"ARM file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty ARM file: {path}")

    return parse_matrix(data)


def matrix_from_pairs(
    activities: list[str],
    relations: Mapping[tuple[str, str], tuple[str, str] | Relation],
) -> ARMMatrix:
    """
    Build a complete matrix from one direction of each related pair.

    Diagonal cells become ``(x, x)``, the reverse cell of every given pair
    is its mirror, and every other pair is ``(-, -)``. A pair given in
    both directions keeps both cells as written.
    """
    cells: dict[str, dict[str, Relation]] = {
        a: {b: (Relation.identity() if a == b else Relation.unrelated()) for b in activities}
        for a in activities
    }
    explicit: set[tuple[str, str]] = set()
    for (source, target), raw in relations.items():
        rel = _parse_cell(source, target, raw)
        cells.setdefault(source, {})[target] = rel
        explicit.add((source, target))
        if (target, source) not in explicit:
            cells.setdefault(target, {})[source] = rel.mirrored()

    return ARMMatrix(cells=cells, activities=list(activities))
