"""
Tests for the ARM matrix validator.

Each check is exercised in isolation, then the ordering of checks
(first failure wins) is verified.
"""

from __future__ import annotations

import pytest

from armflow.arm.errors import (
    ARMValidationError,
    CyclicDependency,
    IllegalCombination,
    MalformedRelation,
    NonReciprocalRelation,
    TemporalClash,
    UnknownActivity,
)
from armflow.arm.parser import matrix_from_pairs, parse_matrix
from armflow.arm.validator import MatrixValidator, precedence_edges, validate_matrix
from tests.fixtures.arm_matrices import (
    SEQUENCE_RAW,
    clash_matrix,
    cyclic_matrix,
    diamond_matrix,
    order_process_matrix,
)


class TestValidMatrices:
    def test_sequence_is_valid(self):
        report = validate_matrix(parse_matrix(SEQUENCE_RAW))
        assert report.is_valid
        assert report.order == ["a", "b"]
        assert report.error is None

    def test_order_returned(self):
        report = validate_matrix(order_process_matrix())
        assert report.order == ["receive", "check", "invoice", "ship", "archive"]

    def test_allowed_superset_is_fine(self):
        report = validate_matrix(diamond_matrix(), allowed_activities=["a", "b", "c", "d", "e"])
        assert report.is_valid

    def test_summary_mentions_status(self):
        report = validate_matrix(diamond_matrix())
        assert "VALID" in report.summary()
        assert "a → b → c → d" in report.summary()

    def test_validator_does_not_modify_matrix(self):
        matrix = diamond_matrix()
        before = matrix.to_raw()
        MatrixValidator(matrix).validate()
        assert matrix.to_raw() == before


class TestIndividualChecks:
    def test_unknown_activity(self):
        with pytest.raises(UnknownActivity) as exc_info:
            validate_matrix(diamond_matrix(), allowed_activities=["a", "b", "c"])
        assert "d" in exc_info.value.pair

    def test_bad_diagonal(self):
        matrix = parse_matrix({"a": {"a": ["-", "-"]}})
        with pytest.raises(MalformedRelation) as exc_info:
            validate_matrix(matrix)
        assert exc_info.value.pair == ("a", "a")

    def test_unknown_symbol(self):
        matrix = parse_matrix({
            "a": {"a": ["x", "x"], "b": ["?", "⇒"]},
            "b": {"a": ["-", "-"], "b": ["x", "x"]},
        })
        with pytest.raises(MalformedRelation) as exc_info:
            validate_matrix(matrix)
        assert exc_info.value.pair == ("a", "b")

    def test_self_symbol_off_diagonal(self):
        matrix = parse_matrix({
            "a": {"a": ["x", "x"], "b": ["x", "x"]},
            "b": {"a": ["x", "x"], "b": ["x", "x"]},
        })
        with pytest.raises(MalformedRelation):
            validate_matrix(matrix)

    def test_missing_cell(self):
        matrix = parse_matrix({
            "a": {"a": ["x", "x"], "b": ["<", "⇒"]},
            "b": {"b": ["x", "x"]},
        })
        with pytest.raises(MalformedRelation, match="Missing"):
            validate_matrix(matrix)

    @pytest.mark.parametrize("temporal", ["<", "<d", ">", ">d"])
    @pytest.mark.parametrize("existential", ["⇎", "∨", "∧"])
    def test_illegal_combination(self, temporal, existential):
        matrix = matrix_from_pairs(["a", "b"], {("a", "b"): (temporal, existential)})
        with pytest.raises(IllegalCombination) as exc_info:
            validate_matrix(matrix)
        assert exc_info.value.pair == ("a", "b")

    @pytest.mark.parametrize("symbol", ["⇔", "⇎"])
    def test_non_reciprocal(self, symbol):
        matrix = matrix_from_pairs(
            ["a", "b"],
            {("a", "b"): ("-", symbol), ("b", "a"): ("-", "⇒")},
        )
        with pytest.raises(NonReciprocalRelation):
            validate_matrix(matrix)

    def test_temporal_clash(self):
        with pytest.raises(TemporalClash) as exc_info:
            validate_matrix(clash_matrix())
        assert exc_info.value.pair == ("a", "b")
        assert exc_info.value.code == "TEMPORAL_CLASH"

    def test_succession_clash(self):
        matrix = matrix_from_pairs(
            ["a", "b"],
            {("a", "b"): (">d", "-"), ("b", "a"): (">", "-")},
        )
        with pytest.raises(TemporalClash):
            validate_matrix(matrix)

    def test_cycle(self):
        with pytest.raises(CyclicDependency) as exc_info:
            validate_matrix(cyclic_matrix())
        error = exc_info.value
        assert error.pair is not None
        assert error.cycle[0] == error.cycle[-1]
        assert set(error.cycle) == {"a", "b", "c"}


class TestCheckOrdering:
    def test_clash_reported_before_layering(self):
        # a<b and b<a is also a 2-cycle; the clash check must fire first
        with pytest.raises(ARMValidationError) as exc_info:
            validate_matrix(clash_matrix())
        assert type(exc_info.value) is TemporalClash

    def test_illegal_combination_before_reciprocity(self):
        matrix = matrix_from_pairs(
            ["a", "b"],
            {("a", "b"): ("<", "⇎"), ("b", "a"): (">", "⇒")},
        )
        with pytest.raises(IllegalCombination):
            validate_matrix(matrix)


class TestReportMode:
    def test_report_carries_error(self):
        report = validate_matrix(clash_matrix(), raise_on_error=False)
        assert not report.is_valid
        assert isinstance(report.error, TemporalClash)
        assert report.order == []
        assert "INVALID" in report.summary()

    def test_error_to_dict(self):
        report = validate_matrix(clash_matrix(), raise_on_error=False)
        data = report.error.to_dict()
        assert data["code"] == "TEMPORAL_CLASH"
        assert data["pair"] == ["a", "b"]


class TestPrecedenceEdges:
    def test_reverse_cells_normalized(self):
        edges = precedence_edges(parse_matrix(SEQUENCE_RAW))
        assert edges == [("a", "b")]
