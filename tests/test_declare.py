"""
Tests for the Declare translator, model and store hand-off.
"""

from __future__ import annotations

import dataclasses
import json

import httpx
import pytest

from armflow.arm.parser import ARMMatrix, matrix_from_pairs, parse_matrix
from armflow.arm.relations import Relation
from armflow.declare.model import DeclareConstraint, DeclareModel, UnaryConstraint
from armflow.declare.store import DeclareModelStore, publish_declare_model
from armflow.declare.translator import (
    CONSTRAINT_TABLE,
    DeclareTranslator,
    resolve_constraint,
    translate_to_declare,
)
from tests.fixtures.arm_matrices import (
    SEQUENCE_RAW,
    diamond_matrix,
    order_process_matrix,
    two_starts_matrix,
)


# ============================================================================
# Translator
# ============================================================================

class TestResolveConstraint:
    def test_forward_key(self):
        assert resolve_constraint(Relation("<d", "⇒")) == ("chain_response", False)
        assert resolve_constraint(Relation("-", "∨")) == ("choice", False)

    def test_mirrored_key(self):
        assert resolve_constraint(Relation("<d", "⇐")) == ("chain_precedence", True)
        assert resolve_constraint(Relation(">", "⇔")) == ("succession", True)

    def test_unresolvable(self):
        assert resolve_constraint(Relation("<d", "-")) is None

    def test_table_covers_documented_keys(self):
        assert CONSTRAINT_TABLE["-⇎"] == "not_coexistence"
        assert CONSTRAINT_TABLE["-∧"] == "resp_absence"
        assert CONSTRAINT_TABLE["<-"] == "neg_response"


class TestTranslator:
    def test_sequence_example(self):
        model = translate_to_declare(parse_matrix(SEQUENCE_RAW))
        assert model.activities == ("a", "b")
        assert model.constraints == (
            DeclareConstraint("b", "a", "chain_precedence", label="chain_precedence"),
        )
        assert model.unary == (UnaryConstraint("a", "init"),)

    def test_diamond(self):
        model = translate_to_declare(diamond_matrix())
        assert len(model.constraints_named("succession")) == 5
        (coexistence,) = model.constraints_named("coexistence")
        assert (coexistence.source, coexistence.target) == ("b", "c")
        assert model.unary == (UnaryConstraint("a", "init"),)

    def test_independent_pairs_not_emitted(self):
        matrix = matrix_from_pairs(["a", "b"], {})
        model = translate_to_declare(matrix)
        assert model.constraints == ()
        assert model.unary == ()

    def test_symmetric_constraint_canonical(self):
        matrix = matrix_from_pairs(["b", "a"], {("b", "a"): ("-", "⇎")})
        (constraint,) = translate_to_declare(matrix).constraints
        assert (constraint.source, constraint.target) == ("a", "b")
        assert constraint.constraint == "not_coexistence"

    def test_unmapped_pair_skipped(self):
        matrix = matrix_from_pairs(["a", "b", "c"], {("a", "b"): ("<d", "-"), ("a", "c"): ("<", "⇒")})
        translator = DeclareTranslator(matrix)
        model = translator.translate()
        assert translator.unmapped == [("a", "b", "<d-")]
        assert [c.constraint for c in model.constraints] == ["response"]

    def test_init_requires_unique_first_activity(self):
        matrix = matrix_from_pairs(["a", "b", "c"], {("a", "c"): ("<", "-"), ("b", "c"): ("<", "-")})
        translator = DeclareTranslator(matrix)
        assert translator.precedence_counts() == {"a": 1, "b": 1, "c": 0}
        assert translator.find_init() is None

    def test_init_counts_follow_cells(self):
        translator = DeclareTranslator(order_process_matrix())
        assert translator.precedence_counts()["receive"] == 4
        assert translator.find_init() == "receive"

    def test_pairs_visited_once(self):
        model = translate_to_declare(order_process_matrix())
        pairs = [frozenset((c.source, c.target)) for c in model.constraints]
        assert len(pairs) == len(set(pairs))

    @pytest.mark.parametrize("matrix", [
        diamond_matrix(),
        order_process_matrix(),
        two_starts_matrix(),
        matrix_from_pairs(
            ["a", "b", "c"],
            {("a", "b"): ("<d", "⇔"), ("b", "c"): ("<d", "⇔"), ("a", "c"): ("<", "⇔")},
        ),
    ])
    def test_same_constraints_whichever_activity_comes_first(self, matrix):
        flipped = ARMMatrix(cells=matrix.cells, activities=list(reversed(matrix.activities)))

        def triples(model: DeclareModel) -> set[tuple[str, str, str]]:
            return {(c.source, c.target, c.constraint) for c in model.constraints}

        forward, backward = translate_to_declare(matrix), translate_to_declare(flipped)
        assert triples(forward) == triples(backward)
        assert set(forward.unary) == set(backward.unary)

    def test_chain_succession_direction(self):
        matrix = matrix_from_pairs(["b", "a"], {("a", "b"): ("<d", "⇔")})
        (constraint,) = translate_to_declare(matrix).constraints
        assert (constraint.source, constraint.target, constraint.constraint) == ("a", "b", "chain_succession")


# ============================================================================
# Model
# ============================================================================

class TestDeclareModel:
    def test_json_shape(self):
        model = translate_to_declare(parse_matrix(SEQUENCE_RAW))
        data = json.loads(model.to_json())
        assert data == {
            "activities": ["a", "b"],
            "constraints": [
                {"source": "b", "target": "a", "constraint": "chain_precedence", "label": "chain_precedence"},
            ],
            "unary": [{"activity": "a", "constraint": "init"}],
        }

    def test_from_json(self):
        model = translate_to_declare(diamond_matrix())
        assert DeclareModel.from_json(model.to_json()) == model

    def test_model_is_immutable(self):
        model = translate_to_declare(diamond_matrix())
        assert isinstance(model.constraints, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            model.unary = ()
        assert DeclareModel.from_dict(model.to_dict()).activities == ("a", "b", "c", "d")

    def test_label_optional(self):
        assert "label" not in DeclareConstraint("a", "b", "response").to_dict()

    def test_missing_key(self):
        with pytest.raises(ValueError, match="missing key"):
            DeclareModel.from_dict({"constraints": [{"source": "a"}]})


# ============================================================================
# Store hand-off
# ============================================================================

@pytest.fixture
def model() -> DeclareModel:
    return translate_to_declare(parse_matrix(SEQUENCE_RAW))


class TestDeclareModelStore:
    def test_save_and_load(self, tmp_path, model):
        store = DeclareModelStore(tmp_path)
        assert store.save(model)
        assert store.path == tmp_path / "temp" / "declareModel.json"
        assert store.load() == model

    def test_last_write_wins(self, tmp_path, model):
        store = DeclareModelStore(tmp_path)
        store.save(model)
        other = translate_to_declare(diamond_matrix())
        store.save(other)
        assert store.load() == other

    def test_load_empty_store(self, tmp_path):
        assert DeclareModelStore(tmp_path).load() is None

    def test_unwritable_store(self, tmp_path, model):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        assert DeclareModelStore(blocker).save(model) is False


class TestPublishDeclareModel:
    def test_success(self, model):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        assert publish_declare_model(model, "http://modeler.local/", client=client)
        assert seen["url"] == "http://modeler.local/api/save-declare-model"
        assert seen["body"] == model.to_dict()
        assert not client.is_closed

    def test_server_error(self, model):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        assert publish_declare_model(model, "http://modeler.local", client=client) is False

    def test_unreachable(self, model):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        assert publish_declare_model(model, "http://modeler.local", client=client) is False
