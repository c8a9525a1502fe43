"""
Tests for the armflow command line.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from config.settings import get_settings
from scripts.cli import app
from tests.fixtures.arm_matrices import SEQUENCE_RAW, clash_matrix, order_process_matrix, write_matrix

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("ARMFLOW_OUTPUT_DIR", str(tmp_path / "outputs"))
    monkeypatch.setenv("ARMFLOW_DECLARE_STORE_DIR", str(tmp_path / "declareModels"))
    monkeypatch.delenv("ARMFLOW_DECLARE_STORE_URL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sequence_file(tmp_path):
    return write_matrix(tmp_path, SEQUENCE_RAW, "sequence.json")


class TestValidate:
    def test_valid(self, sequence_file):
        result = runner.invoke(app, ["validate", str(sequence_file)])
        assert result.exit_code == 0
        assert "ARM is valid" in result.output
        assert "a → b" in result.output

    def test_invalid(self, tmp_path):
        path = write_matrix(tmp_path, clash_matrix(), "clash.yaml")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "TEMPORAL_CLASH" in result.output

    def test_activity_restriction(self, sequence_file):
        result = runner.invoke(app, ["validate", str(sequence_file), "--activities", "a"])
        assert result.exit_code == 1
        assert "UNKNOWN_ACTIVITY" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestLayers:
    def test_table(self, tmp_path):
        path = write_matrix(tmp_path, order_process_matrix(), "order.json")
        result = runner.invoke(app, ["layers", str(path)])
        assert result.exit_code == 0
        assert "receive" in result.output
        assert "longest_path" in result.output


class TestTranslationCommands:
    def test_bpmn_to_file(self, sequence_file, tmp_path):
        output = tmp_path / "out" / "sequence.bpmn"
        result = runner.invoke(app, ["bpmn", str(sequence_file), "-o", str(output)])
        assert result.exit_code == 0
        assert "<bpmn:definitions" in output.read_text(encoding="utf-8")

    def test_bpmn_to_stdout(self, sequence_file):
        result = runner.invoke(app, ["bpmn", str(sequence_file)])
        assert result.exit_code == 0
        assert "Flow_a_b" in result.output

    def test_declare_to_stdout(self, sequence_file):
        result = runner.invoke(app, ["declare", str(sequence_file)])
        assert result.exit_code == 0
        assert "chain_precedence" in result.output

    def test_declare_save(self, sequence_file, tmp_path):
        result = runner.invoke(app, ["declare", str(sequence_file), "--save"])
        assert result.exit_code == 0
        stored = tmp_path / "declareModels" / "temp" / "declareModel.json"
        data = json.loads(stored.read_text(encoding="utf-8"))
        assert data["unary"] == [{"activity": "a", "constraint": "init"}]

    def test_translate(self, sequence_file, tmp_path):
        out = tmp_path / "artifacts"
        result = runner.invoke(app, ["translate", str(sequence_file), "-d", str(out)])
        assert result.exit_code == 0
        assert (out / "sequence.bpmn").exists()
        assert (out / "sequence.declare.json").exists()
        assert "Translation Summary" in result.output

    def test_translate_invalid(self, tmp_path):
        path = write_matrix(tmp_path, clash_matrix(), "clash.json")
        result = runner.invoke(app, ["translate", str(path)])
        assert result.exit_code == 1
        assert not (tmp_path / "outputs").exists()


class TestConfig:
    def test_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "gateway_grouping" in result.output
