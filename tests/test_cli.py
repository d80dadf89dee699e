"""CLI tests for Duet -- every command via Click's CliRunner.

Each test uses runner.isolated_filesystem() with a schema file and a
file-backed database, since the CLI opens its own connection.
"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from duet.cli import cli

SCHEMA = {
    "name": "TripBudget",
    "fields": {
        "destination": {"type": "string", "label": "Destination", "default": "Tokyo", "min_length": 1},
        "budget": {"type": "number", "label": "Budget", "default": 5000, "minimum": 0, "maximum": 100000},
        "contact": {
            "type": "object",
            "label": "Contact",
            "default": {"name": "", "email": ""},
            "properties": {"name": {"type": "string"}, "email": {"type": "string"}},
        },
    },
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


def _write_schema(path: str = "schema.json") -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(SCHEMA, fh)


def _invoke(runner: CliRunner, *args: str, **kwargs):
    return runner.invoke(cli, ["--db", "test.db", "--schema", "schema.json", *args], **kwargs)


# ---------------------------------------------------------------------------
# Show / context / tool-schema
# ---------------------------------------------------------------------------

class TestShowCommand:
    def test_show_defaults(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "show")
            assert result.exit_code == 0, result.output
            assert "TripBudget" in result.output
            assert "destination" in result.output
            assert '"Tokyo"' in result.output

    def test_missing_schema_file(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = _invoke(runner, "show")
            assert result.exit_code == 1
            assert "Error:" in result.output
            assert "Cannot read schema file" in result.output

    def test_schema_from_env(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema("env.json")
            result = runner.invoke(cli, ["show"], env={"DUET_SCHEMA": "env.json", "DUET_DB": "env.db"})
            assert result.exit_code == 0, result.output
            assert "TripBudget" in result.output


class TestContextCommand:
    def test_full_context(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "context")
            assert result.exit_code == 0
            assert result.output.startswith("Schema: TripBudget")
            assert '[{ "op": "replace", "path": "/fieldName", "value": newValue }]' in result.output

    def test_compact_context(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "context", "--compact")
            assert result.exit_code == 0
            assert result.output.startswith("TripBudget: {")


class TestToolSchemaCommand:
    def test_raw(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "tool-schema")
            assert result.exit_code == 0
            assert json.loads(result.output)["name"] == "patch_tripbudget"

    def test_openai(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "tool-schema", "--format", "openai")
            payload = json.loads(result.output)
            assert payload["type"] == "function"

    def test_anthropic(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "tool-schema", "--format", "anthropic")
            assert "input_schema" in json.loads(result.output)


# ---------------------------------------------------------------------------
# Apply / set / reset
# ---------------------------------------------------------------------------

class TestApplyCommand:
    def test_apply_persists(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "apply", '[{"op":"replace","path":"/contact/name","value":"Ann"}]')
            assert result.exit_code == 0, result.output
            assert "Applied 1 operation(s)" in result.output

            result = _invoke(runner, "context", "--compact")
            assert '"name":"Ann"' in result.output

    def test_apply_rejected(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "apply", '[{"op":"replace","path":"/budget","value":-1}]')
            assert result.exit_code == 1
            assert "Invalid value for budget" in result.output

    def test_apply_from_stdin(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            patch = '{"patch": [{"op":"replace","path":"/budget","value":10}]}'
            result = _invoke(runner, "apply", "-", "--source", "user", input=patch)
            assert result.exit_code == 0, result.output

    def test_apply_parse_error(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "apply", "not json")
            assert result.exit_code == 1
            assert "JSON parse error" in result.output


class TestSetCommand:
    def test_set_value(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "set", "destination", '"Paris"')
            assert result.exit_code == 0, result.output
            result = _invoke(runner, "context", "--compact")
            assert 'destination="Paris"' in result.output

    def test_set_unknown_field(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "set", "hotel", "1")
            assert result.exit_code == 1
            assert "Unknown field: hotel" in result.output

    def test_set_invalid_value(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "set", "--", "budget", "-5")
            assert result.exit_code == 1
            assert "Invalid value for budget" in result.output

    def test_set_value_not_json(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            result = _invoke(runner, "set", "destination", "Paris")
            assert result.exit_code == 2


class TestResetCommand:
    def test_reset(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            _invoke(runner, "set", "budget", "1")
            result = _invoke(runner, "reset", "--yes")
            assert result.exit_code == 0
            result = _invoke(runner, "context", "--compact")
            assert "budget=5000" in result.output

    def test_reset_aborted(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _write_schema()
            _invoke(runner, "set", "budget", "1")
            result = _invoke(runner, "reset", input="n\n")
            assert result.exit_code == 1
            result = _invoke(runner, "context", "--compact")
            assert "budget=1" in result.output
