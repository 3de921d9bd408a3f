"""
Tests for the command-line interface.

Run with: pytest tests/test_cli.py -v
"""

import json

import pytest
from typer.testing import CliRunner

from heatsavings import __version__
from heatsavings.cli import app


@pytest.fixture
def runner(monkeypatch):
    """CLI runner that leaves the root logger alone."""
    monkeypatch.setattr("heatsavings.cli.ensure_logging", lambda *args, **kwargs: None)
    return CliRunner()


class TestCalculate:
    """Tests for the calculate command."""

    def test_json_output(self, runner, lead_file):
        """Metrics are printed as JSON on stdout."""
        result = runner.invoke(app, ["calculate", str(lead_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["metrics"]["strategy"] == "oil"
        assert data["metrics"]["current"]["cost"]["year1"] == 2600
        assert data["metrics"]["savings"]["year10"] == 18110
        assert data["log"] == []

    def test_table_output(self, runner, lead_file):
        result = runner.invoke(app, ["calculate", str(lead_file)])
        assert result.exit_code == 0
        assert "Strategy: oil" in result.stdout

    def test_lookups_file(self, runner, lead_file, temp_dir):
        """Unit prices from a lookups file replace the defaults."""
        lookups = temp_dir / "lookups.json"
        lookups.write_text(json.dumps({"electricity_price": 0.30}), encoding="utf-8")

        result = runner.invoke(app, ["calculate", str(lead_file), "-l", str(lookups), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["metrics"]["newSystem"]["cost"]["year1"] == 1579

    def test_missing_lead_file(self, runner, temp_dir):
        result = runner.invoke(app, ["calculate", str(temp_dir / "nope.json")])
        assert result.exit_code == 1
        assert "Cannot read lead" in result.stdout


class TestResolve:
    """Tests for the resolve command."""

    def test_formula_with_lead(self, runner, lead_file, store_file):
        result = runner.invoke(
            app, ["resolve", "[calc:energy-per-m2] / {first_name}", "--lead", str(lead_file), "-s", str(store_file)]
        )
        assert result.exit_code == 0
        assert result.stdout.splitlines()[0] == "133 kWh/m² / Matti"

    def test_without_lead(self, runner, store_file):
        result = runner.invoke(app, ["resolve", "Tuki: [lookup:ely_tuki]", "--store", str(store_file)])
        assert result.exit_code == 0
        assert result.stdout.startswith("Tuki: 4\u00a0000")

    def test_unresolved_exits_nonzero(self, runner, store_file):
        """Unresolved shortcodes stay in the text and set exit code 1."""
        result = runner.invoke(app, ["resolve", "[calc:missing]", "-s", str(store_file)])

        assert result.exit_code == 1
        assert "[calc:missing]" in result.stdout
        assert "Formula 'missing' not found" in result.stdout

    def test_bad_store_file(self, runner, temp_dir):
        path = temp_dir / "store.json"
        path.write_text("[1, 2", encoding="utf-8")
        result = runner.invoke(app, ["resolve", "x", "-s", str(path)])
        assert result.exit_code == 1


class TestReport:
    """Tests for the report command."""

    def test_json_output(self, runner, lead_file):
        result = runner.invoke(app, ["report", str(lead_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["strategy"] == "oil"
        assert data["fields"]["customerName"] == "Matti Meikäläinen"
        assert data["fields"]["currentSystemType"] == "Öljylämmitys"
        assert data["errors"] == {}

    def test_table_output(self, runner, lead_file):
        result = runner.invoke(app, ["report", str(lead_file)])
        assert result.exit_code == 0
        assert "Ilmavesilämpöpumppu" in result.stdout


class TestValidateFormula:
    """Tests for the validate-formula command."""

    def test_valid(self, runner):
        result = runner.invoke(app, ["validate-formula", "[field:neliot] * korkeus"])

        assert result.exit_code == 0
        assert "Formula is valid" in result.stdout
        assert "Variables: korkeus" in result.stdout
        assert "[field:neliot]" in result.stdout

    def test_invalid(self, runner):
        result = runner.invoke(app, ["validate-formula", "__import__('os')"])
        assert result.exit_code == 1


class TestLogOptions:
    """Tests for the global logging options."""

    def test_log_file_passed_to_logging(self, monkeypatch, temp_dir):
        calls = []
        monkeypatch.setattr("heatsavings.cli.ensure_logging", lambda *args: calls.append(args))
        log_file = temp_dir / "run.log"

        result = CliRunner().invoke(app, ["--log-level", "DEBUG", "--log-file", str(log_file), "version"])

        assert result.exit_code == 0
        assert calls == [("DEBUG", str(log_file))]

    def test_no_log_file_by_default(self, monkeypatch):
        calls = []
        monkeypatch.setattr("heatsavings.cli.ensure_logging", lambda *args: calls.append(args))
        monkeypatch.setattr("heatsavings.cli.settings.log_file", None)

        result = CliRunner().invoke(app, ["version"])

        assert result.exit_code == 0
        assert calls[0][1] is None


def test_version(runner):
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
