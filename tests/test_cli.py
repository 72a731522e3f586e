"""Test suite for the quote CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cejquote.cli import app
from cejquote.config import QuoteConfig

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Run CLI commands against a config that ignores the local environment."""
    monkeypatch.setattr(
        "cejquote.cli.get_config", lambda: QuoteConfig(_env_file=None)
    )


@pytest.fixture
def rules_file(tmp_path: Path, rules_payload) -> Path:
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps(rules_payload), encoding="utf-8")
    return path


def test_quote_json_with_rules_file(rules_file):
    result = runner.invoke(
        app,
        [
            "quote",
            "--m3",
            "5",
            "--strength",
            "200",
            "--type",
            "direct",
            "--rules",
            str(rules_file),
            "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["total"] == 1_438_980
    assert data["pricingSnapshot"]["rulesVersion"] == 7


def test_quote_table_with_fallback_rules():
    result = runner.invoke(
        app, ["quote", "--m3", "4.2", "--strength", "250", "--type", "direct", "-a", "fiber"]
    )

    assert result.exit_code == 0, result.output
    assert "Total" in result.output
    assert "Fibra de polipropileno" in result.output
    assert "4.5" in result.output


def test_quote_assisted_area_coffered(rules_file):
    result = runner.invoke(
        app,
        [
            "quote",
            "--area",
            "60",
            "--coffered",
            "10",
            "--strength",
            "250",
            "--type",
            "pumped",
            "--rules",
            str(rules_file),
            "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["volume"]["billedM3"] == 6.5
    assert data["calculationDetails"]["factorUsed"] == 0.108


def test_quote_dimensions(rules_file):
    result = runner.invoke(
        app,
        [
            "quote",
            "--length",
            "10",
            "--width",
            "4",
            "--thickness",
            "10",
            "--strength",
            "200",
            "--type",
            "direct",
            "--rules",
            str(rules_file),
            "--json",
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["volume"]["billedM3"] == 4.0


def test_quote_invalid_volume_exits_nonzero():
    result = runner.invoke(
        app, ["quote", "--m3", "-2", "--strength", "200", "--type", "direct"]
    )

    assert result.exit_code == 1
    assert "Error" in result.output


def test_quote_requires_a_volume_source():
    result = runner.invoke(app, ["quote", "--strength", "200", "--type", "direct"])
    assert result.exit_code != 0


def test_quote_invalid_rules_file(tmp_path, rules_payload):
    rules_payload["vatRate"] = 3
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(rules_payload), encoding="utf-8")

    result = runner.invoke(
        app,
        ["quote", "--m3", "5", "--strength", "200", "--type", "direct", "--rules", str(path)],
    )

    assert result.exit_code == 1
    assert "Pricing rules validation failed" in result.output


def test_validate_rules_ok(rules_file):
    result = runner.invoke(app, ["validate-rules", str(rules_file)])

    assert result.exit_code == 0
    assert "Valid pricing rules" in result.output
    assert "version 7" in result.output


def test_validate_rules_reports_each_reason(tmp_path, rules_payload):
    rules_payload["base"]["direct"]["200"].reverse()
    rules_payload["version"] = 0
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(rules_payload), encoding="utf-8")

    result = runner.invoke(app, ["validate-rules", str(path)])

    assert result.exit_code == 1
    assert "version" in result.output
    assert "sorted ascending" in result.output


def test_validate_rules_unreadable_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{oops", encoding="utf-8")

    result = runner.invoke(app, ["validate-rules", str(path)])

    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_export_fallback_round_trips(tmp_path):
    output = tmp_path / "out" / "fallback.json"

    result = runner.invoke(app, ["export-fallback", "--output", str(output)])
    assert result.exit_code == 0

    check = runner.invoke(app, ["validate-rules", str(output)])
    assert check.exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8"))["vatRate"] == 0.08


def test_export_fallback_stdout():
    result = runner.invoke(app, ["export-fallback"])

    assert result.exit_code == 0
    assert json.loads(result.output)["currency"] == "MXN"


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "cejquote version" in result.output
