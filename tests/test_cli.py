import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pl_standardizer.cli import app

runner = CliRunner()

CSV_TEXT = "Description,Jan,Feb\nSales,100,200\nCOGS,40,60\nRent,10,10\n"

RULES = {
    "Sales": {"standardLabel": "Total Revenue"},
    "COGS": {"standard_label": "Cost of Goods Sold"},
    "Rent": {"standard_label": "Rent & Utilities", "provenance": "manual"},
}


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    # Run from an empty directory so no stray .env is loaded.
    monkeypatch.chdir(tmp_path)
    (tmp_path / "pl.csv").write_text(CSV_TEXT, encoding="utf-8")
    (tmp_path / "rules.json").write_text(json.dumps(RULES), encoding="utf-8")
    return tmp_path


def test_detect_prints_structure(workdir: Path):
    result = runner.invoke(app, ["detect", "--path", str(workdir / "pl.csv")])

    assert result.exit_code == 0, result.output
    assert "label column:   Description" in result.output
    assert "amount columns: Jan, Feb" in result.output


def test_detect_missing_file_exits_non_zero(workdir: Path):
    result = runner.invoke(app, ["detect", "--path", str(workdir / "missing.csv")])

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_detect_single_column_file_exits_non_zero(workdir: Path):
    p = workdir / "one.csv"
    p.write_text("Label\nSales\n", encoding="utf-8")

    result = runner.invoke(app, ["detect", "--path", str(p)])

    assert result.exit_code == 1
    assert "structure detection failed" in result.output


def test_suggest_offline_writes_rules_file(workdir: Path):
    out = workdir / "seed.json"

    result = runner.invoke(
        app, ["suggest", "--path", str(workdir / "pl.csv"), "--out", str(out), "--offline"]
    )

    assert result.exit_code == 0, result.output
    rules = json.loads(out.read_text(encoding="utf-8"))
    assert rules["Sales"]["standard_label"] == "Total Revenue"
    assert rules["COGS"]["standard_label"] == "Cost of Goods Sold"
    assert rules["Rent"]["monthly_amounts"] == [10.0, 10.0]
    assert {r["provenance"] for r in rules.values()} == {"fallback"}


def test_suggest_without_api_key_still_produces_rules(workdir: Path):
    out = workdir / "seed.json"

    result = runner.invoke(app, ["suggest", "--path", str(workdir / "pl.csv"), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert set(json.loads(out.read_text(encoding="utf-8"))) == {"Sales", "COGS", "Rent"}


def test_standardize_csv(workdir: Path):
    out = workdir / "statement.csv"

    result = runner.invoke(
        app,
        [
            "standardize",
            "--path",
            str(workdir / "pl.csv"),
            "--rules",
            str(workdir / "rules.json"),
            "--output",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8").splitlines() == [
        "Label,Jan,Feb,Total",
        "Total Revenue,100,200,300",
        "Cost of Goods Sold,40,60,100",
        "Gross Profit,60,140,200",
        "Rent & Utilities,10,10,20",
        "Net Income,50,130,180",
    ]


@pytest.mark.parametrize(
    "fmt, first_label, has_kind",
    [("json", "Total Revenue", False), ("statement-json", "Total Revenue", True)],
)
def test_standardize_json_formats(workdir: Path, fmt: str, first_label: str, has_kind: bool):
    out = workdir / "out.json"

    result = runner.invoke(
        app,
        [
            "standardize",
            "--path",
            str(workdir / "pl.csv"),
            "--rules",
            str(workdir / "rules.json"),
            "--format",
            fmt,
            "--output",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data[0]["label"] == first_label
    assert ("kind" in data[0]) is has_kind
    labels = [d["label"] for d in data]
    assert ("Net Income" in labels) is has_kind


def test_standardize_rejects_unknown_format(workdir: Path):
    result = runner.invoke(
        app,
        [
            "standardize",
            "--path",
            str(workdir / "pl.csv"),
            "--rules",
            str(workdir / "rules.json"),
            "--format",
            "xml",
        ],
    )

    assert result.exit_code == 1
    assert "unknown format" in result.output


def test_standardize_rejects_invalid_rules_file(workdir: Path):
    bad = workdir / "bad.json"
    bad.write_text(json.dumps({"Sales": {"standard_label": "Total Revenue", "confidence": 7}}))

    result = runner.invoke(
        app,
        ["standardize", "--path", str(workdir / "pl.csv"), "--rules", str(bad)],
    )

    assert result.exit_code == 1
    assert "invalid rules file" in result.output
