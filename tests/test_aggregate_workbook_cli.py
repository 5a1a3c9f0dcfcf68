from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.aggregate_workbook import main


@pytest.fixture()
def invoice_csv_path(tmp_path: Path, invoice_csv: bytes) -> Path:
    path = tmp_path / "invoices.csv"
    path.write_bytes(invoice_csv)
    return path


def test_prints_summary_json(invoice_csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([str(invoice_csv_path), "--mode", "foreground"])

    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert exit_code == 0
    assert payload["strategy"] == "foreground"
    assert payload["rows_processed"] == 8
    assert payload["country_ranking"][0] == {"country": "United Kingdom", "customers": 2}
    assert payload["month_counts"] == {"2010-12": 4, "2011-01": 2, "2011-02": 1}
    assert [share["month"] for share in payload["month_shares"]] == ["2010-12", "2011-01", "2011-02"]
    assert "progress 100%" in captured.err


def test_month_detail_and_quiet(invoice_csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([str(invoice_csv_path), "--mode", "foreground", "--month", "2011-01", "--quiet"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert json.loads(captured.out)["month_detail"] == {
        "month": "2011-01",
        "days": [{"date": "2011-01-05", "count": 2, "percent": 100.0}],
    }
    assert "progress" not in captured.err


def test_unknown_month_exits_2(invoice_csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(invoice_csv_path), "--mode", "foreground", "--month", "1999-01", "--quiet"]) == 2
    assert capsys.readouterr().out == ""


def test_missing_file_exits_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(tmp_path / "missing.csv"), "--mode", "foreground"]) == 2
    assert "File not found" in capsys.readouterr().err


def test_unreadable_workbook_exits_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"PK\x03\x04broken")

    assert main([str(path), "--mode", "foreground", "--quiet"]) == 1
    assert "WorkbookFormatError" in capsys.readouterr().err
