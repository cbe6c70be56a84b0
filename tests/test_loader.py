"""
tests/test_loader.py

Tests the spreadsheet row source on files written to a temporary directory:
- CSV and XLSX are read into plain row dictionaries (empty cells -> None)
- unreadable files and files without data rows fail with distinct errors
- the loaded rows go through aggregation end to end (including real Excel date cells)
"""

from __future__ import annotations

import asyncio
import datetime as dt

import pandas as pd
import pytest

from impact_dashboard.data.errors import EmptyDatasetError, SourceUnreadableError, SurveyDataError
from impact_dashboard.data.loader import SurveyDataLoader
from impact_dashboard.engine.aggregation import aggregate


CSV_TEXT = (
    "District,Nature of Business,Local Loss,Export Loss,Possible Restart Date\n"
    "Galle,Trading,100,50,2023-02-11\n"
    "Galle,Services,200,,N/A\n"
)


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "survey.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def xlsx_path(tmp_path):
    path = tmp_path / "survey.xlsx"
    df = pd.DataFrame(
        {
            "District": ["Galle", "Matara", "Galle"],
            "Market Types": ["Local", "Export", None],
            "Local Revenue Loss (LKR)": [1000, 2500, None],
            "Export Revenue Loss (USD)": [0, 300, 200],
            "Possible Restart Date": [dt.datetime(2023, 3, 15), dt.datetime(2023, 1, 10), None],
        }
    )
    df.to_excel(path, index=False)
    return path


def test_load_csv(csv_path):
    result = SurveyDataLoader().load(csv_path)
    assert result.row_count == 2
    assert result.columns == ["District", "Nature of Business", "Local Loss", "Export Loss", "Possible Restart Date"]
    assert result.source_name == str(csv_path)
    assert result.rows[0]["District"] == "Galle"
    # empty cell -> None, never NaN
    assert result.rows[1]["Export Loss"] is None


def test_csv_rows_aggregate(csv_path):
    rows = SurveyDataLoader().load(csv_path).rows
    result = aggregate(rows)
    assert result.kpis.total_local_loss == pytest.approx(300.0)
    assert result.kpis.total_export_loss == pytest.approx(50.0)
    assert [(e.name, e.value) for e in result.breakdowns.businesses_by_restart_date] == [("2023-02-11", 1)]


def test_load_xlsx_and_aggregate(xlsx_path):
    result = SurveyDataLoader().load(xlsx_path)
    assert result.row_count == 3
    assert result.rows[2]["Market Types"] is None

    agg = aggregate(result.rows)
    assert agg.kpis.total_local_loss == pytest.approx(3500.0)
    assert agg.kpis.total_export_loss == pytest.approx(500.0)
    assert [(e.name, e.value) for e in agg.breakdowns.businesses_by_restart_date] == [
        ("2023-01-10", 1),
        ("2023-03-15", 1),
    ]
    assert [e.name for e in agg.breakdowns.businesses_by_market_type] == ["Local", "Export", "Unknown"]


def test_load_from_file_handle(xlsx_path):
    with open(xlsx_path, "rb") as fh:
        result = SurveyDataLoader().load(fh)
    assert result.row_count == 3
    assert result.source_name == str(xlsx_path)


def test_load_async(csv_path):
    result = asyncio.run(SurveyDataLoader().load_async(csv_path))
    assert result.row_count == 2


def test_header_only_file_is_empty_dataset(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("District,Local Loss\n", encoding="utf-8")
    with pytest.raises(EmptyDatasetError):
        SurveyDataLoader().load(path)


def test_blank_file_is_empty_dataset(tmp_path):
    path = tmp_path / "blank.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(EmptyDatasetError):
        SurveyDataLoader().load(path)


def test_corrupt_workbook_is_unreadable(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"this is not a workbook")
    with pytest.raises(SourceUnreadableError) as exc_info:
        SurveyDataLoader().load(path)
    assert exc_info.value.__cause__ is not None


def test_missing_file_is_unreadable(tmp_path):
    with pytest.raises(SourceUnreadableError):
        SurveyDataLoader().load(tmp_path / "missing.xlsx")


def test_errors_are_distinct_value_errors():
    assert issubclass(SourceUnreadableError, SurveyDataError)
    assert issubclass(EmptyDatasetError, SurveyDataError)
    assert issubclass(SurveyDataError, ValueError)
    assert not issubclass(EmptyDatasetError, SourceUnreadableError)


def test_csv_restart_column_mixing_serials_and_text(tmp_path):
    # pandas reads the whole column as text, so 45000 arrives as "45000" and must still count as a serial.
    path = tmp_path / "mixed.csv"
    path.write_text("District,Possible Restart Date\nGalle,45000\nMatara,not sure\n", encoding="utf-8")
    rows = SurveyDataLoader().load(path).rows
    assert rows[0]["Possible Restart Date"] == "45000"

    result = aggregate(rows)
    assert [(e.name, e.value) for e in result.breakdowns.businesses_by_restart_date] == [("2023-03-15", 1)]
    assert result.kpis.total_businesses == 2
