"""
tests/test_resolver.py

Unit tests for the column resolver:
- name-equality lookup (normalization + candidate precedence)
- substring column detection (greedy, one field per column)
- numeric and date coercion (never raise, safe defaults)
- column diagnostics (detection vs. actual lookup)
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pandas as pd
import pytest

from impact_dashboard.data.schema import UNKNOWN
from impact_dashboard.engine.resolver import (
    EXCEL_EPOCH,
    category_label,
    coerce_date,
    coerce_number,
    detect_mapping,
    diagnose_columns,
    normalize_key,
    normalize_label,
    resolve_column,
    resolve_field,
)


STANDARD_COLUMNS = [
    "District",
    "Nature of Business",
    "Industry Scale",
    "Nature of Impact",
    "Possible Restart Date",
    "Market Types",
    "Local Revenue Loss (LKR)",
    "Export Revenue Loss (USD)",
]


def test_normalization_helpers():
    # Name-equality only folds case and trims, detection also drops separators.
    assert normalize_key("  Local Loss ") == "local loss"
    assert normalize_key(None) is None
    assert normalize_label(" Local_Revenue-Loss (LKR) ") == "localrevenueloss(lkr)"


def test_resolve_field_ignores_case_and_surrounding_spaces():
    row = {" DISTRICT ": "Galle", "local loss": "100"}
    assert resolve_field(row, ["District"]) == "Galle"
    assert resolve_field(row, ["Local Loss"]) == "100"


def test_resolve_field_candidate_order_wins():
    # Both columns exist: the first candidate in the list decides, not the row's key order.
    row = {"Local Loss": "100", "Local Loss (USD)": "7"}
    assert resolve_field(row, ["Local Loss (USD)", "Local Loss"]) == "7"
    assert resolve_field(row, ["Local Loss", "Local Loss (USD)"]) == "100"


def test_resolve_field_absent_and_exact_name_only():
    # Name-equality is not substring matching: "Local Loss Estimate" is not "Local Loss".
    row = {"Local Loss Estimate": "100"}
    assert resolve_field(row, ["Local Loss"]) is None
    assert resolve_column(row, ["Local Loss"]) is None
    assert resolve_field({}, ["District"]) is None


def test_resolve_field_returns_present_empty_value():
    # A matching column with an empty cell resolves to that (empty) value, not to the next candidate.
    row = {"District": None, "Location": "Galle"}
    assert resolve_field(row, ["District", "Location"]) is None
    assert resolve_column(row, ["District", "Location"]) == "District"


def test_detect_mapping_standard_headers():
    mapping = detect_mapping(STANDARD_COLUMNS)
    assert mapping.as_dict() == {
        "district": "District",
        "nature_of_business": "Nature of Business",
        "industry_scale": "Industry Scale",
        "nature_of_impact": "Nature of Impact",
        "restart_date": "Possible Restart Date",
        "market_type": "Market Types",
        "local_loss": "Local Revenue Loss (LKR)",
        "export_loss": "Export Revenue Loss (USD)",
    }
    assert mapping.unresolved == []


def test_detect_mapping_collapses_separators():
    mapping = detect_mapping(["local_revenue_loss", "EXPORT-LOSS", "Business-Type"])
    assert mapping.local_loss == "local_revenue_loss"
    assert mapping.export_loss == "EXPORT-LOSS"
    assert mapping.nature_of_business == "Business-Type"


def test_detect_mapping_first_column_wins():
    # Both columns match district; the one appearing first in the file is kept.
    mapping = detect_mapping(["Location", "District"])
    assert mapping.district == "Location"


def test_detect_mapping_column_used_once():
    # "Market Scale" matches industry_scale (checked first) and is then not offered to market_type.
    mapping = detect_mapping(["Market Scale", "Loss in LKR"])
    assert mapping.industry_scale == "Market Scale"
    assert mapping.market_type is None
    assert mapping.local_loss == "Loss in LKR"


def test_detect_mapping_unmatched_fields_are_none():
    mapping = detect_mapping(["Owner Name", "Phone"])
    assert all(v is None for v in mapping.as_dict().values())
    assert len(mapping.unresolved) == 8


@pytest.mark.parametrize(
    "value, expected",
    [
        ("100", 100.0),
        (250, 250.0),
        (12.5, 12.5),
        ("  42abc", 42.0),
        ("-12.5", -12.5),
        ("1,250.50 LKR", 1250.5),
        (".5", 0.5),
        (Decimal("3.25"), 3.25),
        ("N/A", 0.0),
        ("", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
        (["100"], 0.0),
    ],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_coerce_date_excel_serial():
    # Serials count days from 1899-12-30; the time-of-day fraction is dropped.
    expected = EXCEL_EPOCH + dt.timedelta(days=45000)
    assert expected == dt.date(2023, 3, 15)
    assert coerce_date(45000) == expected
    assert coerce_date(45000.75) == expected
    # serials that arrive as text, e.g. from a CSV column also holding free-text answers
    assert coerce_date("45000") == expected
    assert coerce_date(" 45000.5 ") == expected


def test_coerce_date_text_and_datetime_values():
    assert coerce_date("2023-02-11") == dt.date(2023, 2, 11)
    assert coerce_date(dt.datetime(2023, 5, 1, 10, 30)) == dt.date(2023, 5, 1)
    assert coerce_date(pd.Timestamp("2024-01-31")) == dt.date(2024, 1, 31)
    assert coerce_date(dt.date(2022, 12, 1)) == dt.date(2022, 12, 1)


@pytest.mark.parametrize("value", ["N/A", "not sure", "today", "now", "Today ", "", "   ", None, float("nan"), pd.NaT, True, float("inf")])
def test_coerce_date_unparseable_is_none(value):
    assert coerce_date(value) is None


def test_category_label():
    assert category_label("Galle") == "Galle"
    assert category_label(5) == "5"
    assert category_label(None) == UNKNOWN
    assert category_label(float("nan")) == UNKNOWN
    assert category_label("") == UNKNOWN
    assert category_label("   ") == UNKNOWN


def test_diagnose_columns_agrees_on_standard_headers():
    row = {c: None for c in STANDARD_COLUMNS}
    diag = diagnose_columns([row])
    assert diag is not None
    assert diag.columns == STANDARD_COLUMNS
    assert diag.resolved["local_loss"] == "Local Revenue Loss (LKR)"
    assert diag.mismatches == []


def test_diagnose_columns_reports_mismatch():
    # Detection accepts "Loss in LKR" through its substring rule, but no curated synonym has that name.
    row = {"District": "Galle", "Loss in LKR": 100}
    diag = diagnose_columns([row])
    assert diag.detected.local_loss == "Loss in LKR"
    assert diag.resolved["local_loss"] is None
    assert "local_loss" in diag.mismatches
    assert "district" not in diag.mismatches


def test_diagnose_columns_empty_dataset():
    assert diagnose_columns([]) is None
