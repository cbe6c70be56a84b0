"""
impact_dashboard/engine/resolver.py

Schema-tolerant access to survey rows.

Rows are plain dictionaries keyed by whatever the survey author typed in the header row.
This module maps them to the logical fields of the survey:
- resolve_field(): name-equality lookup with a ranked list of candidate names (used by aggregation and filtering)
- detect_mapping(): substring-based column detection over the header labels (used for diagnostics)
- coerce_number() / coerce_date(): never-raising conversions of cell values

Neither function raises on a missing column or a bad cell: a missing field resolves to None,
a bad number coerces to 0.0 and a bad date coerces to None.
"""

from __future__ import annotations

import datetime as dt
import math
import numbers
import re
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from ..data.schema import SurveySchema, UNKNOWN

import logging
logger = logging.getLogger(__name__)

# Excel's 1900 date system, including the fake 1900-02-29 (serial 60), lands on this epoch for every modern date
EXCEL_EPOCH = dt.date(1899, 12, 30)

# Leading numeric token: sign, digits (optionally grouped by commas), decimals, exponent
_LEADING_NUMBER = re.compile(
    r"^\s*([+-]?(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?(?:[eE][+-]?\d+)?)"
)
_COLLAPSE = re.compile(r"[_\s-]")
_SERIAL_TEXT = re.compile(r"^[+-]?\d+(?:\.\d+)?$")

# Relative keywords pandas would resolve against the current clock
_RELATIVE_DATES = {"now", "today", "tomorrow", "yesterday"}


def normalize_key(key: Any) -> Optional[str]:
    """
    Normalization used for name-equality matching: lower-case and trimmed.
    """
    if key is None:
        return None
    return str(key).lower().strip()


def normalize_label(label: Any) -> str:
    """
    Coarser normalization used for column detection: lower-case, trimmed, without underscores/hyphens/whitespace.
    Example: "Local_Revenue Loss (LKR)" -> "localrevenueloss(lkr)"
    """
    if label is None:
        return ""
    return _COLLAPSE.sub("", str(label).lower().strip())


def resolve_column(row: Mapping[str, Any], candidates: Sequence[str]) -> Optional[str]:
    """
    Returns the concrete column label of `row` matching the highest-ranked candidate, or None.
    Candidates are tried in order; if several row keys normalize to the same name, the first one wins.
    """
    index: Dict[str, str] = {}
    for key in row.keys():
        norm = normalize_key(key)
        if norm is not None and norm not in index:
            index[norm] = key

    for name in candidates:
        key = index.get(normalize_key(name))
        if key is not None:
            return key
    return None


def resolve_field(row: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """
    Returns the value of the first candidate column present in `row`, or None when no candidate matches.
    """
    key = resolve_column(row, candidates)
    if key is None:
        return None
    return row[key]


@dataclass(frozen=True)
class ColumnMapping:
    """
    Dataset-scoped association logical field -> concrete column label (None when no column matched).
    """
    district: Optional[str] = None
    nature_of_business: Optional[str] = None
    industry_scale: Optional[str] = None
    nature_of_impact: Optional[str] = None
    restart_date: Optional[str] = None
    market_type: Optional[str] = None
    local_loss: Optional[str] = None
    export_loss: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @property
    def unresolved(self) -> List[str]:
        return [f for f, col in self.as_dict().items() if col is None]


def _matches(label: str, rules: Iterable[Sequence[str]]) -> bool:
    return any(all(token in label for token in rule) for rule in rules)


def detect_mapping(columns: Sequence[Any], schema: Optional[SurveySchema] = None) -> ColumnMapping:
    """
    Greedy substring detection over the header labels.

    Columns are scanned in file order. For each column, the logical fields that are still unmapped are
    checked in schema order and the first one whose rules match takes the column; that column is then
    not considered for any other field. Fields without a matching column stay None.
    """
    schema = schema or SurveySchema.impact_default()
    found: Dict[str, str] = {}

    for col in columns:
        label = normalize_label(col)
        if not label:
            continue
        for f in schema.fields:
            if f in found:
                continue
            if _matches(label, schema.detection_tokens.get(f, [])):
                found[f] = str(col)
                break

    mapping = ColumnMapping(**{f: found.get(f) for f in ColumnMapping.__dataclass_fields__})
    logger.info("Column mapping detected: %s", mapping.as_dict())
    return mapping


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def category_label(value: Any) -> str:
    """
    Converts a resolved categorical value to the label used in breakdowns and filter options.
    Missing values (None, NaN, empty text) become the canonical "Unknown" bucket.
    """
    if _is_missing(value):
        return UNKNOWN
    if isinstance(value, str):
        return value if value.strip() else UNKNOWN
    return str(value)


def coerce_number(value: Any) -> float:
    """
    Converts a loss amount to float. Never raises: anything that can't be read as a finite number is 0.0.

    - numbers (including numpy scalars) are used as-is
    - text contributes its leading numeric content: "1,250.50 LKR" -> 1250.5, "N/A" -> 0.0
    """
    if _is_missing(value) or isinstance(value, bool):
        return 0.0

    if isinstance(value, (numbers.Real, Decimal)):
        out = float(value)
    elif isinstance(value, str):
        m = _LEADING_NUMBER.match(value)
        token = m.group(1).replace(",", "") if m else ""
        try:
            out = float(token)
        except ValueError:
            return 0.0
    else:
        return 0.0

    return out if math.isfinite(out) else 0.0


def coerce_date(value: Any) -> Optional[dt.date]:
    """
    Converts a restart date cell to a calendar date. Never raises: unparseable values give None.

    - datetime/date/Timestamp cells (what the Excel reader yields for real date cells) are used as-is
    - numbers are Excel serial dates: days since 1899-12-30, the fractional part (time of day) is dropped
    - purely numeric text ("45000") is read as a serial too
    - other text goes through pandas' general date parsing, e.g. "2023-02-11" or "11 Feb 2023";
      relative words like "today" are rejected so the result never depends on the current date
    """
    if _is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value

    if isinstance(value, numbers.Real):
        serial = float(value)
        if not math.isfinite(serial):
            return None
        try:
            return EXCEL_EPOCH + dt.timedelta(days=math.floor(serial))
        except OverflowError:
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() in _RELATIVE_DATES:
            return None
        if _SERIAL_TEXT.match(text):
            # a serial typed into a text column (CSV columns mixing serials and free text)
            return coerce_date(float(text))
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (TypeError, ValueError, OverflowError):
            return None
        if pd.isna(parsed):
            return None
        return parsed.date()

    return None


@dataclass(frozen=True)
class ColumnDiagnostics:
    """
    Debug view of how a dataset's columns are interpreted.

    - detected: result of detect_mapping() over the header labels
    - resolved: column actually read by the name-equality resolver for each field (None if no synonym matched)
    - mismatches: fields where the two disagree
    """
    columns: List[str]
    sample: Dict[str, Any]
    detected: ColumnMapping
    resolved: Dict[str, Optional[str]]

    @property
    def mismatches(self) -> List[str]:
        detected = self.detected.as_dict()
        return [f for f, col in self.resolved.items() if detected.get(f) != col]


def diagnose_columns(rows: Sequence[Mapping[str, Any]], schema: Optional[SurveySchema] = None) -> Optional[ColumnDiagnostics]:
    """
    Builds ColumnDiagnostics from the first row (the schema is assumed uniform across rows).
    Returns None for an empty dataset.
    """
    if not rows:
        return None
    schema = schema or SurveySchema.impact_default()

    first = rows[0]
    columns = [str(c) for c in first.keys()]
    detected = detect_mapping(columns, schema)
    resolved = {f: resolve_column(first, schema.candidates(f)) for f in schema.fields}

    diag = ColumnDiagnostics(columns=columns, sample=dict(first), detected=detected, resolved=resolved)
    if diag.mismatches:
        logger.warning(
            "Column detection disagrees with aggregation lookup for %s (detected=%s, resolved=%s)",
            diag.mismatches,
            {f: detected.as_dict().get(f) for f in diag.mismatches},
            {f: resolved.get(f) for f in diag.mismatches},
        )
    return diag
