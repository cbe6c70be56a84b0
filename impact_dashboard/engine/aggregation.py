"""
impact_dashboard/engine/aggregation.py

Computes the dashboard aggregates for a set of survey rows.

Each call:
- applies the categorical filters (if any)
- resolves the eight logical fields of every surviving row into a small pandas DataFrame
- computes the KPI summary and six chart-ready breakdowns with groupby

The result also carries the filtered rows and the original rows, so a caller can re-filter
(or reset the filters) without reading the file again.

aggregate() is a pure function of (rows, filters): nothing is cached between calls and input rows are never modified.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from ..data.schema import (
    DISTRICT,
    EXPORT_LOSS,
    INDUSTRY_SCALE,
    LOCAL_LOSS,
    MARKET_TYPE,
    NATURE_OF_BUSINESS,
    NATURE_OF_IMPACT,
    RESTART_DATE,
    SurveySchema,
)
from .filters import FilterCriteria, FilterInput, apply_filters, as_criteria
from .resolver import category_label, coerce_date, coerce_number, resolve_field

import logging
logger = logging.getLogger(__name__)

CATEGORY_FIELDS = [DISTRICT, NATURE_OF_BUSINESS, INDUSTRY_SCALE, NATURE_OF_IMPACT, MARKET_TYPE]
RESOLVED_COLUMNS = [*CATEGORY_FIELDS, RESTART_DATE, LOCAL_LOSS, EXPORT_LOSS]


@dataclass(frozen=True)
class KpiSummary:
    """
    Headline numbers of the dashboard.
    restart_rate is reserved: it is part of the payload but not computed yet, so it is always None.
    """
    total_local_loss: float = 0.0
    total_export_loss: float = 0.0
    total_businesses: int = 0
    average_loss_per_business: float = 0.0
    restart_rate: Optional[float] = None


@dataclass(frozen=True)
class BreakdownEntry:
    """
    One bar/slice of a chart. percentage is a pre-rounded string, only set on the breakdowns that show shares.
    """
    name: str
    value: Union[float, int]
    percentage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "value": self.value}
        if self.percentage is not None:
            out["percentage"] = self.percentage
        return out


@dataclass(frozen=True)
class Breakdowns:
    export_loss_by_district: List[BreakdownEntry] = field(default_factory=list)
    local_loss_by_nature: List[BreakdownEntry] = field(default_factory=list)
    local_loss_by_scale: List[BreakdownEntry] = field(default_factory=list)
    businesses_by_impact: List[BreakdownEntry] = field(default_factory=list)
    businesses_by_restart_date: List[BreakdownEntry] = field(default_factory=list)
    businesses_by_market_type: List[BreakdownEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [e.to_dict() for e in entries] for name, entries in self.items()}

    def items(self):
        return [(name, getattr(self, name)) for name in self.__dataclass_fields__]


@dataclass(frozen=True)
class AggregationResult:
    """
    kpis: KPI summary over the filtered rows
    breakdowns: the six chart breakdowns over the filtered rows
    rows: the filtered rows (same objects as the input, not copies)
    original_rows: the unfiltered input, kept so filters can be reset without reloading
    filters: the criteria that were applied (None when aggregate() was called without filters)
    """
    kpis: KpiSummary
    breakdowns: Breakdowns
    rows: List[Mapping[str, Any]]
    original_rows: List[Mapping[str, Any]]
    # "no filters" and "every filter set to All" give equal results
    filters: Optional[FilterCriteria] = field(default=None, compare=False)

    @property
    def is_empty(self) -> bool:
        return self.kpis.total_businesses == 0

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-friendly payload for a chart front end (rows are not included).
        """
        return {
            "kpis": asdict(self.kpis),
            "charts": self.breakdowns.to_dict(),
            "filters": self.filters.model_dump() if self.filters is not None else None,
            "row_count": len(self.rows),
            "original_row_count": len(self.original_rows),
        }


class AggregationEngine:
    """
    Computes AggregationResult objects for survey rows.
    The engine only holds the schema (field synonyms), never any data, so one instance can serve every call.
    """
    def __init__(self, schema: Optional[SurveySchema] = None) -> None:
        self.schema = schema or SurveySchema.impact_default()

    def aggregate(
        self,
        rows: Sequence[Mapping[str, Any]],
        filters: Optional[FilterInput] = None,
    ) -> AggregationResult:
        """
        Filters the rows, then computes KPIs and breakdowns over the rows that are left.
        An empty selection is a valid input and gives the all-zero result with empty breakdowns.
        """
        original = list(rows)
        criteria = as_criteria(filters)
        subset = apply_filters(original, criteria, self.schema) if criteria is not None else original

        if not subset:
            logger.info("No rows left after filtering (filters=%s)", criteria.active() if criteria else {})
            return AggregationResult(
                kpis=KpiSummary(),
                breakdowns=Breakdowns(),
                rows=subset,
                original_rows=original,
                filters=criteria,
            )

        frame = self._resolve_frame(subset)
        kpis = self._compute_kpis(frame)
        breakdowns = Breakdowns(
            export_loss_by_district=self._export_loss_by_district(frame),
            local_loss_by_nature=self._local_loss_by_nature(frame),
            local_loss_by_scale=self._local_loss_by_scale(frame),
            businesses_by_impact=self._businesses_by_impact(frame),
            businesses_by_restart_date=self._businesses_by_restart_date(frame),
            businesses_by_market_type=self._businesses_by_market_type(frame),
        )

        logger.info(
            "Aggregated %d of %d rows (local=%.2f, export=%.2f)",
            kpis.total_businesses,
            len(original),
            kpis.total_local_loss,
            kpis.total_export_loss,
        )
        return AggregationResult(
            kpis=kpis,
            breakdowns=breakdowns,
            rows=subset,
            original_rows=original,
            filters=criteria,
        )

    def _resolve_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Reads the eight logical fields of one row, already coerced:
        categories as labels ("Unknown" when missing), losses as floats (0.0 when unreadable),
        restart date as an ISO "YYYY-MM-DD" string or None.
        """
        out: Dict[str, Any] = {
            f: category_label(resolve_field(row, self.schema.candidates(f))) for f in CATEGORY_FIELDS
        }
        restart = coerce_date(resolve_field(row, self.schema.candidates(RESTART_DATE)))
        out[RESTART_DATE] = restart.isoformat() if restart is not None else None
        out[LOCAL_LOSS] = coerce_number(resolve_field(row, self.schema.candidates(LOCAL_LOSS)))
        out[EXPORT_LOSS] = coerce_number(resolve_field(row, self.schema.candidates(EXPORT_LOSS)))
        return out

    def _resolve_frame(self, rows: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
        frame = pd.DataFrame.from_records([self._resolve_row(r) for r in rows], columns=RESOLVED_COLUMNS)
        # plain python strings, groupby(sort=False) then preserves first-encountered order
        frame[CATEGORY_FIELDS + [RESTART_DATE]] = frame[CATEGORY_FIELDS + [RESTART_DATE]].astype(object)
        return frame

    @staticmethod
    def _compute_kpis(frame: pd.DataFrame) -> KpiSummary:
        total_local = float(frame[LOCAL_LOSS].sum())
        total_export = float(frame[EXPORT_LOSS].sum())
        count = int(len(frame))
        return KpiSummary(
            total_local_loss=total_local,
            total_export_loss=total_export,
            total_businesses=count,
            average_loss_per_business=total_local / count if count > 0 else 0.0,
            restart_rate=None,
        )

    @staticmethod
    def _sum_by(frame: pd.DataFrame, key: str, metric: str) -> pd.Series:
        return frame.groupby(key, sort=False)[metric].sum()

    @staticmethod
    def _count_by(frame: pd.DataFrame, key: str) -> pd.Series:
        return frame.groupby(key, sort=False).size()

    @staticmethod
    def _entries(series: pd.Series, *, as_int: bool = False, pct_decimals: Optional[int] = None) -> List[BreakdownEntry]:
        """
        Converts a grouped Series (index=label, values=metric) into BreakdownEntry objects, keeping the Series order.
        With pct_decimals, each entry gets its share of the Series total, e.g. "33.33".
        """
        total = float(series.sum()) if len(series) else 0.0
        out: List[BreakdownEntry] = []
        for name, value in series.items():
            value = int(value) if as_int else float(value)
            pct = None
            if pct_decimals is not None:
                share = value / total * 100 if total > 0 else 0.0
                pct = f"{share:.{pct_decimals}f}"
            out.append(BreakdownEntry(name=str(name), value=value, percentage=pct))
        return out

    def _export_loss_by_district(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        """
        Export loss per district, largest first. Ties keep the order in which districts were first seen.
        """
        entries = self._entries(self._sum_by(frame, DISTRICT, EXPORT_LOSS))
        # sorted() stays stable with reverse=True
        return sorted(entries, key=lambda e: e.value, reverse=True)

    def _local_loss_by_nature(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        return self._entries(self._sum_by(frame, NATURE_OF_BUSINESS, LOCAL_LOSS), pct_decimals=2)

    def _local_loss_by_scale(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        return self._entries(self._sum_by(frame, INDUSTRY_SCALE, LOCAL_LOSS))

    def _businesses_by_impact(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        return self._entries(self._count_by(frame, NATURE_OF_IMPACT), as_int=True)

    def _businesses_by_restart_date(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        """
        Business count per restart date (ISO "YYYY-MM-DD"), oldest first.
        Rows without a readable date are left out of this breakdown only.
        """
        dated = frame[frame[RESTART_DATE].notna()]
        if dated.empty:
            return []
        # ISO dates sort chronologically as strings
        series = self._count_by(dated, RESTART_DATE).sort_index()
        return self._entries(series, as_int=True)

    def _businesses_by_market_type(self, frame: pd.DataFrame) -> List[BreakdownEntry]:
        return self._entries(self._count_by(frame, MARKET_TYPE), as_int=True, pct_decimals=1)


_default_engine = AggregationEngine()


def aggregate(
    rows: Sequence[Mapping[str, Any]],
    filters: Optional[FilterInput] = None,
) -> AggregationResult:
    """
    Single entry point used by the app: aggregate with the default survey schema.
    """
    return _default_engine.aggregate(rows, filters)
