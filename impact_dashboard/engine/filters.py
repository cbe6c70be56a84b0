"""
impact_dashboard/engine/filters.py

Categorical filters over survey rows.

FilterCriteria holds one exact-match value per filterable field, or "All" for no restriction.
The options offered to the user come from filter_options(), which reads the rows through the same
resolver and the same label conversion used by apply_filters(). Selected values therefore always match.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from ..data.schema import ALL, SurveySchema
from .resolver import category_label, resolve_field

import logging
logger = logging.getLogger(__name__)


class FilterCriteria(BaseModel):
    """
    Exact-match restriction per categorical field. "All" means the field does not restrict the rows.
    Example: FilterCriteria(district="Galle") keeps only the rows whose district is exactly "Galle".
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    district: str = ALL
    nature_of_business: str = ALL
    industry_scale: str = ALL
    market_type: str = ALL
    nature_of_impact: str = ALL

    def active(self) -> Dict[str, str]:
        """
        Returns only the fields that actually restrict the rows.
        """
        return {f: v for f, v in self.model_dump().items() if v != ALL}

    def is_unrestricted(self) -> bool:
        return not self.active()


FilterInput = Union[FilterCriteria, Mapping[str, Any]]


def as_criteria(filters: Optional[FilterInput]) -> Optional[FilterCriteria]:
    """
    Accepts a FilterCriteria, a plain mapping with any subset of the filterable fields, or None.
    Unknown keys raise pydantic.ValidationError.
    """
    if filters is None or isinstance(filters, FilterCriteria):
        return filters
    return FilterCriteria.model_validate(dict(filters))


def apply_filters(
    rows: Sequence[Mapping[str, Any]],
    filters: Optional[FilterInput],
    schema: Optional[SurveySchema] = None,
) -> List[Mapping[str, Any]]:
    """
    Returns the rows matching every active criterion. Rows are not copied or modified.
    """
    criteria = as_criteria(filters)
    if criteria is None or criteria.is_unrestricted():
        return list(rows)

    schema = schema or SurveySchema.impact_default()
    active = criteria.active()
    candidates = {f: schema.candidates(f) for f in active}

    out = [
        row for row in rows
        if all(category_label(resolve_field(row, candidates[f])) == v for f, v in active.items())
    ]
    logger.info("Filters %s kept %d of %d rows", active, len(out), len(rows))
    return out


def filter_options(
    rows: Sequence[Mapping[str, Any]],
    schema: Optional[SurveySchema] = None,
) -> Dict[str, List[str]]:
    """
    Distinct values per filterable field, in first-encountered order, with "All" first.
    Should be computed on the original (unfiltered) rows, so narrowing one filter does not hide options.
    Example output:
        {"district": ["All", "Galle", "Matara"], "market_type": ["All", "Local", "Unknown"], ...}
    """
    schema = schema or SurveySchema.impact_default()
    options: Dict[str, List[str]] = {}
    for f in schema.filterable_fields:
        candidates = schema.candidates(f)
        # dict keeps insertion order, used here as an ordered set
        seen: Dict[str, None] = {}
        for row in rows:
            seen.setdefault(category_label(resolve_field(row, candidates)), None)
        seen.pop(ALL, None)
        options[f] = [ALL, *seen]
    return options
