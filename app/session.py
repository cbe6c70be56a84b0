# app/session.py
"""
app/session.py

In-memory filter state for the interactive dashboard.

Responsibilities:
- Store the current FilterCriteria
- Store the last AggregationResult (so panels can be re-rendered without recomputing)
- Keep a bounded history of filter changes (shown in the help panel)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from impact_dashboard.data.schema import ALL
from impact_dashboard.engine.aggregation import AggregationResult
from impact_dashboard.engine.filters import FilterCriteria

logger = logging.getLogger(__name__)


@dataclass
class FilterSession:
    """
    Keeps the active filters and the latest result.
    FilterCriteria is immutable, so every change stores a new criteria object instead of mutating the old one.
    """

    max_history: int = 10

    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    history: List[str] = field(default_factory=list)

    _last_result: Optional[AggregationResult] = None

    def set_filter(self, field_name: str, value: str) -> FilterCriteria:
        """
        Narrow (or clear, with "All" or an empty value) one filter and return the new criteria.
        """
        value = value or ALL
        self.criteria = self.criteria.model_copy(update={field_name: value})
        self._push_history(f"{field_name}={value}")
        logger.info("Session: filter %s=%r (active=%s)", field_name, value, self.criteria.active())
        return self.criteria

    def reset(self) -> FilterCriteria:
        """
        Clears every filter (the 'reset' command).
        """
        self.criteria = FilterCriteria()
        self._push_history("reset")
        logger.info("Session: filters reset")
        return self.criteria

    def set_result(self, result: AggregationResult) -> None:
        self._last_result = result
        logger.info("Session: stored result (rows=%d)", len(result.rows))

    @property
    def last_result(self) -> Optional[AggregationResult]:
        return self._last_result

    def _push_history(self, entry: str) -> None:
        self.history.append(entry)
        # a slice with -0 would keep everything
        self.history = self.history[-self.max_history :] if self.max_history > 0 else []
