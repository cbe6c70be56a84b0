"""
impact_dashboard/data/errors.py

Errors raised while acquiring survey rows.

Only two conditions are surfaced to the user:
- SourceUnreadableError: the file could not be read as a spreadsheet at all
- EmptyDatasetError: the file was read but contains no data rows

Unresolved columns and unparseable cell values are NOT errors: the resolver and the engine
fall back to the "Unknown" bucket or a zero contribution instead.
"""

from __future__ import annotations


class SurveyDataError(ValueError):
    """
    Base class for survey ingestion errors.
    """


class SourceUnreadableError(SurveyDataError):
    """
    The row source could not produce rows (I/O failure or unrecognized format).
    """


class EmptyDatasetError(SurveyDataError):
    """
    The row source was read successfully but produced zero rows.
    """
