"""
impact_dashboard/data/loader.py

Loads a survey spreadsheet (XLSX/XLS/CSV) into plain row dictionaries.
Moreover, it:
- keeps the column labels exactly as written in the file (the resolver deals with the naming variance)
- turns empty cells into None so every row has the same key set
- fails loudly when the file can't be read, and separately when it has no data rows

Column types are NOT coerced here. Loss amounts and restart dates stay as the reader produced them,
coercion is done per value by the resolver during aggregation.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

import pandas as pd

from .errors import EmptyDatasetError, SourceUnreadableError

import logging
logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Source = Union[str, Path, BinaryIO]

CSV_SUFFIXES = {".csv"}
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


@dataclass(frozen=True)
class LoadResult:
    """
    Class that holds the rows read from the spreadsheet, the column labels in file order and the source name (for display).
    """
    rows: List[Row]
    columns: List[str] = field(default_factory=list)
    source_name: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)


class SurveyDataLoader:
    """
    Class defined to read a survey spreadsheet and convert it to a list of row dictionaries.
    We initialize the class with an optional sheet name. None means "first sheet", which is how the surveys are usually shared.
    """
    def __init__(self, sheet_name: Optional[str] = None) -> None:
        self.sheet_name = sheet_name

    def load(self, source: Source) -> LoadResult:
        """
        Method that reads the source and returns the LoadResult.
        The source can be a path or an open binary file handle (e.g. an uploaded file).
        """
        name = self._source_name(source)
        df = self._read_frame(source, name)

        if len(df) == 0:
            raise EmptyDatasetError(f"No data found in {name or 'spreadsheet'}")

        columns = [str(c) for c in df.columns]
        rows = self._to_rows(df, columns)

        logger.info("Loaded %d rows x %d columns from %s", len(rows), len(columns), name or "<stream>")
        return LoadResult(rows=rows, columns=columns, source_name=name)

    async def load_async(self, source: Source) -> LoadResult:
        """
        Awaitable version of load(). The read itself runs in a worker thread, so an event loop (e.g. a web
        front end) is not blocked while pandas parses the workbook.
        """
        return await asyncio.to_thread(self.load, source)

    @staticmethod
    def _source_name(source: Source) -> str:
        if isinstance(source, (str, Path)):
            return str(source)
        return str(getattr(source, "name", "") or "")

    def _read_frame(self, source: Source, name: str) -> pd.DataFrame:
        """
        Method that picks the pandas reader from the file suffix and wraps every reader failure into SourceUnreadableError.
        Unknown suffixes (or streams without a name) are read as Excel, the usual survey format.
        """
        suffix = Path(name).suffix.lower() if name else ""
        try:
            if suffix in CSV_SUFFIXES:
                return pd.read_csv(source)
            sheet = self.sheet_name if self.sheet_name is not None else 0
            return pd.read_excel(source, sheet_name=sheet)
        except pd.errors.EmptyDataError as e:
            # A CSV with no header and no content: nothing to aggregate, but the file itself was readable
            raise EmptyDatasetError(f"No data found in {name or 'spreadsheet'}") from e
        except Exception as e:
            logger.exception("Failed to read spreadsheet %s", name or "<stream>")
            raise SourceUnreadableError(
                f"Failed to process {name or 'file'}: {e}. Please ensure the file format is correct."
            ) from e

    @staticmethod
    def _to_rows(df: pd.DataFrame, columns: List[str]) -> List[Row]:
        """
        Converts the DataFrame into row dictionaries, with NaN/NaT cells replaced by None.
        Example output:
            {"District": "Galle", "Local Loss": 100, "Possible Restart Date": Timestamp("2023-02-11"), ...}
        """
        df = df.copy()
        df.columns = columns
        df = df.astype(object).where(df.notna(), None)
        return df.to_dict(orient="records")
