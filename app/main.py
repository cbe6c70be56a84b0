# app/main.py
"""
app/main.py

CLI entrypoint for exploring a business-impact survey spreadsheet.

This file bootstraps dependencies and starts the
interactive filter loop implemented in app/filter_loop.py.

Main responsibilities:
- Load environment variables (.env)
- Load Settings from impact_dashboard/config.py
- Load the survey rows (path from the command line or DATASET_PATH)
- Render a small session header (dataset stats + optional column diagnostics)
- Start FilterLoop.run()

Run:
  python -m app.main [path/to/survey.xlsx]
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from impact_dashboard.config import get_settings
from impact_dashboard.data.errors import SurveyDataError
from impact_dashboard.data.loader import SurveyDataLoader
from impact_dashboard.engine.aggregation import AggregationEngine
from impact_dashboard.engine.resolver import diagnose_columns

from app.filter_loop import FilterLoop, FilterLoopDeps
from app.render import render_column_diagnostics, render_error, render_header, render_info_panel
from app.session import FilterSession

# Initializing here the logger for the main module, other modules will initialize their own loggers with their respective __name__.
logger = logging.getLogger(__name__)


def _configure_logging(level: str = "INFO") -> None:
    """
    Configure basic logging for the CLI app. Logs go to stderr (standard behavior).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    # Define environment variables as attributes of a Settings dataclass (see impact_dashboard/config.py)
    cfg = get_settings()
    _configure_logging(cfg.log_level)

    args = sys.argv[1:] if argv is None else argv
    dataset_path = args[0] if args else cfg.dataset_path

    render_header(cfg.app_title)

    # Unreadable or empty files stop here, before any aggregation
    loader = SurveyDataLoader(sheet_name=cfg.sheet_name)
    try:
        load_result = loader.load(dataset_path)
    except SurveyDataError as e:
        render_error(str(e))
        logger.error("Dataset not loaded: %s", e)
        return 1

    render_info_panel(
        source=load_result.source_name,
        rows=load_result.row_count,
        columns=len(load_result.columns),
    )

    engine = AggregationEngine()
    if cfg.show_column_debug:
        render_column_diagnostics(diagnose_columns(load_result.rows, engine.schema))

    deps = FilterLoopDeps(
        settings=cfg,
        engine=engine,
        session=FilterSession(max_history=cfg.max_history),
        rows=load_result.rows,
    )
    FilterLoop(deps).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
