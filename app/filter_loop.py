# app/filter_loop.py
"""
app/filter_loop.py

High-level loop for the interactive dashboard.

This module concentrates the "filter engine" of the CLI:
- reads user commands
- updates the FilterSession (narrow / clear / reset)
- re-runs the aggregation on the ORIGINAL rows every time a filter changes
- renders KPIs and breakdown tables

The goal is to keep app/main.py as a small bootstrapper:
- load env + config
- load dataset
- build dependencies
- start FilterLoop.run()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from impact_dashboard.config import Settings
from impact_dashboard.engine.aggregation import AggregationEngine, AggregationResult
from impact_dashboard.engine.filters import filter_options
from impact_dashboard.engine.resolver import diagnose_columns

from app.commands import (
    FIELD_ALIASES,
    is_columns_command,
    is_exit_command,
    is_help_command,
    is_options_command,
    is_reset_command,
    parse_filter_command,
)
from app.render import (
    prompt_user_input,
    render_column_diagnostics,
    render_error,
    render_filter_options,
    render_message,
    render_result,
)
from app.session import FilterSession

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "[bold]Commands[/bold]\n"
    "- field=value  narrow a filter (fields: {fields})\n"
    "- field=All    clear one filter\n"
    "- reset        clear every filter\n"
    "- options      list the values of each filter\n"
    "- columns      show which columns are used for each field\n"
    "- exit         close the dashboard"
)


@dataclass(frozen=True)
class FilterLoopDeps:
    """
    Keeps dependencies together to simplify the FilterLoop constructor and keep initialization in one place (main.py).
    """
    settings: Settings
    engine: AggregationEngine
    session: FilterSession
    rows: List[Mapping[str, Any]]


class FilterLoop:
    """
    Runs the interactive dashboard.

    This class owns:
    - the loop lifecycle
    - interaction with FilterSession
    - the filter options, computed once from the original rows
    """

    def __init__(self, deps: FilterLoopDeps) -> None:
        self.cfg = deps.settings
        self.engine = deps.engine
        self.session = deps.session
        self.rows = deps.rows
        self.options: Dict[str, List[str]] = filter_options(self.rows, self.engine.schema)

    def run(self) -> None:
        """
        Renders the unfiltered dashboard, then starts the blocking loop.

        The loop ends when:
        - the user types a local exit command (exit/quit/stop/q)
        - the input stream is closed (EOF / Ctrl+D) or Ctrl+C
        """
        logger.info("FilterLoop started (rows=%d)", len(self.rows))
        self._refresh()

        while True:
            user_text = prompt_user_input("Filter")
            if user_text is None:
                render_message("Goodbye 👋")
                logger.info("FilterLoop ended (input interrupted)")
                return

            user_text = user_text.strip()
            if not user_text:
                continue

            if is_exit_command(user_text):
                render_message("Ok! Dashboard closed. 👋")
                logger.info("FilterLoop ended (local exit command)")
                return

            try:
                self.handle(user_text)
            except Exception as e:
                # keep the session alive, the next command starts from the stored criteria
                logger.exception("Command failed: %r", user_text)
                render_error(f"I couldn't apply that: {e}")

    def handle(self, user_text: str) -> None:
        """
        Dispatches one non-exit command.
        """
        if is_help_command(user_text):
            fields = ", ".join(sorted(set(FIELD_ALIASES)))
            history = ", ".join(self.session.history) or "none"
            render_message(HELP_TEXT.format(fields=fields) + f"\n\nRecent changes: {history}", title="Help")
            return

        if is_options_command(user_text):
            render_filter_options(self.options, self.session.criteria)
            return

        if is_columns_command(user_text):
            render_column_diagnostics(diagnose_columns(self.rows, self.engine.schema))
            return

        if is_reset_command(user_text):
            self.session.reset()
            self._refresh()
            return

        parsed = parse_filter_command(user_text)
        if parsed is None:
            render_message(f"Unknown command: {user_text!r}. Type help for the list of commands.", border_style="yellow")
            return

        field_name, value = parsed
        allowed = self.options.get(field_name, [])
        if value and value not in allowed:
            render_message(
                f"{value!r} is not a value of {field_name}. Options: {', '.join(allowed)}",
                border_style="yellow",
            )
            return

        self.session.set_filter(field_name, value)
        self._refresh()

    def _refresh(self) -> AggregationResult:
        """
        Re-aggregates the original rows with the current criteria and renders the result.
        """
        result = self.engine.aggregate(self.rows, self.session.criteria)
        self.session.set_result(result)
        render_result(result, max_rows=self.cfg.max_render_rows)
        return result
