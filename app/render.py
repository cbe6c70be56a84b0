# app/render.py
"""
app/render.py

Terminal rendering utilities using rich.

This module keeps all CLI presentation concerns in one place.

We render:
- header / session info panels
- the KPI summary
- one table per breakdown
- filter options and column diagnostics

All printing is done via Rich's Console. Numbers are printed with plain python formatting,
the aggregation layer itself returns raw values.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from impact_dashboard.engine.aggregation import AggregationResult, BreakdownEntry, KpiSummary
from impact_dashboard.engine.filters import FilterCriteria
from impact_dashboard.engine.resolver import ColumnDiagnostics

logger = logging.getLogger(__name__)
console = Console()

BREAKDOWN_TITLES = {
    "export_loss_by_district": "Export loss by district",
    "local_loss_by_nature": "Local loss by nature of business",
    "local_loss_by_scale": "Local loss by industry scale",
    "businesses_by_impact": "Businesses by nature of impact",
    "businesses_by_restart_date": "Businesses by possible restart date",
    "businesses_by_market_type": "Businesses by market type",
}


def render_header(title: str) -> None:
    """
    Prints a simple header panel at startup.
    """
    panel = Panel.fit(Text(title, style="bold"), title="Dashboard", border_style="cyan")
    console.print(panel)
    logger.info("Rendered header: %s", title)


def render_info_panel(*, source: str, rows: int, columns: int) -> None:
    """
    Prints dataset information (useful for debugging and transparency).
    """
    info = (
        f"[bold]Dataset[/bold]\n"
        f"- File: {source}\n"
        f"- Rows: {rows}\n"
        f"- Columns: {columns}\n\n"
        f"Type [bold]help[/bold] for commands."
    )
    console.print(Panel(info, title="Session", border_style="green"))
    logger.info("Rendered info panel (rows=%d, cols=%d)", rows, columns)


def render_message(text: str, *, title: str = "Dashboard", border_style: str = "magenta") -> None:
    console.print(Panel(text, title=title, border_style=border_style))


def render_error(text: str) -> None:
    console.print(Panel(text, title="Error", border_style="red"))
    logger.info("Rendered error panel (chars=%d)", len(text))


def prompt_user_input(prompt: str) -> Optional[str]:
    """
    Reads a command from the terminal.

    Returns:
    - a string if the user typed something
    - None if input stream is closed (EOF / Ctrl+D)
    """
    try:
        return Prompt.ask(f"[bold blue]{prompt}[/bold blue]")
    except (EOFError, KeyboardInterrupt):
        logger.info("User input interrupted (EOF/KeyboardInterrupt)")
        return None


def _money(value: float) -> str:
    return f"{value:,.2f}"


def render_kpis(kpis: KpiSummary, *, filters: Optional[FilterCriteria] = None) -> None:
    """
    Prints the KPI summary. restart_rate is shown as N/A until it is computed.
    """
    active = filters.active() if filters is not None else {}
    scope = ", ".join(f"{k}={v}" for k, v in active.items()) or "all rows"
    restart = "N/A" if kpis.restart_rate is None else f"{kpis.restart_rate:.1f}%"
    info = (
        f"- Total local loss: {_money(kpis.total_local_loss)}\n"
        f"- Total export loss: {_money(kpis.total_export_loss)}\n"
        f"- Businesses: {kpis.total_businesses:,}\n"
        f"- Average loss per business: {_money(kpis.average_loss_per_business)}\n"
        f"- Restart rate: {restart}"
    )
    console.print(Panel(info, title=f"KPIs ({scope})", border_style="green"))


def _breakdown_table(entries: List[BreakdownEntry], *, title: str, max_rows: int) -> Table:
    """
    Convert a breakdown into a Rich Table.

    - Limits rows to avoid flooding the terminal.
    - Adds a percentage column only when the breakdown carries percentages.
    """
    with_pct = any(e.percentage is not None for e in entries)
    table = Table(title=title, show_lines=False)
    table.add_column("Category")
    table.add_column("Value", justify="right")
    if with_pct:
        table.add_column("%", justify="right")

    for e in entries[:max_rows]:
        value = f"{e.value:,}" if isinstance(e.value, int) else _money(e.value)
        cells = [e.name, value]
        if with_pct:
            cells.append(e.percentage or "")
        table.add_row(*cells)

    if len(entries) > max_rows:
        table.caption = f"Showing first {max_rows} of {len(entries)} rows"
    return table


def render_breakdowns(result: AggregationResult, *, max_rows: int = 20) -> None:
    """
    Renders one table per breakdown. Empty breakdowns get a short notice instead of an empty table.
    """
    for name, entries in result.breakdowns.items():
        title = BREAKDOWN_TITLES.get(name, name)
        if not entries:
            console.print(Panel("No data to display.", title=title, border_style="yellow"))
            continue
        console.print(_breakdown_table(entries, title=title, max_rows=max_rows))
    logger.info("Rendered breakdowns (rows=%d)", len(result.rows))


def render_result(result: AggregationResult, *, max_rows: int = 20) -> None:
    render_kpis(result.kpis, filters=result.filters)
    render_breakdowns(result, max_rows=max_rows)


def render_filter_options(options: Dict[str, List[str]], criteria: FilterCriteria) -> None:
    """
    Lists the values accepted by each filter, with the current selection.
    """
    table = Table(title="Filter options", show_lines=True)
    table.add_column("Field")
    table.add_column("Selected")
    table.add_column("Values")
    current = criteria.model_dump()
    for f, values in options.items():
        table.add_row(f, str(current.get(f)), ", ".join(values))
    console.print(table)


def render_column_diagnostics(diag: Optional[ColumnDiagnostics]) -> None:
    """
    Shows, per logical field, the column found by detection and the column actually read by aggregation.
    """
    if diag is None:
        console.print(Panel("No rows to inspect.", title="Columns", border_style="yellow"))
        return

    table = Table(title=f"Column detection ({len(diag.columns)} columns)", show_lines=False)
    table.add_column("Field")
    table.add_column("Detected")
    table.add_column("Used by aggregation")
    table.add_column("Sample value")

    detected = diag.detected.as_dict()
    for f, used in diag.resolved.items():
        style = "red" if f in diag.mismatches else None
        sample = str(diag.sample.get(used)) if used is not None else ""
        table.add_row(
            f,
            detected.get(f) or "Not found",
            used or "Not found",
            sample,
            style=style,
        )
    console.print(table)
    logger.info("Rendered column diagnostics (mismatches=%s)", diag.mismatches)
