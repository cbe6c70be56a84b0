# app/commands.py
"""
app/commands.py

Small command helpers for the interactive filter loop.

Every command is handled locally and re-runs the aggregation on the original rows:
- exit commands (end the program)
- reset commands (clear every filter)
- options / columns / help (informational panels)
- "field=value" assignments (narrow or clear one filter)
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from impact_dashboard.data.schema import FILTERABLE_FIELDS

logger = logging.getLogger(__name__)

# Exact shortcuts (match-only, not substring) to avoid accidental exits.
_EXIT_COMMANDS = {"exit", "quit", "stop", "q"}
_RESET_COMMANDS = {"reset", "clear"}
_HELP_COMMANDS = {"help", "?"}
_OPTIONS_COMMANDS = {"options", "filters"}
_COLUMNS_COMMANDS = {"columns", "debug"}

# Short names accepted on the left side of "field=value"
FIELD_ALIASES = {
    "district": "district",
    "nature": "nature_of_business",
    "business": "nature_of_business",
    "nature_of_business": "nature_of_business",
    "scale": "industry_scale",
    "industry_scale": "industry_scale",
    "market": "market_type",
    "market_type": "market_type",
    "impact": "nature_of_impact",
    "nature_of_impact": "nature_of_impact",
}


def _is(text: str, commands: set, name: str) -> bool:
    t = text.strip().lower()
    ok = t in commands
    if ok:
        logger.info("CLI command detected: %s (%s)", name, t)
    return ok


def is_exit_command(text: str) -> bool:
    """
    Returns True only if the user input is exactly one of the allowed exit commands.
    """
    return _is(text, _EXIT_COMMANDS, "exit")


def is_reset_command(text: str) -> bool:
    return _is(text, _RESET_COMMANDS, "reset")


def is_help_command(text: str) -> bool:
    return _is(text, _HELP_COMMANDS, "help")


def is_options_command(text: str) -> bool:
    return _is(text, _OPTIONS_COMMANDS, "options")


def is_columns_command(text: str) -> bool:
    return _is(text, _COLUMNS_COMMANDS, "columns")


def parse_filter_command(text: str) -> Optional[Tuple[str, str]]:
    """
    Parses "field=value" into (logical field, value).
    The field name is case-insensitive and may use an alias ("scale=Micro"); the value is kept verbatim
    apart from surrounding whitespace, because filters match category values exactly.
    Returns None when the input is not an assignment to a filterable field.
    """
    if "=" not in text:
        return None
    left, value = text.split("=", 1)
    key = left.strip().lower().replace(" ", "_").replace("-", "_")
    field = FIELD_ALIASES.get(key)
    if field is None or field not in FILTERABLE_FIELDS:
        logger.info("Unknown filter field: %r", left)
        return None
    return field, value.strip()
