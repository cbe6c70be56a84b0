# impact_dashboard/config.py

"""
impact_dashboard/config.py

Centralized configuration via environment variables.
Used to keep config in one place so the dashboard is easy to run on different survey files.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """
    Settings container (dataclass) loaded from environment variables.
    The from_env class method is responsible for parsing environment variables and constructing the Settings object.
    """
    app_title: str
    dataset_path: str

    sheet_name: Optional[str] = None  # None reads the first sheet of the workbook
    max_render_rows: int = 20  # Max number of rows per breakdown table in the terminal
    show_column_debug: bool = False  # Print the column diagnostics panel at startup
    max_history: int = 10  # Number of filter changes remembered by the session
    log_level: str = "INFO"

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        """
        Small helper to safely parse integer env vars.
        """
        raw = os.getenv(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            return default

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        """
        Small helper to safely parse boolean env vars.
        """
        raw = os.getenv(name)
        if raw is None:
            return default
        return raw.strip().lower() in ("true", "1", "yes", "y", "on")

    @classmethod
    def from_env(cls) -> Settings:
        """
        Method used to construct Settings from environment variables.
        """
        sheet = os.getenv("SHEET_NAME", "").strip()

        return cls(
            app_title=os.getenv("APP_TITLE", "Business Impact Dashboard"),
            dataset_path=os.getenv("DATASET_PATH", "impact_survey.xlsx"),
            sheet_name=sheet or None,
            max_render_rows=cls._get_int("MAX_RENDER_ROWS", 20),
            show_column_debug=cls._get_bool("SHOW_COLUMN_DEBUG", False),
            max_history=cls._get_int("MAX_HISTORY", 10),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


def get_settings() -> Settings:
    """
    Single entry point used by the app.
    """
    return Settings.from_env()
