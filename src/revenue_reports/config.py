"""
Environment-driven settings for the reports backend.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from .service import resolve_window

DEFAULT_WINDOW = "6m"


class ReportSettings(BaseModel):
    database_url: Optional[str] = None
    timezone: str = "UTC"
    default_window: str = DEFAULT_WINDOW
    log_level: str = "INFO"

    @field_validator("default_window")
    @classmethod
    def _validate_default_window(cls, value: str) -> str:
        resolve_window(value)
        return value


def load_settings() -> ReportSettings:
    load_dotenv()
    defaults = ReportSettings()
    return ReportSettings(
        database_url=os.getenv("REVENUE_REPORTS_DATABASE_URL") or defaults.database_url,
        timezone=os.getenv("REVENUE_REPORTS_TIMEZONE", defaults.timezone),
        default_window=os.getenv("REVENUE_REPORTS_DEFAULT_WINDOW", defaults.default_window),
        log_level=os.getenv("REVENUE_REPORTS_LOG_LEVEL", defaults.log_level),
    )


def configure_logging(settings: ReportSettings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
