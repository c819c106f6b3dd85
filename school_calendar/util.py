"""Utility helpers."""

from __future__ import annotations

import logging
import os
from datetime import date
from zoneinfo import ZoneInfo

DEFAULT_TZ = "Asia/Almaty"


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def parse_timezone(tz: str) -> ZoneInfo:
    return ZoneInfo(tz)


def env(name: str, default: str | None = None) -> str | None:
    """Read a ``SCHOOL_CALENDAR_*`` setting from the environment."""

    return os.getenv(f"SCHOOL_CALENDAR_{name}", default) or default


def today() -> date:
    return date.today()
