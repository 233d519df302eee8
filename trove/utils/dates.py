"""Datetime helpers."""

from __future__ import annotations

import os
from datetime import datetime

import pendulum

DEFAULT_TZ = "America/Los_Angeles"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def now_in_tz() -> pendulum.DateTime:
    tz = pendulum.timezone(timezone_name())
    return pendulum.now(tz)


def parse_timestamp(value: str | datetime) -> pendulum.DateTime:
    if isinstance(value, datetime):
        return pendulum.instance(value)
    return pendulum.parse(value)


def format_short(value: str | datetime) -> str:
    """Render a timestamp as e.g. ``Mar 2, 2025``."""
    return parse_timestamp(value).format("MMM D, YYYY")
