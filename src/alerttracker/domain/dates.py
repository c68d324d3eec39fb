"""
Date parsing and timestamp formatting.

Cells in the source sheet may hold real dates, Excel serial numbers or
free text typed by whoever maintains the sheet. Timestamps we write are
rendered in the configured timezone.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Any

logger = logging.getLogger(__name__)

SYNC_TIME_FORMAT = "%m/%d/%Y %H:%M:%S"
TIMEZONE_LABEL = "ET"

_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)


def parse_datetime_flexible(value: Any, context: str = "") -> datetime | None:
    """
    Parse a datetime from a sheet cell.

    Handles:
    - datetime/date objects (passthrough, tz dropped)
    - Excel serial numbers (days since 1899-12-30)
    - US and ISO strings, with optional time

    Returns:
        Naive datetime, or None if the value cannot be parsed
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value.replace(tzinfo=None)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime(1899, 12, 30) + timedelta(days=float(value))
        except (ValueError, OverflowError):
            logger.debug("Date parse: serial %s out of range [%s]", value, context)
            return None

    text = re.sub(r"\s+", " ", str(value).strip())
    if not text:
        return None
    for fmt in _FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    logger.debug("Date parse: unrecognized '%s' [%s]", text, context)
    return None


def date_sort_key(value: Any) -> tuple[int, datetime, str]:
    """
    Total ordering key for a date cell.

    Parseable dates sort chronologically first; unparseable values sort
    after them by their text.
    """
    parsed = parse_datetime_flexible(value)
    if parsed is not None:
        return (0, parsed, "")
    return (1, datetime.min, "" if value is None else str(value))


def format_sync_time(now: datetime, tz: tzinfo) -> str:
    """MM/DD/YYYY HH:MM:SS in the configured timezone."""
    return now.astimezone(tz).strftime(SYNC_TIME_FORMAT)


def format_push_time(now: datetime, tz: tzinfo) -> str:
    """
    Push stamp used in the external comment log.

    Example: "02/01/2026 3:05 PM ET"
    """
    local = now.astimezone(tz)
    hour = local.hour % 12 or 12
    return f"{local:%m/%d/%Y} {hour}:{local:%M} {local:%p} {TIMEZONE_LABEL}"


def is_weekend(now: datetime, tz: tzinfo) -> bool:
    """Saturday or Sunday in the configured timezone."""
    return now.astimezone(tz).isoweekday() in (6, 7)
