"""Shared date parsing and display formatting."""

import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import TBA

# Formats seen across providers, most specific first.
TIMESTAMP_FORMATS = [
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]

DISPLAY_DATE_FORMATS = [
    "%B %d, %Y",  # "March 15, 2026"
    "%b %d, %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
]


def parse_timestamp(value: Optional[str], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Parse a provider timestamp. Returns None for anything unparsable.

    If ``tz_name`` is given and the value carries an offset (e.g. PredictHQ's
    UTC ``start``), the result is converted to that zone so the display time
    is the venue's local time.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    dt = None
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        for fmt in TIMESTAMP_FORMATS:
            try:
                dt = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        return None

    if tz_name and dt.tzinfo is not None:
        try:
            dt = dt.astimezone(ZoneInfo(tz_name))
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return dt


def format_display_date(dt: Optional[datetime]) -> str:
    """'March 15, 2026', or TBA."""
    if dt is None:
        return TBA
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


def format_display_time(dt: Optional[datetime]) -> str:
    """'7:30 PM', or TBA."""
    if dt is None:
        return TBA
    return dt.strftime("%I:%M %p").lstrip("0")


def parse_display_date(text: str) -> Optional[datetime]:
    """Inverse of format_display_date, tolerant of a few other shapes."""
    if not text or text == TBA:
        return None
    text = text.strip()
    for fmt in DISPLAY_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_display_hour(text: str) -> Optional[int]:
    """Hour (0-23) from a display time like '7:30 PM' or '19:30'."""
    if not text or text == TBA:
        return None
    match = re.search(r"(\d{1,2})(?::(\d{2}))?\s*([ap]\.?m\.?)?", text.strip(), re.IGNORECASE)
    if not match:
        return None
    hour = int(match.group(1))
    meridiem = (match.group(3) or "").lower().replace(".", "")
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if hour > 23:
        return None
    return hour


def time_of_day(hour: Optional[int]) -> Optional[str]:
    """Bucket an hour into morning / afternoon / evening / night."""
    if hour is None:
        return None
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"
