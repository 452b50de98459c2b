"""Date and time helpers shared by validation and normalization."""
import re
from datetime import datetime, timezone
from typing import Optional

TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$", re.ASCII)
CLOCK_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$", re.ASCII)
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


def normalize_time(value: Optional[str]) -> str:
    """
    Trim a server-provided time to HH:MM.

    ISO datetimes are converted to UTC first; anything else keeps its first
    five characters. Returns an empty string when nothing usable is present.
    """
    if not value:
        return ""
    if "T" in value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return ""
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.strftime("%H:%M")
    return value[:5]


def is_valid_time(value: Optional[str]) -> bool:
    """True when the value has the HH:MM shape."""
    return isinstance(value, str) and bool(TIME_PATTERN.fullmatch(value))


def is_valid_clock_time(value: Optional[str]) -> bool:
    """True for a real 24-hour clock time (00:00 to 23:59)."""
    return isinstance(value, str) and bool(CLOCK_TIME_PATTERN.fullmatch(value))


def is_valid_date(value: Optional[str]) -> bool:
    """True for a YYYY-MM-DD string naming a real calendar date."""
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_valid_window(start: Optional[str], end: Optional[str]) -> bool:
    """
    Same-day observation window check.

    Both ends must have the HH:MM shape and the end must be strictly after the
    start. Overnight windows are not supported.
    """
    if not is_valid_time(start) or not is_valid_time(end):
        return False
    start_hour, start_minute = (int(part) for part in start.split(":"))
    end_hour, end_minute = (int(part) for part in end.split(":"))
    return (end_hour, end_minute) > (start_hour, start_minute)


def normalize_date(value: Optional[str]) -> str:
    """Trim a server-provided date or datetime to YYYY-MM-DD."""
    if not value:
        return ""
    if "T" in value:
        return value.split("T", 1)[0]
    return value[:10]
