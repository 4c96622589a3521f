# wallclock.py
"""
HH:mm helpers on the minutes-since-midnight axis of one local day.

The axis runs from DAY_START (00:00) to DAY_END (23:59). DAY_END is the only
end-of-day value; the legacy "24:00" and evening "00:00" spellings are turned
into it by normalize_end and nowhere else.
"""
import re

from errors import InvalidInput

DAY_START = 0
DAY_END = 23 * 60 + 59

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(text: str) -> int:
    m = _HHMM.match((text or "").strip())
    if not m:
        raise InvalidInput(f"Invalid time: {text!r}", code="invalid-format")
    hour, minute = int(m.group(1)), int(m.group(2))
    if (hour, minute) == (24, 0):
        return DAY_END
    if hour > 23 or minute > 59:
        raise InvalidInput(f"Invalid time: {text!r}", code="invalid-format")
    return hour * 60 + minute


def to_minutes(value) -> int:
    """Accept either minutes or an HH:mm string."""
    if isinstance(value, int):
        if not DAY_START <= value <= DAY_END:
            raise InvalidInput(f"Minute out of range: {value}", code="invalid-format")
        return value
    return parse_hhmm(value)


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_end(start, end) -> int:
    """
    Resolve the end of a wall-clock range.

    "24:00" is always the end of the day. "00:00" is the end of the day when
    the range starts at noon or later, so "22:00-00:00" reads as 22:00-23:59.
    """
    start_min = to_minutes(start)
    if isinstance(end, str) and end.strip() == "24:00":
        return DAY_END
    end_min = to_minutes(end)
    if end_min == 0 and start_min >= 12 * 60:
        return DAY_END
    return end_min


def validate_time_order(start, end) -> None:
    start_min = to_minutes(start)
    end_min = normalize_end(start, end)
    if end_min <= start_min:
        raise InvalidInput("End time must be after start time", code="end-before-start")
