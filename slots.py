# slots.py
"""Slot lookups over a day's segments: first free time and a suggested end."""
from typing import Sequence

from models import TimelineSegment
from wallclock import DAY_END, format_hhmm, to_minutes

DEFAULT_LENGTH_MIN = 60
ROUND_TO_MIN = 15


def first_available_slot(free: Sequence[TimelineSegment], from_time="00:00") -> str | None:
    """Earliest HH:mm at or after `from_time` inside a free segment, or None."""
    start = to_minutes(from_time)
    for seg in free:
        if seg.end <= start:
            continue
        candidate = max(seg.start, start)
        if candidate < seg.end:
            return format_hhmm(candidate)
    return None


def is_start_within_busy(start_time, busy: Sequence[TimelineSegment]) -> bool:
    """True if the time falls strictly inside a busy segment."""
    start = to_minutes(start_time)
    return any(seg.start < start < seg.end for seg in busy)


def suggest_end_time(start_time, free: Sequence[TimelineSegment]) -> str | None:
    """
    One hour after the start rounded to the nearest quarter hour, cut short at
    the end of the free segment holding the start. None if the start is not free.
    """
    start = to_minutes(start_time)
    holder = next((seg for seg in free if seg.start <= start < seg.end), None)
    if holder is None:
        return None
    target = start + DEFAULT_LENGTH_MIN
    target = int(round(target / ROUND_TO_MIN)) * ROUND_TO_MIN
    end = min(target, holder.end, DAY_END)
    if end <= start:
        return None
    return format_hhmm(end)
