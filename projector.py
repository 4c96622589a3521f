# projector.py
"""
Instants vs. wall-clock time.

Instants are timezone-independent pendulum DateTimes. Wall-clock values are
minutes on one local day of a specific zone. A query day is always anchored
at local midnight of the reference (requesting) zone.
"""
import zoneinfo
from datetime import date, datetime, timedelta

import pendulum

from errors import InvalidInput
from wallclock import DAY_END, format_hhmm


def resolve_zone(name: str):
    """Return a pendulum timezone for an IANA name."""
    try:
        zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, TypeError):
        raise InvalidInput(f"Unknown timezone: {name!r}", code="INVALID_TIMEZONE") from None
    return pendulum.timezone(name)


def parse_day(text: str) -> date:
    try:
        parsed = pendulum.parse(text, exact=True)
    except (ValueError, TypeError):
        raise InvalidInput(f"Invalid date: {text!r}", code="INVALID_DATE") from None
    # exact parsing yields a DateTime, Time or Duration for anything that is not a bare date
    if isinstance(parsed, datetime) or not isinstance(parsed, date):
        raise InvalidInput(f"Invalid date: {text!r}", code="INVALID_DATE")
    return date(parsed.year, parsed.month, parsed.day)


def to_instant(value) -> pendulum.DateTime:
    """ISO string or aware datetime -> pendulum DateTime."""
    if isinstance(value, str):
        parsed = pendulum.parse(value)
        if not isinstance(parsed, datetime):
            raise ValueError(f"not an instant: {value!r}")
        return parsed
    if value.tzinfo is None:
        raise ValueError("naive datetime")
    return pendulum.instance(value)


def day_bounds(day: date, tz) -> tuple:
    start = pendulum.datetime(day.year, day.month, day.day, tz=tz)
    nxt = day + timedelta(days=1)
    end = pendulum.datetime(nxt.year, nxt.month, nxt.day, tz=tz)
    return start, end


def local_date(instant: datetime, tz) -> date:
    local = pendulum.instance(instant).in_timezone(tz)
    return date(local.year, local.month, local.day)


def wall_minutes(instant: datetime, tz) -> int:
    local = pendulum.instance(instant).in_timezone(tz)
    return local.hour * 60 + local.minute


def to_wall_clock(instant: datetime, tz) -> str:
    return format_hhmm(wall_minutes(instant, tz))


def at_wall_clock(day: date, minutes: int, tz) -> pendulum.DateTime:
    """The instant at which the wall clock of `tz` shows `minutes` on `day`."""
    if minutes >= DAY_END:
        # the end of the day is the next local midnight
        return day_bounds(day, tz)[1]
    return pendulum.datetime(day.year, day.month, day.day, minutes // 60, minutes % 60, tz=tz)


def clip_to_day(start: datetime, end: datetime, day: date, tz) -> tuple | None:
    """
    Project [start, end) onto the wall-clock minutes of `day` in `tz`.

    Ranges reaching the next local midnight end at DAY_END. Returns None when
    nothing of the range is left on the day.
    """
    day_start, day_end = day_bounds(day, tz)
    if end <= day_start or start >= day_end:
        return None
    start_min = 0 if start <= day_start else wall_minutes(start, tz)
    end_min = DAY_END if end >= day_end else wall_minutes(end, tz)
    if end_min <= start_min:
        return None
    return start_min, end_min
