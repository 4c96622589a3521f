# recurrence.py
"""
Recurrence expansion.

A template keeps the wall-clock time-of-day of its own start and end in the
owner's timezone; each occurrence maps that time-of-day onto another date.
Exceptions are looked up in a mapping built per request by index_exceptions.
"""
import logging
from datetime import date, timedelta
from typing import Iterable, Mapping

import pendulum

from errors import InvariantViolation
from models import Interval, Occurrence, RecurrenceException, RecurrenceRule, RecurrenceType, Source, Weekday
from projector import local_date

logger = logging.getLogger(__name__)


def index_exceptions(exceptions: Iterable[RecurrenceException]) -> dict:
    index = {}
    for exc in exceptions:
        if exc.key in index:
            raise InvariantViolation(
                f"Duplicate exception for recurrence {exc.recurrence_id} on {exc.exception_date.isoformat()}"
            )
        index[exc.key] = exc
    return index


def _days_in_month(day: date) -> int:
    return pendulum.date(day.year, day.month, 1).days_in_month


def occurs_on(rule: RecurrenceRule, target: date) -> bool:
    if rule.type is RecurrenceType.DAILY:
        return not rule.days_of_week or Weekday.from_date(target) in rule.days_of_week
    if rule.type is RecurrenceType.WEEKLY:
        return Weekday.from_date(target) in rule.days_of_week
    # monthly: short months clamp to their last day
    last = _days_in_month(target)
    return target.day == min(rule.day_of_month, last)


def _on_date(day: date, local: pendulum.DateTime, tz) -> pendulum.DateTime:
    return pendulum.datetime(day.year, day.month, day.day, local.hour, local.minute, local.second, tz=tz)


def expand(template: Interval, target: date, tz, exceptions: Mapping | None = None) -> Occurrence | None:
    """Materialize the occurrence of `template` starting on local `target` in `tz`, if any."""
    rule = template.recurrence
    local_start = pendulum.instance(template.start).in_timezone(tz)
    local_end = pendulum.instance(template.end).in_timezone(tz)
    origin = local_date(template.start, tz)
    if target < origin or not occurs_on(rule, target):
        return None

    start = _on_date(target, local_start, tz)
    if rule.until is not None and start > rule.until:
        return None

    exc = (exceptions or {}).get((template.id, target))
    if exc is not None:
        if exc.modified is None:
            return None
        return Occurrence(
            interval_id=template.id,
            start=pendulum.instance(exc.modified.start),
            end=pendulum.instance(exc.modified.end),
            category=exc.modified.category,
            source=Source.MODIFIED,
            description=exc.modified.description,
        )

    # cross-midnight templates end on a later date, keep the same date offset
    end_day = target + (local_date(template.end, tz) - origin)
    end = _on_date(end_day, local_end, tz)
    if end <= start:
        # DST shifted the end onto or before the start; keep the template's length
        end = start + (template.end - template.start)
    return Occurrence(
        interval_id=template.id,
        start=start,
        end=end,
        category=template.category,
        source=Source.RECURRING,
        description=template.description,
    )


def expand_range(template: Interval, first: date, last: date, tz, exceptions: Mapping | None = None) -> list:
    out = []
    day = first
    while day <= last:
        occ = expand(template, day, tz, exceptions)
        if occ is not None:
            out.append(occ)
        day += timedelta(days=1)
    logger.debug("expanded %s over %s..%s: %d occurrence(s)", template.id, first, last, len(out))
    return out
