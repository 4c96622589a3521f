# overlap.py
"""
Write-path overlap guard.

Nothing is stored for a user if it would overlap another of their ranges.
The read path (builder.py) relies on this: one-time intervals never overlap
each other, recurring occurrences never overlap each other. Ranges are
closed-open, so touching endpoints do not overlap.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from errors import IntervalConflict
from models import ALL_DAYS, Interval, RecurrenceType, Weekday
from projector import local_date, wall_minutes
from wallclock import DAY_END, DAY_START, normalize_end, to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WallClockRange:
    start: int
    end: int
    days: frozenset = ALL_DAYS
    id: str | None = None


def split_range(start: int, end: int, days: frozenset) -> list:
    """
    Pieces of a wall-clock range on single days.

    A range that still wraps midnight after normalization (23:00-07:00)
    becomes an evening piece on `days` and a morning piece on the day after.
    """
    if end > start:
        return [(start, end, days)]
    pieces = [(start, DAY_END, days)]
    if end > DAY_START:
        pieces.append((DAY_START, end, frozenset(d.next() for d in days)))
    return pieces


def would_overlap(candidate_start, candidate_end, existing: Iterable[WallClockRange],
                  exclude_id: str | None = None, days: frozenset | None = None) -> bool:
    """
    True if the candidate wall-clock range overlaps any existing range.

    `days` restricts the check to existing ranges sharing a weekday with the
    candidate (recurring candidates); without it every range is compared.
    """
    start = to_minutes(candidate_start)
    end = normalize_end(candidate_start, candidate_end)
    if start == 0 and end == 0:
        return False

    candidate = split_range(start, end, days if days is not None else ALL_DAYS)
    for rng in existing:
        if exclude_id is not None and rng.id == exclude_id:
            continue
        other_end = normalize_end(rng.start, rng.end)
        for o_start, o_end, o_days in split_range(rng.start, other_end, rng.days):
            for c_start, c_end, c_days in candidate:
                if days is not None and not (c_days & o_days):
                    continue
                if c_start < o_end and c_end > o_start:
                    return True
    return False


def _instants_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def _write_days(rule, origin) -> frozenset:
    # a monthly occurrence can land on any weekday
    if rule.type is RecurrenceType.MONTHLY:
        return ALL_DAYS
    return rule.effective_days(origin)


def _wall_range(interval: Interval, tz) -> WallClockRange:
    """
    Start and end minutes of `interval` in `tz` with the weekdays they apply to.

    Only the first and last local day are represented, so a one-time interval
    spanning several days is not fully covered. Compare those by instants.
    """
    start = wall_minutes(interval.start, tz)
    end = wall_minutes(interval.end, tz)
    origin = local_date(interval.start, tz)
    if interval.recurrence is not None:
        days = _write_days(interval.recurrence, origin)
    else:
        days = frozenset({Weekday.from_date(origin)})
    if local_date(interval.end, tz) > origin and end == 0:
        # ends exactly at the next midnight
        end = DAY_END
    return WallClockRange(start=start, end=end, days=days, id=interval.id)


def find_conflicts(candidate: Interval, existing: Sequence[Interval], tz, exclude_id: str | None = None) -> list:
    """Ids of stored intervals the candidate would collide with."""
    conflicts = []
    if candidate.recurrence is None:
        for other in existing:
            if other.id == exclude_id or other.recurrence is not None:
                continue
            if _instants_overlap(candidate.start, candidate.end, other.start, other.end):
                conflicts.append(other.id)
        return conflicts

    rng = _wall_range(candidate, tz)
    for other in existing:
        if other.id == exclude_id:
            continue
        if would_overlap(rng.start, rng.end, [_wall_range(other, tz)], days=rng.days):
            conflicts.append(other.id)
    return conflicts


def check_write(candidate: Interval, existing: Sequence[Interval], tz, exclude_id: str | None = None) -> None:
    conflicts = find_conflicts(candidate, existing, tz, exclude_id)
    if conflicts:
        logger.info("rejected %s for %s: overlaps %s", candidate.id, candidate.owner_id, conflicts)
        raise IntervalConflict(conflicts)
