# builder.py
"""
Per-user day schedule.

Merges one-time intervals and expanded recurring occurrences into the busy
segments of one local day, and derives the available complement.
"""
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Sequence

from errors import InvariantViolation
from models import MAX_INTERVAL, Category, Occurrence, Source, TimelineSegment, UserIntervals
from projector import clip_to_day, day_bounds
from recurrence import expand_range, index_exceptions
from wallclock import DAY_END, DAY_START

logger = logging.getLogger(__name__)


def _subtract(occ: Occurrence, blocker: Occurrence) -> list:
    if blocker.start >= occ.end or blocker.end <= occ.start:
        return [occ]
    pieces = []
    if occ.start < blocker.start:
        pieces.append(replace(occ, end=blocker.start))
    if blocker.end < occ.end:
        pieces.append(replace(occ, start=blocker.end))
    return pieces


def resolve_precedence(occurrences: Sequence[Occurrence]) -> list:
    """
    One-time > exception-modified recurring > unmodified recurring.

    Each range loses the portions covered by any range of a stronger source.
    Ranges of the same source are left alone: the write path keeps them apart.
    """
    by_source = sorted(occurrences, key=lambda o: (o.source, o.start))
    kept = []
    for occ in by_source:
        pieces = [occ]
        for stronger in kept:
            if stronger.source >= occ.source:
                continue
            pieces = [p for piece in pieces for p in _subtract(piece, stronger)]
            if not pieces:
                break
        kept.extend(pieces)
    return kept


def collect_occurrences(records: UserIntervals, target: date, tz, owner_tz=None) -> list:
    """One-time intervals and recurring occurrences that can touch the local `target` day."""
    owner_tz = owner_tz or tz
    day_start, day_end = day_bounds(target, tz)

    occurrences = [
        Occurrence(
            interval_id=iv.id,
            start=iv.start,
            end=iv.end,
            category=iv.category,
            source=Source.ONE_TIME,
            description=iv.description,
        )
        for iv in records.one_time
        if iv.start < day_end and iv.end > day_start
    ]

    # an occurrence lasts at most MAX_INTERVAL, and UTC offsets span 26 hours, so the
    # owner's calendar date may be up to two days from the reference date
    first = target - timedelta(days=MAX_INTERVAL.days + 2)
    last = target + timedelta(days=2)
    exceptions = index_exceptions(records.exceptions)
    for template in records.templates:
        occurrences.extend(expand_range(template, first, last, owner_tz, exceptions))
    return occurrences


def build_day_schedule(records: UserIntervals, target: date, tz, owner_tz=None, user_id=None) -> list:
    """
    Busy segments of `target` in the wall clock of `tz`, sorted and non-overlapping.

    Recurring templates are expanded in `owner_tz` (their owner's zone) and
    then projected onto the `tz` day.
    """
    occurrences = resolve_precedence(collect_occurrences(records, target, tz, owner_tz))

    segments = []
    for occ in occurrences:
        clipped = clip_to_day(occ.start, occ.end, target, tz)
        if clipped is not None:
            segments.append(TimelineSegment(clipped[0], clipped[1], occ.category))
    segments.sort(key=lambda s: (s.start, s.end))

    for prev, cur in zip(segments, segments[1:]):
        if cur.start < prev.end:
            logger.error("overlapping segments for user %s on %s: %s / %s", user_id, target, prev, cur)
            raise InvariantViolation(
                f"Overlapping intervals for user {user_id} on {target.isoformat()}: "
                f"{prev.start_time}-{prev.end_time} and {cur.start_time}-{cur.end_time}"
            )
    logger.debug("user %s on %s: %d busy segment(s)", user_id, target, len(segments))
    return segments


def complement(busy: Sequence[TimelineSegment]) -> list:
    """Available gaps between 00:00, the busy segments and 23:59."""
    free = []
    cursor = DAY_START
    for seg in busy:
        if seg.start > cursor:
            free.append(TimelineSegment(cursor, seg.start, Category.AVAILABLE))
        cursor = max(cursor, seg.end)
    if cursor < DAY_END:
        free.append(TimelineSegment(cursor, DAY_END, Category.AVAILABLE))
    return free


def day_timeline(busy: Sequence[TimelineSegment]) -> list:
    return sorted([*busy, *complement(busy)], key=lambda s: (s.start, s.end))
