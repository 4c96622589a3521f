# engine.py
"""
Timeline pipeline: validate the request, fetch every user's intervals
concurrently, build each user's day in the reference timezone, intersect.

Everything after the fetch is a pure function of the fetched snapshots.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date

from builder import build_day_schedule, complement, day_timeline
from errors import ComputationTimeout, InvalidInput, TimelineError, UpstreamFetchFailure
from intersect import compose_timeline, intersect_free
from models import UserIntervals
from projector import parse_day, resolve_zone
from slots import first_available_slot, suggest_end_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineRequest:
    day: date
    user_ids: tuple
    reference_tz: str

    @classmethod
    def parse(cls, day, user_ids, reference_tz: str, max_users: int) -> "TimelineRequest":
        if isinstance(day, str):
            day = parse_day(day)
        if isinstance(user_ids, str):
            user_ids = user_ids.split(",")
        ids = []
        for uid in user_ids or ():
            uid = str(uid).strip()
            if uid and uid not in ids:
                ids.append(uid)
        if not ids:
            raise InvalidInput("At least one user id is required")
        if len(ids) > max_users:
            raise InvalidInput(f"At most {max_users} users can be compared")
        resolve_zone(reference_tz)
        return cls(day=day, user_ids=tuple(ids), reference_tz=reference_tz)


@dataclass(frozen=True)
class UserSnapshot:
    user_id: str
    timezone: str
    records: UserIntervals


@dataclass(frozen=True)
class DayView:
    """Per-user busy/free lists plus the combined output segments."""
    busy: dict
    free: dict
    matches: list
    segments: list


def build_view(request: TimelineRequest, snapshots) -> DayView:
    ref_tz = resolve_zone(request.reference_tz)
    busy, free = {}, {}
    for snap in snapshots:
        owner_tz = resolve_zone(snap.timezone)
        busy[snap.user_id] = build_day_schedule(snap.records, request.day, ref_tz, owner_tz, user_id=snap.user_id)
        free[snap.user_id] = complement(busy[snap.user_id])

    if len(request.user_ids) == 1:
        only = request.user_ids[0]
        return DayView(busy=busy, free=free, matches=[], segments=day_timeline(busy[only]))

    matches = intersect_free(free)
    viewer, *others = request.user_ids
    segments = compose_timeline(busy[viewer], [busy[u] for u in others], matches)
    return DayView(busy=busy, free=free, matches=matches, segments=segments)


def build_timeline(request: TimelineRequest, snapshots) -> list:
    return build_view(request, snapshots).segments


async def _fetch_one(store, user_id: str, day: date) -> UserSnapshot:
    try:
        tz = await asyncio.to_thread(store.timezone_of, user_id)
        records = await asyncio.to_thread(store.list_intervals, user_id, day)
    except TimelineError:
        raise
    except Exception as e:
        logger.exception("interval fetch failed for user %s", user_id)
        raise UpstreamFetchFailure(user_id) from e
    return UserSnapshot(user_id=user_id, timezone=tz, records=records)


async def fetch_snapshots(store, request: TimelineRequest) -> list:
    tasks = [asyncio.ensure_future(_fetch_one(store, uid, request.day)) for uid in request.user_ids]
    try:
        return await asyncio.gather(*tasks)
    finally:
        for t in tasks:
            if not t.done():
                t.cancel()


async def compute_view(request: TimelineRequest, store, timeout: float) -> DayView:
    started = time.perf_counter()

    async def run():
        snapshots = await fetch_snapshots(store, request)
        logger.debug("fetched %d user snapshot(s) for %s", len(snapshots), request.day)
        return build_view(request, snapshots)

    try:
        view = await asyncio.wait_for(run(), timeout)
    except asyncio.TimeoutError:
        logger.warning("timeline timeout: date=%s users=%s after %.1f ms",
                       request.day, list(request.user_ids), (time.perf_counter() - started) * 1000)
        raise ComputationTimeout() from None
    logger.info("timeline calculated: date=%s users=%s segments=%d duration=%.1f ms",
                request.day, list(request.user_ids), len(view.segments), (time.perf_counter() - started) * 1000)
    return view


async def compute_timeline(request: TimelineRequest, store, timeout: float) -> list:
    view = await compute_view(request, store, timeout)
    return [seg.to_dict() for seg in view.segments]


async def next_common_slot(request: TimelineRequest, store, timeout: float, from_time: str = "00:00") -> dict:
    """First time every requested user is free, with a suggested end."""
    view = await compute_view(request, store, timeout)
    free = view.matches if len(request.user_ids) > 1 else view.free[request.user_ids[0]]
    start = first_available_slot(free, from_time)
    return {
        "date": request.day.isoformat(),
        "start": start,
        "end": suggest_end_time(start, free) if start else None,
    }
