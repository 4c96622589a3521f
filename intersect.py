# intersect.py
"""
Free-time intersection across users on the shared minutes axis of the
reference day. Every input list is sorted and non-overlapping.
"""
from typing import Mapping, Sequence

from models import Category, TimelineSegment
from wallclock import DAY_END, DAY_START


def _breakpoints(lists) -> list:
    points = set()
    for segments in lists:
        for seg in segments:
            points.add(seg.start)
            points.add(seg.end)
    return sorted(points)


class _Cursor:
    """Walks one sorted segment list alongside ascending micro-intervals."""

    def __init__(self, segments: Sequence[TimelineSegment]):
        self.segments = segments
        self.i = 0

    def covering(self, start: int, end: int) -> TimelineSegment | None:
        while self.i < len(self.segments) and self.segments[self.i].end <= start:
            self.i += 1
        if self.i < len(self.segments):
            seg = self.segments[self.i]
            if seg.start <= start and seg.end >= end:
                return seg
        return None


def _coalesce(pieces) -> list:
    out = []
    for start, end, category in pieces:
        if out and out[-1].end == start and out[-1].category == category:
            out[-1] = TimelineSegment(out[-1].start, end, category)
        else:
            out.append(TimelineSegment(start, end, category))
    return out


def intersect_free(free_by_user: Mapping[str, Sequence[TimelineSegment]]) -> list:
    """
    Match segments: the times at which every user has an available segment.

    With fewer than two users there is nothing to intersect and the input
    passes through unchanged.
    """
    if not free_by_user:
        return []
    if len(free_by_user) == 1:
        return list(next(iter(free_by_user.values())))

    lists = list(free_by_user.values())
    cursors = [_Cursor(segments) for segments in lists]
    points = _breakpoints(lists)
    pieces = []
    for start, end in zip(points, points[1:]):
        if all(c.covering(start, end) is not None for c in cursors):
            pieces.append((start, end, Category.MATCH))
    return _coalesce(pieces)


def compose_timeline(viewer_busy: Sequence[TimelineSegment],
                     others_busy: Sequence[Sequence[TimelineSegment]],
                     matches: Sequence[TimelineSegment]) -> list:
    """
    Combined day for several users, seen by the viewer.

    Sleep wins if anyone sleeps, then the viewer's own busy category, then
    match where everyone is free, else available (only the viewer is free).
    """
    lists = [viewer_busy, matches, *others_busy]
    points = _breakpoints(lists + [[TimelineSegment(DAY_START, DAY_END, Category.AVAILABLE)]])
    viewer = _Cursor(viewer_busy)
    match = _Cursor(matches)
    others = [_Cursor(busy) for busy in others_busy]

    pieces = []
    for start, end in zip(points, points[1:]):
        mine = viewer.covering(start, end)
        theirs = [c.covering(start, end) for c in others]
        if (mine and mine.category is Category.SLEEP) or any(t and t.category is Category.SLEEP for t in theirs):
            category = Category.SLEEP
        elif mine is not None:
            category = mine.category
        elif match.covering(start, end) is not None:
            category = Category.MATCH
        else:
            category = Category.AVAILABLE
        pieces.append((start, end, category))
    return _coalesce(pieces)
