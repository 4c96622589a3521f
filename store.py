# store.py
"""
Interval store adapter.

Read contract used by the engine: list_intervals(user_id, day) and
timezone_of(user_id). MemoryStore keeps everything in process; JsonStore
persists the same data as one JSON file, read and written whole.

Every write goes through overlap.check_write.
"""
import json
import logging
import os
import threading
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path

import pendulum

from errors import InvalidInput, UnknownUser
from models import MAX_INTERVAL, Interval, RecurrenceException, RecurrenceRule, UserIntervals
from overlap import check_write, find_conflicts
from projector import at_wall_clock, parse_day, resolve_zone, to_instant
from recurrence import expand
from wallclock import normalize_end, to_minutes, validate_time_order

logger = logging.getLogger(__name__)


# ---------- (de)serialization ----------
def rule_to_dict(rule: RecurrenceRule) -> dict:
    return {
        "type": rule.type.value,
        "daysOfWeek": sorted(int(d) for d in rule.days_of_week),
        "dayOfMonth": rule.day_of_month,
        "until": rule.until.isoformat() if rule.until else None,
    }


def rule_from_dict(d: dict) -> RecurrenceRule:
    until = d.get("until")
    return RecurrenceRule(
        type=d["type"],
        days_of_week=frozenset(d.get("daysOfWeek") or ()),
        day_of_month=d.get("dayOfMonth"),
        until=to_instant(until) if until else None,
    )


def interval_to_dict(iv: Interval) -> dict:
    return {
        "id": iv.id,
        "ownerId": iv.owner_id,
        "start": pendulum.instance(iv.start).in_timezone("UTC").to_iso8601_string(),
        "end": pendulum.instance(iv.end).in_timezone("UTC").to_iso8601_string(),
        "category": iv.category.value,
        "description": iv.description,
        "recurrence": rule_to_dict(iv.recurrence) if iv.recurrence else None,
    }


def interval_from_dict(d: dict, owner_id: str | None = None) -> Interval:
    rec = d.get("recurrence")
    return Interval(
        id=str(d["id"]),
        owner_id=str(d.get("ownerId") or owner_id),
        start=to_instant(d["start"]),
        end=to_instant(d["end"]),
        category=d.get("category", "busy"),
        description=d.get("description"),
        recurrence=rule_from_dict(rec) if rec else None,
    )


def exception_to_dict(exc: RecurrenceException) -> dict:
    return {
        "recurrenceId": exc.recurrence_id,
        "exceptionDate": exc.exception_date.isoformat(),
        "modified": interval_to_dict(exc.modified) if exc.modified else None,
    }


def exception_from_dict(d: dict, owner_id: str | None = None) -> RecurrenceException:
    mod = d.get("modified")
    return RecurrenceException(
        recurrence_id=str(d["recurrenceId"]),
        exception_date=parse_day(d["exceptionDate"]),
        modified=interval_from_dict(mod, owner_id) if mod else None,
    )


# ---------- stores ----------
class MemoryStore:
    def __init__(self):
        self._lock = threading.RLock()
        self._timezones: dict[str, str] = {}
        self._intervals: dict[str, list] = {}
        self._exceptions: dict[str, list] = {}

    # -- read contract --
    def timezone_of(self, user_id: str) -> str:
        with self._lock:
            if user_id not in self._timezones:
                raise UnknownUser(user_id)
            return self._timezones[user_id]

    def list_intervals(self, user_id: str, day: date) -> UserIntervals:
        """One-time intervals near `day`, every template, and the templates' exceptions."""
        with self._lock:
            if user_id not in self._timezones:
                raise UnknownUser(user_id)
            lo = pendulum.datetime(day.year, day.month, day.day, tz="UTC").subtract(days=MAX_INTERVAL.days + 1)
            hi = pendulum.datetime(day.year, day.month, day.day, tz="UTC").add(days=2)
            intervals = self._intervals.get(user_id, [])
            one_time = tuple(iv for iv in intervals if not iv.is_template and iv.start < hi and iv.end > lo)
            templates = tuple(iv for iv in intervals if iv.is_template)
            ids = {t.id for t in templates}
            exceptions = tuple(e for e in self._exceptions.get(user_id, []) if e.recurrence_id in ids)
        return UserIntervals(one_time=one_time, templates=templates, exceptions=exceptions)

    def users(self) -> list:
        with self._lock:
            return sorted(self._timezones)

    # -- writes --
    def add_user(self, user_id: str, timezone: str = "UTC") -> None:
        resolve_zone(timezone)
        with self._lock:
            self._timezones[user_id] = timezone
            self._intervals.setdefault(user_id, [])
            self._exceptions.setdefault(user_id, [])
            self._persist()

    def get_interval(self, user_id: str, interval_id: str) -> Interval | None:
        with self._lock:
            return next((iv for iv in self._intervals.get(user_id, []) if iv.id == interval_id), None)

    def conflicts_for(self, candidate: Interval, exclude_id: str | None = None) -> list:
        """Ids of the owner's stored intervals the candidate would collide with."""
        tz = resolve_zone(self.timezone_of(candidate.owner_id))
        with self._lock:
            return find_conflicts(candidate, self._intervals.get(candidate.owner_id, []), tz, exclude_id)

    def check_candidate(self, candidate: Interval, exclude_id: str | None = None) -> None:
        tz = resolve_zone(self.timezone_of(candidate.owner_id))
        with self._lock:
            check_write(candidate, self._intervals.get(candidate.owner_id, []), tz, exclude_id)

    def add_interval(self, interval: Interval) -> Interval:
        with self._lock:
            if self.get_interval(interval.owner_id, interval.id) is not None:
                raise InvalidInput(f"Interval {interval.id} already exists", code="INVALID_INTERVAL")
            self.check_candidate(interval)
            self._intervals[interval.owner_id].append(interval)
            self._persist()
        logger.info("interval %s added for %s", interval.id, interval.owner_id)
        return interval

    def update_interval(self, interval: Interval) -> Interval:
        with self._lock:
            existing = self.get_interval(interval.owner_id, interval.id)
            if existing is None:
                raise InvalidInput(f"Unknown interval: {interval.id}", code="INVALID_INTERVAL")
            self.check_candidate(interval, exclude_id=interval.id)
            items = self._intervals[interval.owner_id]
            items[items.index(existing)] = interval
            self._persist()
        logger.info("interval %s updated for %s", interval.id, interval.owner_id)
        return interval

    def delete_interval(self, user_id: str, interval_id: str) -> bool:
        with self._lock:
            existing = self.get_interval(user_id, interval_id)
            if existing is None:
                return False
            self._intervals[user_id].remove(existing)
            self._exceptions[user_id] = [e for e in self._exceptions.get(user_id, []) if e.recurrence_id != interval_id]
            self._persist()
        logger.info("interval %s deleted for %s", interval_id, user_id)
        return True

    def _template_on(self, user_id: str, template_id: str, day: date) -> Interval:
        template = self.get_interval(user_id, template_id)
        if template is None or not template.is_template:
            raise InvalidInput(f"Unknown recurring interval: {template_id}", code="INVALID_RECURRENCE")
        tz = resolve_zone(self.timezone_of(user_id))
        if expand(template, day, tz) is None:
            raise InvalidInput(f"{template_id} has no occurrence on {day.isoformat()}", code="INVALID_RECURRENCE")
        return template

    def _put_exception(self, user_id: str, exc: RecurrenceException) -> None:
        kept = [e for e in self._exceptions.get(user_id, []) if e.key != exc.key]
        kept.append(exc)
        self._exceptions[user_id] = kept
        self._persist()

    def edit_occurrence(self, user_id: str, template_id: str, day: date, start_time: str, end_time: str,
                        category=None) -> RecurrenceException:
        """Move or resize the occurrence of a template on one date."""
        validate_time_order(start_time, end_time)
        with self._lock:
            template = self._template_on(user_id, template_id, day)
            tz = resolve_zone(self.timezone_of(user_id))
            start = at_wall_clock(day, to_minutes(start_time), tz)
            end = at_wall_clock(day, normalize_end(start_time, end_time), tz)
            modified = replace(
                template,
                id=f"{template_id}@{day.isoformat()}",
                start=start,
                end=end,
                category=category or template.category,
                recurrence=None,
            )
            edited = [
                e.modified for e in self._exceptions.get(user_id, [])
                if e.modified is not None and e.key != (template_id, day)
            ]
            # modified occurrences stay clear of one-time intervals and of each other
            check_write(modified, [*self._intervals.get(user_id, []), *edited], tz)
            exc = RecurrenceException(recurrence_id=template_id, exception_date=day, modified=modified)
            self._put_exception(user_id, exc)
        logger.info("occurrence of %s on %s edited for %s", template_id, day, user_id)
        return exc

    def delete_occurrence(self, user_id: str, template_id: str, day: date) -> RecurrenceException:
        with self._lock:
            self._template_on(user_id, template_id, day)
            exc = RecurrenceException(recurrence_id=template_id, exception_date=day)
            self._put_exception(user_id, exc)
        logger.info("occurrence of %s on %s deleted for %s", template_id, day, user_id)
        return exc

    def _persist(self) -> None:
        pass


class JsonStore(MemoryStore):
    """
    {"users": {"<id>": {"timezone": "...", "intervals": [...], "exceptions": [...]}}}
    """

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self._loading = False
        if self.path.exists():
            self.load()

    def load(self) -> None:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.loads(f.read() or "{}")
        with self._lock:
            self._loading = True
            try:
                self._timezones.clear()
                self._intervals.clear()
                self._exceptions.clear()
                for user_id, row in (data.get("users") or {}).items():
                    self._timezones[user_id] = row.get("timezone") or "UTC"
                    self._intervals[user_id] = [interval_from_dict(d, user_id) for d in row.get("intervals", [])]
                    self._exceptions[user_id] = [exception_from_dict(d, user_id) for d in row.get("exceptions", [])]
            finally:
                self._loading = False
        logger.info("loaded %d user(s) from %s", len(self._timezones), self.path)

    def _persist(self) -> None:
        if self._loading:
            return
        data = {"users": {}}
        for user_id, tz in self._timezones.items():
            data["users"][user_id] = {
                "timezone": tz,
                "intervals": [interval_to_dict(iv) for iv in self._intervals.get(user_id, [])],
                "exceptions": [exception_to_dict(e) for e in self._exceptions.get(user_id, [])],
            }
        os.makedirs(self.path.parent, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)
