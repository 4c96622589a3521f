from pathlib import Path
import sys

import pendulum
import pytest

# Ensure the project root is on sys.path for direct test invocation without an editable install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from models import Interval, RecurrenceRule  # noqa: E402
from store import MemoryStore  # noqa: E402


def at(text: str, tz: str = "UTC") -> pendulum.DateTime:
    """'2024-03-10 23:00' in `tz`."""
    return pendulum.parse(text.replace(" ", "T"), tz=tz)


def make_interval(id, start, end, category="busy", owner="alice", tz="UTC", recurrence=None, description=None):
    return Interval(
        id=id,
        owner_id=owner,
        start=at(start, tz),
        end=at(end, tz),
        category=category,
        description=description,
        recurrence=recurrence,
    )


def daily(**kw):
    return RecurrenceRule(type="daily", **kw)


def weekly(*days, **kw):
    return RecurrenceRule(type="weekly", days_of_week=frozenset(days), **kw)


def monthly(day_of_month, **kw):
    return RecurrenceRule(type="monthly", day_of_month=day_of_month, **kw)


def spans(segments):
    return [(s.start_time, s.end_time, s.category.value) for s in segments]


@pytest.fixture()
def store():
    s = MemoryStore()
    s.add_user("alice", "UTC")
    s.add_user("bob", "UTC")
    return s
