import asyncio
import time
from datetime import date

import pytest

from conftest import daily, make_interval
from engine import TimelineRequest, compute_timeline, next_common_slot
from errors import ComputationTimeout, InvalidInput, UnknownUser, UpstreamFetchFailure, GENERIC_MESSAGE
from store import MemoryStore


def request(*users, day="2024-03-10", tz="UTC", max_users=5):
    return TimelineRequest.parse(day, list(users), tz, max_users)


def run(coro):
    return asyncio.run(coro)


class BrokenStore(MemoryStore):
    def list_intervals(self, user_id, day):
        raise RuntimeError("could not connect to database at 10.0.0.5 (password=hunter2)")


class SlowStore(MemoryStore):
    def list_intervals(self, user_id, day):
        time.sleep(0.5)
        return super().list_intervals(user_id, day)


def test_request_validation():
    req = request("alice", " bob ", "alice")
    assert req.user_ids == ("alice", "bob")
    assert req.day == date(2024, 3, 10)
    assert TimelineRequest.parse("2024-03-10", "a,b", "UTC", 5).user_ids == ("a", "b")

    with pytest.raises(InvalidInput) as err:
        request("alice", day="10/03/2024")
    assert err.value.code == "INVALID_DATE"
    with pytest.raises(InvalidInput) as err:
        request("alice", day="2024-03-10T10:00:00")
    assert err.value.code == "INVALID_DATE"
    with pytest.raises(InvalidInput) as err:
        request("alice", tz="Nowhere/Land")
    assert err.value.code == "INVALID_TIMEZONE"
    with pytest.raises(InvalidInput):
        request()
    with pytest.raises(InvalidInput):
        request("a", "b", "c", max_users=2)


def test_single_user_timeline(store):
    store.add_interval(make_interval("s", "2024-03-01 23:00", "2024-03-02 07:00", category="sleep", recurrence=daily()))
    out = run(compute_timeline(request("alice"), store, 1.0))
    assert out == [
        {"start": "00:00", "end": "07:00", "category": "sleep"},
        {"start": "07:00", "end": "23:00", "category": "available"},
        {"start": "23:00", "end": "23:59", "category": "sleep"},
    ]


def test_two_users_get_match_segments(store):
    store.add_interval(make_interval("a1", "2024-03-10 00:00", "2024-03-10 14:00", owner="alice"))
    store.add_interval(make_interval("a2", "2024-03-10 15:00", "2024-03-10 15:30", owner="alice"))
    store.add_interval(make_interval("a3", "2024-03-10 16:00", "2024-03-11 00:00", owner="alice"))
    store.add_interval(make_interval("b1", "2024-03-10 00:00", "2024-03-10 14:00", owner="bob"))
    store.add_interval(make_interval("b2", "2024-03-10 16:00", "2024-03-11 00:00", owner="bob"))
    out = run(compute_timeline(request("alice", "bob"), store, 1.0))
    assert [(s["start"], s["end"], s["category"]) for s in out] == [
        ("00:00", "14:00", "busy"),
        ("14:00", "15:00", "match"),
        ("15:00", "15:30", "busy"),
        ("15:30", "16:00", "match"),
        ("16:00", "23:59", "busy"),
    ]


def test_single_user_has_no_match_segments(store):
    out = run(compute_timeline(request("bob"), store, 1.0))
    assert out == [{"start": "00:00", "end": "23:59", "category": "available"}]


def test_collaborator_in_another_zone_is_projected(store):
    store.add_user("yuki", "Asia/Tokyo")
    # 09:00-10:00 in Tokyo every day is 00:00-01:00 UTC
    store.add_interval(make_interval("t", "2024-03-01 09:00", "2024-03-01 10:00", owner="yuki",
                                     tz="Asia/Tokyo", recurrence=daily()))
    out = run(compute_timeline(request("alice", "yuki"), store, 1.0))
    assert out[:2] == [
        {"start": "00:00", "end": "01:00", "category": "available"},
        {"start": "01:00", "end": "23:59", "category": "match"},
    ]


def test_unknown_user_surfaces_as_is(store):
    with pytest.raises(UnknownUser):
        run(compute_timeline(request("alice", "carol"), store, 1.0))


def test_upstream_failure_is_generic():
    s = BrokenStore()
    s.add_user("alice")
    with pytest.raises(UpstreamFetchFailure) as err:
        run(compute_timeline(request("alice"), s, 1.0))
    assert err.value.message == GENERIC_MESSAGE
    assert "hunter2" not in str(err.value)
    assert "database" not in err.value.to_dict()["error"]["message"]


def test_timeout_is_one_error():
    s = SlowStore()
    s.add_user("alice")
    s.add_user("bob")
    with pytest.raises(ComputationTimeout) as err:
        run(compute_timeline(request("alice", "bob"), s, 0.05))
    assert err.value.code == "TIMELINE_TIMEOUT"


def test_pipeline_is_idempotent(store):
    store.add_interval(make_interval("s", "2024-03-01 23:00", "2024-03-02 07:00", category="sleep", recurrence=daily()))
    store.add_interval(make_interval("b", "2024-03-10 12:00", "2024-03-10 13:00", owner="bob"))
    req = request("alice", "bob", tz="Europe/Rome")
    assert run(compute_timeline(req, store, 1.0)) == run(compute_timeline(req, store, 1.0))


def test_next_common_slot(store):
    store.add_interval(make_interval("a", "2024-03-10 00:00", "2024-03-10 08:00", owner="alice"))
    store.add_interval(make_interval("b", "2024-03-10 08:00", "2024-03-10 09:10", owner="bob"))
    out = run(next_common_slot(request("alice", "bob"), store, 1.0))
    assert out == {"date": "2024-03-10", "start": "09:10", "end": "10:15"}
    late = run(next_common_slot(request("alice"), store, 1.0, from_time="23:59"))
    assert late["start"] is None and late["end"] is None
