from datetime import date

import pytest

from conftest import at
from errors import InvalidInput
from projector import at_wall_clock, clip_to_day, day_bounds, local_date, parse_day, resolve_zone, to_wall_clock
from wallclock import DAY_END

ROME = resolve_zone("Europe/Rome")
UTC = resolve_zone("UTC")


def test_parse_day():
    assert parse_day("2024-02-29") == date(2024, 2, 29)
    for bad in ("2023-02-29", "2024-13-01", "tomorrow", "2024-03-10T00:00:00"):
        with pytest.raises(InvalidInput) as err:
            parse_day(bad)
        assert err.value.code == "INVALID_DATE"


def test_resolve_zone_rejects_unknown_names():
    with pytest.raises(InvalidInput) as err:
        resolve_zone("Europe/Atlantis")
    assert err.value.code == "INVALID_TIMEZONE"


def test_day_bounds_follow_dst():
    start, end = day_bounds(date(2024, 3, 31), ROME)
    assert (end - start).in_hours() == 23


def test_wall_clock_conversions():
    instant = at("2024-03-10 23:30")
    assert local_date(instant, ROME) == date(2024, 3, 11)
    assert to_wall_clock(instant, ROME) == "00:30"
    assert at_wall_clock(date(2024, 3, 11), 30, ROME) == instant
    assert at_wall_clock(date(2024, 3, 11), DAY_END, UTC) == at("2024-03-12 00:00")


def test_clip_to_day():
    day = date(2024, 3, 11)
    assert clip_to_day(at("2024-03-10 22:00"), at("2024-03-11 07:00"), day, UTC) == (0, 420)
    assert clip_to_day(at("2024-03-11 22:00"), at("2024-03-12 07:00"), day, UTC) == (1320, DAY_END)
    assert clip_to_day(at("2024-03-11 23:00"), at("2024-03-12 00:00"), day, UTC) == (1380, DAY_END)
    assert clip_to_day(at("2024-03-10 09:00"), at("2024-03-10 10:00"), day, UTC) is None
    # 08:00-09:00 UTC is 09:00-10:00 in Rome
    assert clip_to_day(at("2024-03-11 08:00"), at("2024-03-11 09:00"), day, ROME) == (540, 600)
