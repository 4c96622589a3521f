from models import Category, TimelineSegment
from slots import first_available_slot, is_start_within_busy, suggest_end_time
from wallclock import parse_hhmm


def seg(start, end, category=Category.AVAILABLE):
    return TimelineSegment(parse_hhmm(start), parse_hhmm(end), category)


FREE = [seg("07:00", "09:00"), seg("10:00", "10:40"), seg("18:00", "23:59")]
BUSY = [seg("00:00", "07:00", Category.SLEEP), seg("09:00", "10:00", Category.BUSY)]


def test_first_available_slot():
    assert first_available_slot(FREE) == "07:00"
    assert first_available_slot(FREE, "08:15") == "08:15"
    assert first_available_slot(FREE, "09:00") == "10:00"
    assert first_available_slot(FREE, "23:59") is None
    assert first_available_slot([]) is None


def test_is_start_within_busy():
    assert is_start_within_busy("09:30", BUSY) is True
    assert is_start_within_busy("09:00", BUSY) is False
    assert is_start_within_busy("10:00", BUSY) is False


def test_suggest_end_time_rounds_to_quarter_hours():
    assert suggest_end_time("07:00", FREE) == "08:00"
    assert suggest_end_time("07:10", FREE) == "08:15"


def test_suggest_end_time_is_capped_by_the_free_segment():
    assert suggest_end_time("10:00", FREE) == "10:40"
    assert suggest_end_time("23:30", FREE) == "23:59"


def test_suggest_end_time_outside_free_time():
    assert suggest_end_time("09:30", FREE) is None
