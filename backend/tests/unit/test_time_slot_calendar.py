from datetime import date, time
from types import SimpleNamespace

import pytest

from courtbook.services.time_slot_calendar import generate_slots, validate_booking_time

TUESDAY = date(2030, 6, 4)


def _window(open_time: time, close_time: time):
    return SimpleNamespace(open_time=open_time, close_time=close_time)


def test_hourly_slots_cover_open_to_last_full_hour():
    slots = generate_slots(TUESDAY, _window(time(8, 0), time(12, 0)), 60)

    assert slots == [time(8, 0), time(9, 0), time(10, 0), time(11, 0)]


def test_partial_trailing_hour_is_dropped():
    slots = generate_slots(TUESDAY, _window(time(8, 0), time(10, 30)), 60)

    assert slots == [time(8, 0), time(9, 0)]


def test_closed_day_yields_no_slots():
    assert generate_slots(TUESDAY, None, 60) == []


def test_duration_longer_than_granularity_must_fit_before_close():
    slots = generate_slots(TUESDAY, _window(time(8, 0), time(11, 0)), 30, duration_minutes=90)

    assert slots == [time(8, 0), time(8, 30), time(9, 0), time(9, 30)]


def test_rejects_non_positive_granularity():
    with pytest.raises(ValueError):
        generate_slots(TUESDAY, _window(time(8, 0), time(9, 0)), 0)


@pytest.mark.parametrize(
    "start,end",
    [(time(8, 0), time(9, 0)), (time(21, 0), time(22, 0))],
)
def test_window_inside_hours_is_valid(start, end):
    assert validate_booking_time(TUESDAY, _window(time(8, 0), time(22, 0)), start, end) is None


@pytest.mark.parametrize(
    "start,end,message",
    [
        (time(7, 30), time(8, 30), "cannot start before the club opens at 08:00 on Tuesdays"),
        (time(21, 30), time(22, 30), "cannot end after the club closes at 22:00 on Tuesdays"),
        (time(10, 0), time(10, 0), "End time must be after start time"),
    ],
)
def test_window_outside_hours_reports_reason(start, end, message):
    reason = validate_booking_time(TUESDAY, _window(time(8, 0), time(22, 0)), start, end)

    assert message in reason


def test_closed_day_has_no_hours():
    reason = validate_booking_time(TUESDAY, None, time(9, 0), time(10, 0))

    assert reason == "No operating hours defined for Tuesday"
