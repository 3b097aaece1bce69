# backend/courtbook/services/time_slot_calendar.py
"""
Time slot calendar.

Pure functions turning an operating window and a date into bookable start
times. A weekday without a window is a closed day and yields no slots;
there is no fallback schedule.
"""

from datetime import date, time
from typing import List, Optional, Protocol

from ..models.reservation import minutes_of_day, time_from_minutes


class WindowLike(Protocol):
    open_time: time
    close_time: time


def generate_slots(
    booking_date: date,
    window: Optional[WindowLike],
    granularity_minutes: int = 60,
    duration_minutes: Optional[int] = None,
) -> List[time]:
    """
    Ordered start times in [open, close) stepping by the granularity.

    Only starts whose full duration ends at or before closing are returned.

    Args:
        booking_date: Club-local date (kept for callers that log per date)
        window: The OperatingWindow for the date's weekday, or None if closed
        granularity_minutes: Step between candidate starts
        duration_minutes: Length that must fit; defaults to the granularity

    Returns:
        Start times, empty for closed days
    """
    if window is None:
        return []
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")

    duration = duration_minutes or granularity_minutes
    open_minutes = minutes_of_day(window.open_time)
    close_minutes = minutes_of_day(window.close_time)

    slots: List[time] = []
    minute = open_minutes
    while minute + duration <= close_minutes:
        slots.append(time_from_minutes(minute))
        minute += granularity_minutes
    return slots


def validate_booking_time(
    booking_date: date, window: Optional[WindowLike], start: time, end: time
) -> Optional[str]:
    """Why [start, end) does not fit the operating window, or None when it does."""
    weekday = booking_date.strftime("%A")
    if window is None:
        return f"No operating hours defined for {weekday}"
    if start < window.open_time:
        opens = window.open_time.strftime("%H:%M")
        return f"Booking cannot start before the club opens at {opens} on {weekday}s"
    if end > window.close_time:
        closes = window.close_time.strftime("%H:%M")
        return f"Booking cannot end after the club closes at {closes} on {weekday}s"
    if start >= end:
        return "End time must be after start time"
    return None
