"""
Timezone utilities for club-local scheduling.

Reservations store club-local dates and wall times. These helpers turn
them into aware datetimes so they can be compared with the clock.
"""

from datetime import date, datetime, time
from typing import TYPE_CHECKING

import pytz

if TYPE_CHECKING:
    from courtbook.models.club import Club


def get_club_timezone(club: "Club") -> pytz.BaseTzInfo:
    """
    Get the club's timezone.

    Args:
        club: Club object (always has a timezone name)

    Returns:
        Club timezone as pytz timezone object
    """
    return pytz.timezone(club.timezone or "UTC")


def club_now(club: "Club", now_utc: datetime) -> datetime:
    """Convert an aware UTC instant into the club's local time."""
    if now_utc.tzinfo is None:
        now_utc = pytz.UTC.localize(now_utc)
    return now_utc.astimezone(get_club_timezone(club))


def localize_club_time(club: "Club", on_date: date, wall_time: time) -> datetime:
    """
    Build an aware datetime for a club-local date and wall time.

    pytz needs localize() rather than tzinfo= to pick the right DST offset.
    """
    tz = get_club_timezone(club)
    return tz.localize(datetime.combine(on_date, wall_time))


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from start to end."""
    return (end - start).total_seconds() / 3600.0
