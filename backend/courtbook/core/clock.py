"""Injectable time source so services never read the wall clock directly."""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current aware UTC time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock implementation used outside tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = SystemClock()
