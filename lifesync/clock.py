"""Injectable sources of "now" and "today"."""

from datetime import date, datetime, time


class SystemClock:
    """Clock backed by the device's local wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock(SystemClock):
    """Clock pinned to a given instant, moved explicitly."""

    def __init__(self, current: datetime):
        if not isinstance(current, datetime):
            current = datetime.combine(current, time(12, 0))
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime):
        if not isinstance(current, datetime):
            current = datetime.combine(current, time(12, 0))
        self.current = current
