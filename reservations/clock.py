from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from flask import current_app

EXTENSION_KEY = "reservations.clock"


class SystemClock:
    """Court-local wall time, naive (slot times carry no zone)."""

    def __init__(self, timezone: str = None):
        self.tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now()
        return datetime.now(self.tz).replace(tzinfo=None)


class FixedClock:
    """Clock pinned to a given instant; tests move it explicitly."""

    def __init__(self, at: datetime):
        self.at = at

    def now(self) -> datetime:
        return self.at

    def set(self, at: datetime):
        self.at = at

    def advance(self, **delta):
        self.at = self.at + timedelta(**delta)
        return self.at


def install_clock(app, clock=None):
    if clock is None:
        clock = SystemClock(app.config.get("COURT_TIMEZONE"))
    app.extensions[EXTENSION_KEY] = clock
    return clock


def get_clock():
    return current_app.extensions[EXTENSION_KEY]


def now() -> datetime:
    return get_clock().now()
