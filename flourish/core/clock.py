"""Clock abstraction and local calendar-day arithmetic.

All scheduling math works on local calendar days in the clock's timezone,
never on UTC days. Timestamps are stored as UTC ISO-8601 strings so that
lexical comparison in filters matches chronological order.
"""

from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

from flourish.core.config import settings


class Clock(Protocol):
    """Source of the current time."""

    @property
    def tz(self) -> tzinfo:
        """Local timezone used for day boundaries."""
        ...

    def now(self) -> datetime:
        """Return the current aware datetime in the local timezone."""
        ...


def _default_tz() -> tzinfo:
    if settings.timezone:
        return ZoneInfo(settings.timezone)
    local_tz = datetime.now().astimezone().tzinfo
    return local_tz if local_tz is not None else UTC


class SystemClock:
    """Wall clock in the configured (or host) timezone."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz or _default_tz()

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """Clock frozen at a given instant; advance it explicitly."""

    def __init__(self, now: datetime) -> None:
        self.set(now)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta

    def set(self, now: datetime) -> None:
        if now.tzinfo is None:
            msg = "FixedClock requires an aware datetime"
            raise ValueError(msg)
        self._now = now
        self._tz: tzinfo = now.tzinfo


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Convert an aware datetime to the local zone (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(tz)


def local_date(value: datetime, tz: tzinfo) -> date:
    """Calendar date of a timestamp as seen in the local zone."""
    return to_local(value, tz).date()


def start_of_local_day(value: datetime, tz: tzinfo) -> datetime:
    """Midnight at the start of the local day containing ``value``."""
    return datetime.combine(local_date(value, tz), time.min, tzinfo=tz)


def start_of_date(day: date, tz: tzinfo) -> datetime:
    """Midnight at the start of a local calendar date."""
    return datetime.combine(day, time.min, tzinfo=tz)


def add_days(value: datetime, days: int) -> datetime:
    """Add whole days to a timestamp, keeping its wall-clock time."""
    return value + timedelta(days=days)


def to_storage(value: datetime) -> str:
    """Serialize a timestamp for the document store (UTC ISO-8601)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a stored timestamp into an aware datetime (naive values are taken as UTC)."""
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
