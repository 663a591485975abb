"""
Minute-of-day and calendar arithmetic.

Times of day are plain integers counting minutes from midnight; 1440 is the
end-of-day marker. Dates are ``pendulum.Date`` values, handled as plain
year/month/day so results never depend on the host time zone.
"""

import re
from datetime import date, datetime
from typing import Iterator

import pendulum
from pendulum import Date

from .exceptions import InvalidFormat

MINUTES_PER_DAY = 1440

_CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def to_minutes(hhmm: str) -> int:
    """
    Convert an ``HH:MM`` clock string to minutes from midnight.

    Raises:
        InvalidFormat: If the text is not a clock time, the hour is outside
            0-23 or the minute is outside 0-59.
    """
    if not isinstance(hhmm, str):
        raise InvalidFormat(f"Invalid time format: {hhmm!r}. Expected HH:MM")

    match = _CLOCK_PATTERN.match(hhmm)
    if not match:
        raise InvalidFormat(f"Invalid time format: {hhmm!r}. Expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise InvalidFormat(f"Invalid time format: {hhmm!r}. Expected HH:MM")

    return hours * 60 + minutes


def to_clock(minutes: int) -> str:
    """
    Convert minutes from midnight to ``HH:MM``.

    1440 renders as ``"24:00"`` (end of day).
    """
    if not isinstance(minutes, int) or not 0 <= minutes <= MINUTES_PER_DAY:
        raise InvalidFormat(f"Invalid minutes: {minutes!r}. Must be 0-{MINUTES_PER_DAY}")

    if minutes == MINUTES_PER_DAY:
        return "24:00"

    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    return start1 < end2 and start2 < end1


def clamp(value, low, high):
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def to_date(value) -> Date:
    """
    Coerce an ISO ``YYYY-MM-DD`` string or a date/datetime to ``pendulum.Date``.

    Raises:
        InvalidFormat: If the value cannot be read as a calendar date.
    """
    # pendulum.DateTime is also a pendulum.Date, so datetimes go first.
    if isinstance(value, datetime):
        return pendulum.date(value.year, value.month, value.day)

    if isinstance(value, Date):
        return value

    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    if isinstance(value, str):
        try:
            parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD")
        except ValueError as exc:
            raise InvalidFormat(f"Invalid date: {value!r}. Expected YYYY-MM-DD") from exc
        return pendulum.date(parsed.year, parsed.month, parsed.day)

    raise InvalidFormat(f"Invalid date: {value!r}. Expected YYYY-MM-DD")


def next_day(day) -> Date:
    """Return the calendar day after ``day``."""
    return to_date(day).add(days=1)


def previous_day(day) -> Date:
    """Return the calendar day before ``day``."""
    return to_date(day).subtract(days=1)


def day_of_week(day) -> int:
    """Day of week with 0 = Sunday through 6 = Saturday."""
    return to_date(day).isoweekday() % 7


def iter_days(start, end) -> Iterator[Date]:
    """Yield every date of the closed range ``[start, end]``."""
    current = to_date(start)
    last = to_date(end)

    while current <= last:
        yield current
        current = current.add(days=1)
