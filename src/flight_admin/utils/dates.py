"""
UTC date helpers for calendar bucketing.

Every calendar-day key in the system is derived from UTC components of the
timestamp's instant. Local wall-clock time is never consulted: a local
conversion moves records near midnight onto the neighbouring day for any
viewer not in UTC+0.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple, Union

from ..types import CalendarDirection, InvalidTimestampError, InvalidWindowError


_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def parse_utc(iso_timestamp: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted. Timestamps carrying an offset are converted
    to UTC; timestamps without one are taken to already be UTC, which is how
    the booking backend serialises them (``2025-03-26T00:00:00.000``).

    Raises:
        InvalidTimestampError: if the value is not an ISO-8601 string
    """
    if not isinstance(iso_timestamp, str) or not iso_timestamp.strip():
        raise InvalidTimestampError(iso_timestamp)

    text = iso_timestamp.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidTimestampError(iso_timestamp) from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc_date(iso_timestamp: str) -> date:
    """Calendar day (UTC) of a timestamp"""
    parsed = parse_utc(iso_timestamp)
    return date(parsed.year, parsed.month, parsed.day)


def bucket_key(iso_timestamp: str) -> str:
    """
    Canonical ``YYYY-MM-DD`` key of the UTC calendar day of a timestamp.

    Two representations of the same instant always produce the same key.
    """
    return to_utc_date(iso_timestamp).isoformat()


def day_key(day: date) -> str:
    """Key for a calendar day, matching ``bucket_key`` output"""
    return day.isoformat()


def today_utc(now: Optional[datetime] = None) -> date:
    """Current calendar day in UTC"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return date(now.year, now.month, now.day)


def day_range_bounds(
    start: date,
    length: int,
    direction: Union[CalendarDirection, str] = CalendarDirection.FORWARD,
) -> Tuple[date, date]:
    """
    First and last day of a range, ascending.

    Raises:
        InvalidWindowError: if the range leaves the supported date span
    """
    try:
        span = timedelta(days=length - 1)
        if CalendarDirection(direction) == CalendarDirection.FORWARD:
            return start, start + span
        return start - span, start
    except OverflowError:
        raise InvalidWindowError(
            f"Range of {length} days from {start.isoformat()} runs past the supported calendar"
        )


def day_range(
    start: date,
    length: int,
    direction: Union[CalendarDirection, str] = CalendarDirection.FORWARD,
) -> List[date]:
    """
    Contiguous calendar days, always returned in ascending order.

    Forward ranges begin at ``start``; backward ranges end at it.
    """
    direction = CalendarDirection(direction)
    day_range_bounds(start, length, direction)
    step = timedelta(days=1 if direction == CalendarDirection.FORWARD else -1)

    days = [start + step * offset for offset in range(length)]
    if direction == CalendarDirection.BACKWARD:
        days.reverse()
    return days


def format_day_label(day: date, today: date) -> str:
    """Carousel label: "Today", "Tomorrow" or e.g. "Thu, Jan" """
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    # fixed English names, strftime follows the process locale
    return f"{_WEEKDAYS[day.weekday()]}, {_MONTHS[day.month - 1]}"


def format_departure(iso_timestamp: str) -> str:
    """
    Departure label in UTC, e.g. "Thu, 25 Dec 25 • 5:30 AM".

    Raises:
        InvalidTimestampError: if the value is not an ISO-8601 string
    """
    moment = parse_utc(iso_timestamp)
    hour12 = moment.hour % 12 or 12
    meridiem = "PM" if moment.hour >= 12 else "AM"
    return (
        f"{_WEEKDAYS[moment.weekday()]}, {moment.day} {_MONTHS[moment.month - 1]} "
        f"{moment.year % 100:02d} • {hour12}:{moment.minute:02d} {meridiem}"
    )
