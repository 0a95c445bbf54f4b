"""Civil-time helpers for converting clinic wall-clock times to instants."""

import re
from datetime import UTC, date, datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import InvalidTimeFormatException, InvalidTimezoneException

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Offset conversion never moves midday across a calendar boundary
_MIDDAY = "12:00"


@lru_cache(maxsize=256)
def get_zone(name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        InvalidTimezoneException: If the zone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneException(name) from e


def parse_time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` into minutes after midnight."""
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise InvalidTimeFormatException(str(value))
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time_string(total_minutes: int) -> str:
    """Render minutes after midnight as ``HH:MM``."""
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _offset_at(instant: datetime, zone: ZoneInfo) -> timedelta:
    offset = instant.astimezone(zone).utcoffset()
    return offset if offset is not None else timedelta(0)


def zoned_datetime_to_utc(day: date, wall_time: str, timezone_name: str) -> datetime:
    """
    Convert a local date and ``HH:MM`` wall-clock time in a zone to a UTC instant.

    The wall clock is first read as if it were UTC; the zone offset at that
    guess is subtracted, then the offset is re-derived at the result and the
    conversion repeated once if it changed (DST shifts are whole hours, so
    two passes settle).

    Args:
        day: Local calendar date
        wall_time: Local time as ``HH:MM``
        timezone_name: IANA timezone name

    Returns:
        Aware datetime in UTC
    """
    zone = get_zone(timezone_name)
    minutes = parse_time_to_minutes(wall_time)
    guess = datetime(day.year, day.month, day.day, tzinfo=UTC) + timedelta(minutes=minutes)

    offset = _offset_at(guess, zone)
    result = guess - offset
    for _ in range(2):
        corrected = _offset_at(result, zone)
        if corrected == offset:
            break
        offset = corrected
        result = guess - offset
    return result


def weekday_index(day: date, timezone_name: str) -> int:
    """Return the local weekday for a date with Sunday=0 .. Saturday=6."""
    anchor = zoned_datetime_to_utc(day, _MIDDAY, timezone_name)
    local = anchor.astimezone(get_zone(timezone_name))
    # isoweekday: Monday=1 .. Sunday=7
    return local.isoweekday() % 7


def format_time_in_zone(instant: datetime, timezone_name: str) -> str:
    """Render an instant as a 24-hour ``HH:MM`` label in the given zone."""
    return ensure_utc(instant).astimezone(get_zone(timezone_name)).strftime("%H:%M")


def local_date(instant: datetime, timezone_name: str) -> date:
    """Return the calendar date of an instant in the given zone."""
    return ensure_utc(instant).astimezone(get_zone(timezone_name)).date()


def local_date_key(instant: datetime, timezone_name: str) -> str:
    """Return the local calendar date of an instant as ``YYYY-MM-DD``."""
    return local_date(instant, timezone_name).isoformat()


def local_day_window(day: date, timezone_name: str) -> tuple[datetime, datetime]:
    """Return the UTC half-open window ``[start, end)`` covering a local day."""
    start = zoned_datetime_to_utc(day, "00:00", timezone_name)
    end = zoned_datetime_to_utc(day + timedelta(days=1), "00:00", timezone_name)
    return start, end
