"""Tests for civil-time helpers."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidTimeFormatException, InvalidTimezoneException
from app.core.timezones import (
    ensure_utc,
    format_time_in_zone,
    get_zone,
    local_date_key,
    local_day_window,
    minutes_to_time_string,
    parse_time_to_minutes,
    weekday_index,
    zoned_datetime_to_utc,
)


def test_parse_time_to_minutes() -> None:
    assert parse_time_to_minutes("00:00") == 0
    assert parse_time_to_minutes("09:30") == 570
    assert parse_time_to_minutes("23:59") == 1439


@pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "ab:cd", "", "09:00:00"])
def test_parse_time_rejects_malformed_values(value: str) -> None:
    with pytest.raises(InvalidTimeFormatException) as exc_info:
        parse_time_to_minutes(value)
    assert exc_info.value.code == "InvalidTimeFormat"
    assert exc_info.value.status_code == 422


def test_minutes_to_time_string() -> None:
    assert minutes_to_time_string(570) == "09:30"
    assert minutes_to_time_string(0) == "00:00"


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(InvalidTimezoneException) as exc_info:
        get_zone("Mars/Olympus_Mons")
    assert exc_info.value.code == "InvalidTimezone"


def test_manila_wall_clock_to_utc() -> None:
    assert zoned_datetime_to_utc(date(2026, 3, 2), "09:00", "Asia/Manila") == datetime(
        2026, 3, 2, 1, 0, tzinfo=UTC
    )


def test_conversion_across_spring_forward() -> None:
    # New York switches to EDT at 02:00 local on 2026-03-08
    assert zoned_datetime_to_utc(date(2026, 3, 7), "09:00", "America/New_York") == datetime(
        2026, 3, 7, 14, 0, tzinfo=UTC
    )
    assert zoned_datetime_to_utc(date(2026, 3, 8), "09:00", "America/New_York") == datetime(
        2026, 3, 8, 13, 0, tzinfo=UTC
    )


def test_conversion_across_fall_back() -> None:
    # London returns to GMT on 2026-10-25
    assert zoned_datetime_to_utc(date(2026, 10, 24), "12:00", "Europe/London") == datetime(
        2026, 10, 24, 11, 0, tzinfo=UTC
    )
    assert zoned_datetime_to_utc(date(2026, 10, 25), "12:00", "Europe/London") == datetime(
        2026, 10, 25, 12, 0, tzinfo=UTC
    )


def test_weekday_index_is_sunday_based() -> None:
    assert weekday_index(date(2026, 3, 1), "Asia/Manila") == 0
    assert weekday_index(date(2026, 3, 2), "Asia/Manila") == 1
    assert weekday_index(date(2026, 3, 7), "Asia/Manila") == 6
    # Far from UTC in both directions the weekday still follows the local date
    assert weekday_index(date(2026, 3, 1), "Pacific/Kiritimati") == 0
    assert weekday_index(date(2026, 3, 1), "Pacific/Pago_Pago") == 0


def test_local_date_key_uses_clinic_zone() -> None:
    # 16:30Z is already the next morning in Manila
    assert local_date_key(datetime(2026, 3, 1, 16, 30, tzinfo=UTC), "Asia/Manila") == "2026-03-02"
    assert local_date_key(datetime(2026, 3, 1, 15, 59, tzinfo=UTC), "Asia/Manila") == "2026-03-01"


def test_local_day_window() -> None:
    start, end = local_day_window(date(2026, 3, 2), "Asia/Manila")
    assert start == datetime(2026, 3, 1, 16, 0, tzinfo=UTC)
    assert end == datetime(2026, 3, 2, 16, 0, tzinfo=UTC)


def test_format_time_in_zone() -> None:
    assert format_time_in_zone(datetime(2026, 3, 2, 1, 15, tzinfo=UTC), "Asia/Manila") == "09:15"


def test_ensure_utc() -> None:
    naive = datetime(2026, 3, 2, 1, 0)
    assert ensure_utc(naive) == datetime(2026, 3, 2, 1, 0, tzinfo=UTC)

    manila = timezone(timedelta(hours=8))
    assert ensure_utc(datetime(2026, 3, 2, 9, 0, tzinfo=manila)).hour == 1
