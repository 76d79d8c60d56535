from datetime import date, datetime, timezone

import pytest

from app.bakery.core.error_catalog import AppError, ErrorCatalog
from app.bakery.services.periods import (
    daily_key,
    monthly_key,
    parse_timestamp,
    period_key,
    resolve_date_range,
    resolve_timezone,
    validate_date_range,
    week_range,
    weekly_key,
)


def test_week_range_from_wednesday():
    monday, sunday = week_range(date(2024, 1, 17))

    assert monday == date(2024, 1, 15)
    assert sunday == date(2024, 1, 21)


def test_week_range_from_monday_starts_on_itself():
    monday, sunday = week_range(date(2024, 1, 15))

    assert monday == date(2024, 1, 15)
    assert sunday == date(2024, 1, 21)


def test_week_range_from_sunday_ends_on_itself():
    assert week_range(date(2024, 1, 21)) == (date(2024, 1, 15), date(2024, 1, 21))


def test_weekly_key_crosses_month_boundary():
    assert weekly_key(date(2024, 2, 1)) == "2024-01-29/2024-02-04"


def test_daily_and_monthly_keys():
    moment = datetime(2024, 9, 5, 23, 30, tzinfo=timezone.utc)

    assert daily_key(moment) == "2024-09-05"
    assert monthly_key(moment) == "2024-09"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-15T10:00:00Z", datetime(2024, 1, 15, 10, tzinfo=timezone.utc)),
        ("2024-01-15", datetime(2024, 1, 15, tzinfo=timezone.utc)),
        (1705312800000, datetime(2024, 1, 15, 10, tzinfo=timezone.utc)),
        ({"seconds": 1705312800, "nanoseconds": 0}, datetime(2024, 1, 15, 10, tzinfo=timezone.utc)),
        (datetime(2024, 1, 15, 10), datetime(2024, 1, 15, 10, tzinfo=timezone.utc)),
        (date(2024, 1, 15), datetime(2024, 1, 15, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_accepts_stored_formats(value, expected):
    assert parse_timestamp(value) == expected


@pytest.mark.parametrize("value", [None, "", "garbage", {"nanoseconds": 5}, True, float("nan"), [2024]])
def test_parse_timestamp_never_raises(value):
    assert parse_timestamp(value) is None


def test_period_key_for_each_period():
    value = "2024-01-17T10:00:00Z"

    assert period_key(value, "daily") == "2024-01-17"
    assert period_key(value, "weekly") == "2024-01-15/2024-01-21"
    assert period_key(value, "monthly") == "2024-01"


def test_period_key_null_date_or_period():
    assert period_key(None, "daily") is None
    assert period_key("not-a-date", "weekly") is None
    assert period_key("2024-01-17T10:00:00Z", None) is None


def test_period_key_uses_report_timezone():
    value = "2024-02-01T03:00:00Z"
    bogota = resolve_timezone("America/Bogota")

    assert period_key(value, "monthly", timezone.utc) == "2024-02"
    assert period_key(value, "monthly", bogota) == "2024-01"


def test_resolve_timezone_utc_aliases():
    assert resolve_timezone(None) == timezone.utc
    assert resolve_timezone("Z") == timezone.utc


def test_resolve_timezone_invalid():
    with pytest.raises(AppError) as exc:
        resolve_timezone("Mars/Olympus")

    assert exc.value.error == ErrorCatalog.INVALID_TIMEZONE


def test_resolve_date_range_whole_days():
    date_range = resolve_date_range("2024-01-01", "2024-01-31", timezone.utc)

    assert date_range.start_date == date(2024, 1, 1)
    assert date_range.end_date == date(2024, 1, 31)
    assert date_range.total_days == 31
    assert date_range.contains(datetime(2024, 1, 31, 23, 59, tzinfo=timezone.utc))
    assert not date_range.contains(datetime(2024, 2, 1, tzinfo=timezone.utc))
    assert not date_range.contains(None)


def test_resolve_date_range_rejects_inverted_range():
    with pytest.raises(AppError) as exc:
        resolve_date_range("2024-02-01", "2024-01-01", timezone.utc)

    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR


def test_resolve_date_range_rejects_invalid_date():
    with pytest.raises(AppError) as exc:
        resolve_date_range("2024-13-01", None, timezone.utc)

    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR


def test_validate_date_range_limit():
    date_range = resolve_date_range("2024-01-01", "2024-01-10", timezone.utc)

    validate_date_range(date_range, max_days=10)
    validate_date_range(date_range, max_days=0)
    with pytest.raises(AppError) as exc:
        validate_date_range(date_range, max_days=9)

    assert exc.value.error == ErrorCatalog.VALIDATION_ERROR
    assert exc.value.details["reason_code"] == "REPORT_DATE_RANGE_LIMIT_EXCEEDED"
