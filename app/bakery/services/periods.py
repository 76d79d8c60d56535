from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.bakery.core.config import settings
from app.bakery.core.error_catalog import AppError, ErrorCatalog

PERIODS = ("daily", "weekly", "monthly")
UTC_ALIASES = ("UTC", "Z", "Etc/UTC")


class ReportDateRange:
    def __init__(
        self,
        *,
        start_local: datetime,
        end_local: datetime,
        start_utc: datetime,
        end_utc: datetime,
        timezone_name: str,
    ) -> None:
        self.start_local = start_local
        self.end_local = end_local
        self.start_utc = start_utc
        self.end_utc = end_utc
        self.timezone_name = timezone_name

    @property
    def start_date(self) -> date:
        return self.start_local.date()

    @property
    def end_date(self) -> date:
        return self.end_local.date()

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        return self.start_utc <= _ensure_utc(moment) <= self.end_utc


def parse_timestamp(value) -> datetime | None:
    """Best-effort conversion of a stored timestamp into an aware UTC datetime.

    Accepts datetimes, dates, ISO strings, epoch milliseconds and ``{seconds|_seconds}``
    maps as written by the document store. Anything else, including unparseable text,
    yields ``None`` so callers can skip the record instead of failing the report.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch(value / 1000)
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None or isinstance(seconds, bool):
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        try:
            return _from_epoch(float(seconds) + float(nanos) / 1_000_000_000)
        except (TypeError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return _ensure_utc(parsed)
    return None


def _from_epoch(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def daily_key(value: date | datetime) -> str:
    return _as_date(value).isoformat()


def monthly_key(value: date | datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def week_range(value: date | datetime) -> tuple[date, date]:
    current = _as_date(value)
    monday = current - timedelta(days=current.isoweekday() - 1)
    return monday, monday + timedelta(days=6)


def weekly_key(value: date | datetime) -> str:
    monday, sunday = week_range(value)
    return f"{monday.isoformat()}/{sunday.isoformat()}"


_KEY_BUILDERS = {
    "daily": daily_key,
    "weekly": weekly_key,
    "monthly": monthly_key,
}


def report_timezone() -> ZoneInfo:
    return resolve_timezone(settings.REPORT_TIMEZONE)


def local_date(value, tz=None) -> date | None:
    moment = parse_timestamp(value)
    if moment is None:
        return None
    return moment.astimezone(tz or report_timezone()).date()


def period_key(value, period: str | None, tz=None) -> str | None:
    builder = _KEY_BUILDERS.get(period) if period else None
    if builder is None:
        return None
    day = local_date(value, tz)
    if day is None:
        return None
    return builder(day)


def resolve_timezone(timezone_name: str | None):
    tz_name = timezone_name or "UTC"
    if tz_name in UTC_ALIASES:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise AppError(ErrorCatalog.INVALID_TIMEZONE, details={"timezone": tz_name}) from exc


def resolve_date_range(
    from_value: str | date | datetime | None,
    to_value: str | date | datetime | None,
    tz,
    *,
    default_start: datetime | None = None,
    default_end: datetime | None = None,
) -> ReportDateRange:
    now_local = datetime.now(tz)
    start_local, _ = _parse_datetime_or_date(
        from_value,
        tz,
        default=default_start or now_local.replace(hour=0, minute=0, second=0, microsecond=0),
    )
    end_local, to_is_date = _parse_datetime_or_date(to_value, tz, default=default_end or now_local)
    if to_is_date:
        end_local = end_local + timedelta(days=1) - timedelta(microseconds=1)
    if end_local < start_local:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "end date must be after start date"})
    return ReportDateRange(
        start_local=start_local,
        end_local=end_local,
        start_utc=start_local.astimezone(timezone.utc),
        end_utc=end_local.astimezone(timezone.utc),
        timezone_name=str(tz),
    )


def validate_date_range(date_range: ReportDateRange, *, max_days: int) -> None:
    if max_days <= 0:
        return
    if date_range.total_days > max_days:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={
                "message": "date range exceeds limit",
                "reason_code": "REPORT_DATE_RANGE_LIMIT_EXCEEDED",
                "max_days": max_days,
            },
        )


def _parse_datetime_or_date(value, tz, *, default: datetime) -> tuple[datetime, bool]:
    if value is None or value == "":
        return default, False
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz), False
        return value.astimezone(tz), False
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz), True
    normalized = str(value).replace("Z", "+00:00")
    if "T" in normalized or ":" in normalized:
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid datetime", "value": value}) from exc
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=tz), False
        return parsed.astimezone(tz), False
    try:
        parsed_date = date.fromisoformat(normalized)
    except ValueError as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid date", "value": value}) from exc
    return datetime.combine(parsed_date, time.min, tzinfo=tz), True
