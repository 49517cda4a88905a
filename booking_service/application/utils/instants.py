from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from booking_service.application.exceptions import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_range_bound(value: str, tz: ZoneInfo, field_name: str, end_of_day: bool = False) -> datetime:
    """
    Parse an availability range bound.
    "YYYY-MM-DD" is a local business day (start or end of it); anything else must be
    an ISO 8601 instant, naive values being UTC.
    """
    text = value.strip()
    if len(text) == 10:
        try:
            day = date.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"{field_name} is not a valid date", fields=[field_name]) from e
        wall = datetime.combine(day, time.max if end_of_day else time.min)
        return wall.replace(tzinfo=tz).astimezone(timezone.utc)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"{field_name} is not a valid ISO 8601 instant", fields=[field_name]) from e
    return ensure_utc(parsed)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return instant.astimezone(tz).date()
