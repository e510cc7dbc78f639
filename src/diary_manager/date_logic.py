from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
ALLOWED_LEAP_DAY_RULES = {"feb28", "mar1"}


class InvalidBirthdayError(ValueError):
    pass


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def ensure_aware(value: datetime, tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def format_timestamp(value: datetime, tz: tzinfo) -> str:
    return ensure_aware(value, tz).astimezone(tz).strftime(TIMESTAMP_FORMAT)


def local_date(value: datetime, tz: tzinfo) -> date:
    return ensure_aware(value, tz).astimezone(tz).date()


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_window(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    start = start_of_day(day, tz)
    return start, start + timedelta(hours=24)


def occurrence_for_year(month: int, day: int, year: int, leap_day_rule: str) -> date:
    if month == 2 and day == 29 and not is_leap_year(year):
        if leap_day_rule == "feb28":
            return date(year, 2, 28)
        if leap_day_rule == "mar1":
            return date(year, 3, 1)
        raise InvalidBirthdayError(f"Unsupported leap day rule: {leap_day_rule}")
    return date(year, month, day)


def is_birthday_due(birth: datetime, last_celebrated: date | None, today: date, tz: tzinfo, leap_day_rule: str) -> bool:
    stored = local_date(birth, tz)
    if stored > today:
        return False
    if last_celebrated == today:
        return False
    return occurrence_for_year(stored.month, stored.day, today.year, leap_day_rule) == today


def advance_one_year(value: datetime, tz: tzinfo, leap_day_rule: str) -> datetime:
    local = ensure_aware(value, tz).astimezone(tz)
    target = occurrence_for_year(local.month, local.day, local.year + 1, leap_day_rule)
    return local.replace(year=target.year, month=target.month, day=target.day)
