"""
Wall-clock and shop-timezone helpers
"""
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Union
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class ParsedTime(NamedTuple):
    hours: int
    minutes: int


def parse_time(time_str: str) -> ParsedTime:
    """
    Parse "HH:MM" (seconds, if present, are ignored).

    Raises:
        ValueError: the string is not a valid wall-clock time
    """
    match = _TIME_RE.match(time_str.strip()) if isinstance(time_str, str) else None
    if not match:
        raise ValueError(f"Invalid time string: {time_str!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {time_str!r}")
    return ParsedTime(hours, minutes)


def time_to_minutes(value: Union[str, time]) -> int:
    """Minutes since midnight for "HH:MM" or a datetime.time"""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    hours, minutes = parse_time(value)
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Format minutes since midnight as zero-padded "HH:MM" """
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(slot, busy_start, busy_end) -> bool:
    """
    Half-open interval intersection: [slot.start, slot.end) vs [busy_start, busy_end).
    Touching endpoints do not overlap.
    """
    return slot.start < busy_end and slot.end > busy_start


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name (raises ZoneInfoNotFoundError)"""
    return ZoneInfo(name)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the database as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def localize(value: datetime, tz: ZoneInfo) -> datetime:
    """Naive datetimes are shop wall-clock time; aware ones are converted"""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def shop_today(now: datetime, tz: ZoneInfo) -> date:
    """Calendar date in the shop at instant `now`"""
    return localize(now, tz).date()


def day_of_week(target_date: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return (target_date.weekday() + 1) % 7


def at_minutes(target_date: date, minutes: int, tz: ZoneInfo) -> datetime:
    """Aware datetime for `minutes` after local midnight of `target_date`"""
    return datetime.combine(target_date, time(minutes // 60, minutes % 60), tzinfo=tz)


def day_bounds(target_date: date, tz: ZoneInfo) -> tuple:
    """[start, end) of the shop-local calendar day, as aware datetimes"""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def minute_of_day(value: datetime, tz: ZoneInfo) -> int:
    local = localize(value, tz)
    return local.hour * 60 + local.minute


def to_utc(value: datetime) -> datetime:
    """Aware UTC datetime for storage and queries (naive input is taken as UTC)"""
    return ensure_aware(value).astimezone(timezone.utc)
