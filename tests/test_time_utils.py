from datetime import date, datetime, time, timezone

import pytest

from barbershop.services.slots import TimeSlot
from barbershop.services.time_utils import (
    day_bounds,
    day_of_week,
    ensure_aware,
    localize,
    minute_of_day,
    minutes_to_time,
    overlaps,
    parse_time,
    shop_today,
    time_to_minutes,
    to_utc,
)

from .conftest import CHICAGO, MONDAY, SUNDAY, local


def test_parse_time():
    assert parse_time("09:30") == (9, 30)
    assert parse_time("9:05") == (9, 5)
    assert parse_time("17:00:00") == (17, 0)


@pytest.mark.parametrize("value", ["", "abc", "24:00", "10:60", "10-30", None])
def test_parse_time_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_time_to_minutes():
    assert time_to_minutes("00:00") == 0
    assert time_to_minutes("10:15") == 615
    assert time_to_minutes(time(16, 30)) == 990


def test_minutes_to_time_pads():
    assert minutes_to_time(0) == "00:00"
    assert minutes_to_time(545) == "09:05"
    assert minutes_to_time(1439) == "23:59"

    with pytest.raises(ValueError):
        minutes_to_time(1440)
    with pytest.raises(ValueError):
        minutes_to_time(-1)


def test_overlaps_is_half_open():
    slot = TimeSlot(local(MONDAY, 10, 30), local(MONDAY, 11))

    assert not overlaps(slot, local(MONDAY, 11), local(MONDAY, 11, 30))
    assert not overlaps(slot, local(MONDAY, 10), local(MONDAY, 10, 30))
    assert overlaps(slot, local(MONDAY, 10, 45), local(MONDAY, 11, 15))
    assert overlaps(slot, local(MONDAY, 10), local(MONDAY, 12))


def test_day_of_week_starts_on_sunday():
    assert day_of_week(SUNDAY) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2026, 10, 24)) == 6


def test_localize_and_ensure_aware():
    naive = datetime(2026, 10, 19, 9, 0)

    assert localize(naive, CHICAGO) == local(MONDAY, 9)
    assert ensure_aware(naive).tzinfo == timezone.utc
    # 15:00 UTC is 10:00 CDT
    assert localize(datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc), CHICAGO).hour == 10


def test_shop_today_uses_shop_zone():
    # 03:00 UTC Monday is still Sunday evening in Chicago
    assert shop_today(datetime(2026, 10, 19, 3, 0, tzinfo=timezone.utc), CHICAGO) == SUNDAY


def test_day_bounds_and_minute_of_day():
    start, end = day_bounds(MONDAY, CHICAGO)

    assert to_utc(start) == datetime(2026, 10, 19, 5, 0, tzinfo=timezone.utc)
    assert (end - start).total_seconds() == 24 * 3600
    assert minute_of_day(datetime(2026, 10, 19, 15, 37, tzinfo=timezone.utc), CHICAGO) == 10 * 60 + 37
