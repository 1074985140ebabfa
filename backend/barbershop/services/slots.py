"""
Slot generation and availability filtering.

Everything here is a pure function of its arguments: the caller passes
the shop policy, the barber's schedule, the day's appointments and time off,
and the current instant. AvailabilityService does the fetching.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.appointment import NON_BLOCKING_STATUSES
from .policy import BarberPolicyOverride, EffectivePolicy, ShopPolicy, resolve_policy
from .time_utils import (
    at_minutes,
    get_zone,
    overlaps,
    shop_today,
    time_to_minutes,
    to_utc,
)


@dataclass(frozen=True)
class DaySchedule:
    """A barber's working window for one day of the week ("HH:MM" strings)"""
    active: bool
    start_time: str
    end_time: str


@dataclass(frozen=True)
class ShopHours:
    open: str
    close: str


@dataclass(frozen=True)
class ExistingAppointment:
    id: int
    scheduled_start: datetime
    scheduled_end: datetime
    status: str
    barber_id: Optional[int] = None

    @property
    def blocks_time(self) -> bool:
        return self.status not in NON_BLOCKING_STATUSES


@dataclass(frozen=True)
class TimeOffBlock:
    """Absolute [start, end) absence; no start or no end means all of `date`"""
    barber_id: Optional[int]
    start: Optional[datetime]
    end: Optional[datetime]
    date: Optional[date] = None

    @property
    def is_full_day(self) -> bool:
        return self.start is None or self.end is None


@dataclass(frozen=True)
class TimeSlot:
    """A bookable candidate, aware datetimes in the shop timezone"""
    start: datetime
    end: datetime

    @property
    def start_time(self) -> str:
        return self.start.strftime("%H:%M")

    @property
    def end_time(self) -> str:
        return self.end.strftime("%H:%M")


def resolve_working_window(
    day_schedule: Optional[DaySchedule],
    shop_hours: Optional[ShopHours],
) -> Optional[Tuple[int, int]]:
    """
    Working window in minutes since midnight, or None when nobody works.

    Shop closed -> None. Barber schedule inactive -> None.
    Active barber schedule -> intersection with the shop hours.
    No barber schedule -> the shop hours.
    """
    if shop_hours is None:
        return None
    if day_schedule is not None and not day_schedule.active:
        return None

    start = time_to_minutes(shop_hours.open)
    end = time_to_minutes(shop_hours.close)

    if day_schedule is not None:
        start = max(start, time_to_minutes(day_schedule.start_time))
        end = min(end, time_to_minutes(day_schedule.end_time))

    if start >= end:
        return None
    return start, end


def step_slot_offsets(start: int, end: int, duration_minutes: int, interval_minutes: int) -> List[int]:
    """
    Start offsets of every [t, t + duration) that fits in [start, end),
    stepping by the interval from the first interval-aligned minute.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Service duration must be positive, got {duration_minutes}")
    if interval_minutes <= 0:
        raise ValueError(f"Booking interval must be positive, got {interval_minutes}")

    current = -(-start // interval_minutes) * interval_minutes
    offsets = []
    while current + duration_minutes <= end:
        offsets.append(current)
        current += interval_minutes
    return offsets


def generate_candidate_slots(
    target_date: date,
    service_duration_minutes: int,
    policy: EffectivePolicy,
    day_schedule: Optional[DaySchedule],
    shop_hours: Optional[ShopHours],
    now: datetime,
) -> List[TimeSlot]:
    """Raw ordered slots for one barber and one date, before any conflict filtering"""
    tz = get_zone(policy.timezone)

    window = resolve_working_window(day_schedule, shop_hours)
    if window is None:
        return []

    days_in_advance = (target_date - shop_today(now, tz)).days
    if days_in_advance < 0 or days_in_advance > policy.days_bookable_in_advance:
        return []

    start, end = window
    return [
        TimeSlot(
            start=at_minutes(target_date, offset, tz),
            end=at_minutes(target_date, offset, tz) + timedelta(minutes=service_duration_minutes),
        )
        for offset in step_slot_offsets(start, end, service_duration_minutes, policy.booking_interval_minutes)
    ]


def filter_available_slots(
    slots: Sequence[TimeSlot],
    policy: EffectivePolicy,
    appointments: Iterable[ExistingAppointment],
    time_off: Iterable[TimeOffBlock],
    now: datetime,
    target_date: Optional[date] = None,
) -> List[TimeSlot]:
    """
    Drop slots inside the minimum lead time, slots overlapping a blocking
    appointment and slots overlapping time off. Order is preserved.

    Slots starting more than days_bookable_in_advance days after `now` are
    dropped too, the same limit the booking rules apply.

    A full-day time-off block (for target_date, or undated) empties the day.
    """
    if not slots:
        return []

    time_off = list(time_off)
    for block in time_off:
        if block.is_full_day and (block.date is None or target_date is None or block.date == target_date):
            return []

    earliest = to_utc(now) + timedelta(hours=float(policy.min_book_ahead_hours))
    latest = to_utc(now) + timedelta(days=policy.days_bookable_in_advance)

    busy = [
        (appointment.scheduled_start, appointment.scheduled_end)
        for appointment in appointments
        if appointment.blocks_time
    ]
    busy.extend((block.start, block.end) for block in time_off if not block.is_full_day)

    return [
        slot for slot in slots
        if earliest <= slot.start <= latest
        and not any(overlaps(slot, busy_start, busy_end) for busy_start, busy_end in busy)
    ]


def generate_available_slots_for_barber(
    *,
    target_date: date,
    service_duration_minutes: int,
    shop_policy: ShopPolicy,
    day_schedule: Optional[DaySchedule],
    shop_hours: Optional[ShopHours],
    now: datetime,
    barber_override: Optional[BarberPolicyOverride] = None,
    appointments: Iterable[ExistingAppointment] = (),
    time_off: Iterable[TimeOffBlock] = (),
    barber_id: Optional[int] = None,
) -> List[TimeSlot]:
    """
    Bookable slots from pre-fetched data.

    When barber_id is given, appointments and time off tagged with another
    barber are ignored, so one fetch can serve several barbers.
    """
    policy = resolve_policy(shop_policy, barber_override)

    if barber_id is not None:
        appointments = [a for a in appointments if a.barber_id in (None, barber_id)]
        time_off = [b for b in time_off if b.barber_id in (None, barber_id)]

    candidates = generate_candidate_slots(
        target_date, service_duration_minutes, policy, day_schedule, shop_hours, now
    )
    return filter_available_slots(candidates, policy, appointments, time_off, now, target_date)
