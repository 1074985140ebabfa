"""
Availability for one barber: fetches the day's inputs and runs the slot engine
"""
import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from ..repositories.booking_store import BookingStore
from .policy import resolve_policy
from .slots import TimeSlot, generate_available_slots_for_barber
from .time_utils import day_bounds, day_of_week, get_zone, localize, shop_today, utc_now

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Bookable time slots for a barber, read through a BookingStore"""

    def __init__(self, store: BookingStore):
        self.store = store

    async def get_available_time_slots(
        self,
        target_date: date,
        service_duration_minutes: int,
        barber_id: int,
        now: Optional[datetime] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Bookable slots for `target_date` (a shop-local date).

        Store failures and invalid stored policies are logged and yield an
        empty list; malformed stored times raise ValueError.
        """
        now = now or utc_now()

        try:
            shop_policy, override = await asyncio.gather(
                self.store.get_shop_policy(),
                self.store.get_barber_policy_override(barber_id),
            )
            if shop_policy is None:
                logger.error("Shop policy unavailable, no slots for barber %s on %s", barber_id, target_date)
                return []

            # ValueError on invalid stored values, such as a zero interval
            resolve_policy(shop_policy, override)
            tz = get_zone(shop_policy.timezone)
            weekday = day_of_week(target_date)
            day_start, day_end = day_bounds(target_date, tz)

            day_schedule, shop_hours, appointments, time_off = await asyncio.gather(
                self.store.get_day_schedule(barber_id, weekday),
                self.store.get_shop_hours(weekday),
                self.store.get_appointments(barber_id, day_start, day_end),
                self.store.get_time_off(barber_id, day_start, day_end),
            )
        except Exception:
            logger.exception("Error loading availability for barber %s on %s", barber_id, target_date)
            return []

        if exclude_appointment_id is not None:
            appointments = [a for a in appointments if a.id != exclude_appointment_id]

        slots = generate_available_slots_for_barber(
            target_date=target_date,
            service_duration_minutes=service_duration_minutes,
            shop_policy=shop_policy,
            barber_override=override,
            day_schedule=day_schedule,
            shop_hours=shop_hours,
            appointments=appointments,
            time_off=time_off,
            now=now,
            barber_id=barber_id,
        )
        logger.debug("%d slots for barber %s on %s", len(slots), barber_id, target_date)
        return slots

    async def find_slot(
        self,
        barber_id: int,
        start: datetime,
        service_duration_minutes: int,
        now: Optional[datetime] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[TimeSlot]:
        """
        The available slot starting exactly at `start`, or None.
        Naive `start` is shop wall-clock time.
        """
        try:
            shop_policy = await self.store.get_shop_policy()
            if shop_policy is None:
                return None
            local_start = localize(start, get_zone(shop_policy.timezone))
        except Exception:
            logger.exception("Error loading shop policy for slot check")
            return None

        slots = await self.get_available_time_slots(
            local_start.date(),
            service_duration_minutes,
            barber_id,
            now=now,
            exclude_appointment_id=exclude_appointment_id,
        )
        return next((slot for slot in slots if slot.start == local_start), None)

    async def is_slot_bookable(
        self,
        barber_id: int,
        start: datetime,
        service_duration_minutes: int,
        now: Optional[datetime] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        slot = await self.find_slot(barber_id, start, service_duration_minutes, now, exclude_appointment_id)
        return slot is not None

    async def get_available_dates(
        self,
        service_duration_minutes: int,
        barber_id: int,
        now: Optional[datetime] = None,
    ) -> List[date]:
        """Dates from today through the advance window with at least one slot"""
        now = now or utc_now()

        try:
            shop_policy = await self.store.get_shop_policy()
        except Exception:
            logger.exception("Error loading shop policy for available dates")
            return []
        if shop_policy is None:
            return []

        today = shop_today(now, get_zone(shop_policy.timezone))
        candidates = [today + timedelta(days=i) for i in range(shop_policy.days_bookable_in_advance + 1)]

        results = await asyncio.gather(*(
            self.get_available_time_slots(day, service_duration_minutes, barber_id, now=now)
            for day in candidates
        ))
        return [day for day, slots in zip(candidates, results) if slots]
