"""
Reads the availability engine needs from the database
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models.appointment import Appointment, NON_BLOCKING_STATUSES
from ..models.barber import Barber
from ..models.barber_schedule import BarberSchedule
from ..models.barber_time_off import BarberTimeOff
from ..models.shop_config import ShopConfig
from ..services.policy import BarberPolicyOverride, ShopPolicy
from ..services.slots import DaySchedule, ExistingAppointment, ShopHours, TimeOffBlock
from ..services.time_utils import ensure_aware, to_utc

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Read side of the data store, as seen by the availability engine"""

    async def get_shop_policy(self) -> Optional[ShopPolicy]:
        ...

    async def get_barber_policy_override(self, barber_id: int) -> Optional[BarberPolicyOverride]:
        ...

    async def get_day_schedule(self, barber_id: int, day_of_week: int) -> Optional[DaySchedule]:
        ...

    async def get_shop_hours(self, day_of_week: int) -> Optional[ShopHours]:
        ...

    async def get_appointments(self, barber_id: int, start: datetime, end: datetime) -> List[ExistingAppointment]:
        ...

    async def get_time_off(self, barber_id: int, start: datetime, end: datetime) -> List[TimeOffBlock]:
        ...


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


class SqlAlchemyBookingStore:
    """
    BookingStore over the SQLAlchemy models.
    Every read opens its own session and runs in the thread pool, so
    independent reads can be awaited together.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def _read(self, query: Callable, *args):
        return await run_in_threadpool(self._in_session, query, *args)

    def _in_session(self, query: Callable, *args):
        db = self.session_factory()
        try:
            return query(db, *args)
        finally:
            db.close()

    # ==================== Queries ====================

    @staticmethod
    def _shop_config(db: Session) -> Optional[ShopConfig]:
        return db.query(ShopConfig).order_by(ShopConfig.id).first()

    def _query_shop_policy(self, db: Session) -> Optional[ShopPolicy]:
        config = self._shop_config(db)
        if not config:
            logger.warning("shop_config row is missing")
            return None

        return ShopPolicy(
            days_bookable_in_advance=config.days_bookable_in_advance,
            min_book_ahead_hours=float(config.min_book_ahead_hours),
            min_cancel_ahead_hours=float(config.min_cancel_ahead_hours),
            booking_interval_minutes=config.client_booking_interval_minutes,
            timezone=config.timezone,
        )

    @staticmethod
    def _query_barber_override(db: Session, barber_id: int) -> Optional[BarberPolicyOverride]:
        barber = db.query(Barber).filter(Barber.id == barber_id).first()
        if not barber:
            return None

        return BarberPolicyOverride(
            min_book_ahead_hours=_optional_float(barber.min_hours_before_booking_override),
            min_cancel_ahead_hours=_optional_float(barber.min_hours_before_cancellation_override),
            booking_interval_minutes=barber.booking_interval_minutes_override,
        )

    @staticmethod
    def _query_day_schedule(db: Session, barber_id: int, day_of_week: int) -> Optional[DaySchedule]:
        schedule = db.query(BarberSchedule).filter(
            BarberSchedule.barber_id == barber_id,
            BarberSchedule.day_of_week == day_of_week
        ).first()
        if not schedule:
            return None

        return DaySchedule(
            active=bool(schedule.active),
            start_time=schedule.start_time.strftime("%H:%M"),
            end_time=schedule.end_time.strftime("%H:%M"),
        )

    def _query_shop_hours(self, db: Session, day_of_week: int) -> Optional[ShopHours]:
        config = self._shop_config(db)
        if not config or not config.shop_hours:
            return None

        hours = config.shop_hours.get(str(day_of_week))
        if not hours:
            return None
        return ShopHours(open=hours["open"], close=hours["close"])

    @staticmethod
    def _query_appointments(db: Session, barber_id: int, start: datetime, end: datetime) -> List[ExistingAppointment]:
        rows = db.query(Appointment).filter(
            Appointment.barber_id == barber_id,
            Appointment.scheduled_start < to_utc(end),
            Appointment.scheduled_end > to_utc(start),
            Appointment.status.notin_(NON_BLOCKING_STATUSES)
        ).order_by(Appointment.scheduled_start).all()

        return [
            ExistingAppointment(
                id=row.id,
                scheduled_start=ensure_aware(row.scheduled_start),
                scheduled_end=ensure_aware(row.scheduled_end),
                status=row.status,
                barber_id=row.barber_id,
            )
            for row in rows
        ]

    @staticmethod
    def _query_time_off(db: Session, barber_id: int, start: datetime, end: datetime) -> List[TimeOffBlock]:
        # start/end are shop-local day bounds, so their dates are shop dates
        full_day = and_(
            or_(BarberTimeOff.start_at.is_(None), BarberTimeOff.end_at.is_(None)),
            BarberTimeOff.date >= start.date(),
            BarberTimeOff.date < end.date(),
        )
        timed = and_(
            BarberTimeOff.start_at < to_utc(end),
            BarberTimeOff.end_at > to_utc(start),
        )
        rows = db.query(BarberTimeOff).filter(
            BarberTimeOff.barber_id == barber_id,
            or_(full_day, timed)
        ).all()

        return [
            TimeOffBlock(
                barber_id=row.barber_id,
                start=ensure_aware(row.start_at) if row.start_at else None,
                end=ensure_aware(row.end_at) if row.end_at else None,
                date=row.date,
            )
            for row in rows
        ]

    # ==================== BookingStore ====================

    async def get_shop_policy(self) -> Optional[ShopPolicy]:
        return await self._read(self._query_shop_policy)

    async def get_barber_policy_override(self, barber_id: int) -> Optional[BarberPolicyOverride]:
        return await self._read(self._query_barber_override, barber_id)

    async def get_day_schedule(self, barber_id: int, day_of_week: int) -> Optional[DaySchedule]:
        return await self._read(self._query_day_schedule, barber_id, day_of_week)

    async def get_shop_hours(self, day_of_week: int) -> Optional[ShopHours]:
        return await self._read(self._query_shop_hours, day_of_week)

    async def get_appointments(self, barber_id: int, start: datetime, end: datetime) -> List[ExistingAppointment]:
        return await self._read(self._query_appointments, barber_id, start, end)

    async def get_time_off(self, barber_id: int, start: datetime, end: datetime) -> List[TimeOffBlock]:
        return await self._read(self._query_time_off, barber_id, start, end)
