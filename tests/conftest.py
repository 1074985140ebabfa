"""
Shared fixtures: a fixed clock, shop policy, an in-memory BookingStore and a
throwaway SQLite database.
"""
from datetime import date, datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.orm import sessionmaker

from barbershop.database import build_engine, init_db
from barbershop.models import Barber, BarberSchedule, Service, ShopConfig
from barbershop.models.shop_config import DEFAULT_SHOP_HOURS
from barbershop.services.policy import ShopPolicy
from barbershop.services.slots import DaySchedule, ShopHours

CHICAGO = ZoneInfo("America/Chicago")

# 2026-10-19 is a Monday (CDT, UTC-5)
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)


def local(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=CHICAGO)


class FakeBookingStore:
    """In-memory BookingStore; names in `failing` raise on access"""

    def __init__(
        self,
        shop_policy=None,
        override=None,
        schedules=None,
        shop_hours=None,
        appointments=None,
        time_off=None,
    ):
        self.shop_policy = shop_policy
        self.override = override
        self.schedules = schedules or {}
        self.shop_hours = shop_hours or {}
        self.appointments = appointments or []
        self.time_off = time_off or []
        self.failing = set()
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")

    async def get_shop_policy(self):
        self._check("get_shop_policy")
        return self.shop_policy

    async def get_barber_policy_override(self, barber_id):
        self._check("get_barber_policy_override")
        return self.override

    async def get_day_schedule(self, barber_id, day_of_week):
        self._check("get_day_schedule")
        return self.schedules.get(day_of_week)

    async def get_shop_hours(self, day_of_week):
        self._check("get_shop_hours")
        return self.shop_hours.get(day_of_week)

    async def get_appointments(self, barber_id, start, end):
        self._check("get_appointments")
        return [a for a in self.appointments if a.scheduled_start < end and a.scheduled_end > start]

    async def get_time_off(self, barber_id, start, end):
        self._check("get_time_off")
        return list(self.time_off)


@pytest.fixture
def shop_policy():
    return ShopPolicy(
        days_bookable_in_advance=30,
        min_book_ahead_hours=2,
        min_cancel_ahead_hours=2,
        booking_interval_minutes=15,
        timezone="America/Chicago",
    )


@pytest.fixture
def now():
    """Monday 08:00 shop time"""
    return local(MONDAY, 8)


@pytest.fixture
def shop_hours():
    # Mon-Sat 09:00-18:00, closed Sunday
    return {dow: ShopHours("09:00", "18:00") for dow in range(1, 7)}


@pytest.fixture
def barber_schedules():
    # Mon-Fri 10:00-17:00, Saturday off
    schedules = {dow: DaySchedule(True, "10:00", "17:00") for dow in range(1, 6)}
    schedules[6] = DaySchedule(False, "10:00", "17:00")
    return schedules


@pytest.fixture
def fake_store(shop_policy, shop_hours, barber_schedules):
    return FakeBookingStore(shop_policy=shop_policy, schedules=barber_schedules, shop_hours=shop_hours)


# ==================== Database ====================

@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_db(db):
    """Shop config, one barber working Mon-Fri 10-17 and a 30 minute haircut"""
    db.add(ShopConfig(
        shop_name="Test Shop",
        timezone="America/Chicago",
        shop_hours=DEFAULT_SHOP_HOURS,
        days_bookable_in_advance=30,
        min_book_ahead_hours=2,
        min_cancel_ahead_hours=2,
        client_booking_interval_minutes=15,
    ))
    barber = Barber(
        name="Marco",
        active=True,
        service_commission_rate=Decimal("0.5"),
        product_commission_rate=Decimal("0.1"),
        tip_commission_rate=Decimal("1.0"),
    )
    db.add(barber)
    db.flush()

    for dow in range(1, 6):
        db.add(BarberSchedule(barber_id=barber.id, day_of_week=dow, start_time=time(10, 0), end_time=time(17, 0)))
    db.add(BarberSchedule(barber_id=barber.id, day_of_week=6, start_time=time(10, 0), end_time=time(17, 0), active=False))

    db.add(Service(name_en="Haircut", name_es="Corte de pelo", duration_minutes=30, price=Decimal("30.00")))
    db.commit()
    return db
