"""
FastAPI dependencies shared by the routers
"""
from datetime import datetime

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import SessionLocal, get_db
from .repositories.booking_store import BookingStore, SqlAlchemyBookingStore
from .services.availability import AvailabilityService
from .services.booking_rules import BookingRulesService
from .services.commissions import CommissionService
from .services.time_utils import utc_now


def get_now() -> datetime:
    """Current instant; overridden in tests"""
    return utc_now()


def get_booking_store() -> BookingStore:
    return SqlAlchemyBookingStore(SessionLocal)


def get_availability_service(store: BookingStore = Depends(get_booking_store)) -> AvailabilityService:
    return AvailabilityService(store)


def get_booking_rules_service(store: BookingStore = Depends(get_booking_store)) -> BookingRulesService:
    return BookingRulesService(store)


def get_commission_service(db: Session = Depends(get_db)) -> CommissionService:
    return CommissionService(db)
