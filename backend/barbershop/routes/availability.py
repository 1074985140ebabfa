"""
API router for time slots and booking rule checks
"""
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_availability_service, get_booking_rules_service, get_now
from ..models.service import Service
from ..services.availability import AvailabilityService
from ..services.booking_rules import BookingAction, BookingRulesService

router = APIRouter(prefix="/api", tags=["availability"])


# ==================== Pydantic Schemas ====================

class TimeSlotResponse(BaseModel):
    start: datetime
    end: datetime
    time: str  # "HH:MM" shop time


class SlotsResponse(BaseModel):
    date: date
    barber_id: int
    duration_minutes: int
    slots: List[TimeSlotResponse]


class AvailableDatesResponse(BaseModel):
    barber_id: int
    duration_minutes: int
    dates: List[date]


class BookingRulesRequest(BaseModel):
    start_time: datetime
    action: BookingAction
    barber_id: Optional[int] = None


class BookingRuleError(BaseModel):
    field: str
    message: str
    message_es: str


class BookingRulesResponse(BaseModel):
    valid: bool
    error: Optional[BookingRuleError] = None


def resolve_service_duration(db: Session, service_id: Optional[int], duration_minutes: Optional[int]) -> int:
    """Duration from the service when given, else the explicit duration"""
    if service_id is not None:
        service = db.query(Service).filter(Service.id == service_id, Service.active == True).first()  # noqa: E712
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service.duration_minutes

    if duration_minutes is None:
        raise HTTPException(status_code=422, detail="Either service_id or duration_minutes is required")
    return duration_minutes


# ==================== API Endpoints ====================

@router.get("/barbers/{barber_id}/slots", response_model=SlotsResponse)
async def get_barber_slots(
    barber_id: int,
    target_date: date = Query(..., alias="date", description="YYYY-MM-DD, shop-local"),
    service_id: Optional[int] = Query(None),
    duration_minutes: Optional[int] = Query(None, gt=0),
    db: Session = Depends(get_db),
    availability: AvailabilityService = Depends(get_availability_service),
    now: datetime = Depends(get_now),
):
    """Bookable slots for a barber on one date"""
    duration = resolve_service_duration(db, service_id, duration_minutes)
    slots = await availability.get_available_time_slots(target_date, duration, barber_id, now=now)

    return SlotsResponse(
        date=target_date,
        barber_id=barber_id,
        duration_minutes=duration,
        slots=[TimeSlotResponse(start=slot.start, end=slot.end, time=slot.start_time) for slot in slots],
    )


@router.get("/barbers/{barber_id}/dates", response_model=AvailableDatesResponse)
async def get_barber_dates(
    barber_id: int,
    service_id: Optional[int] = Query(None),
    duration_minutes: Optional[int] = Query(None, gt=0),
    db: Session = Depends(get_db),
    availability: AvailabilityService = Depends(get_availability_service),
    now: datetime = Depends(get_now),
):
    """Dates within the booking window that still have a free slot"""
    duration = resolve_service_duration(db, service_id, duration_minutes)
    dates = await availability.get_available_dates(duration, barber_id, now=now)
    return AvailableDatesResponse(barber_id=barber_id, duration_minutes=duration, dates=dates)


@router.post("/booking-rules/validate", response_model=BookingRulesResponse)
async def validate_booking_rules(
    data: BookingRulesRequest,
    rules: BookingRulesService = Depends(get_booking_rules_service),
    now: datetime = Depends(get_now),
):
    """Check a proposed time against the shop and barber booking rules"""
    error = await rules.validate_booking_rules(data.start_time, data.action, data.barber_id, now=now)
    if error:
        return BookingRulesResponse(valid=False, error=BookingRuleError(**error.as_dict()))
    return BookingRulesResponse(valid=True)
