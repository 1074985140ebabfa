"""
API router for booking, cancelling and rescheduling appointments
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_availability_service, get_booking_rules_service, get_now
from ..models.appointment import NON_BLOCKING_STATUSES, Appointment, AppointmentStatus
from ..models.barber import Barber
from ..models.client import Client
from ..models.service import Service
from ..services.availability import AvailabilityService
from ..services.booking_rules import BookingAction, BookingRulesService
from ..services.time_utils import ensure_aware, to_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["appointments"])


# ==================== Pydantic Schemas ====================

class AppointmentCreate(BaseModel):
    barber_id: int
    service_id: int
    start_time: datetime  # naive = shop time
    client_name: str = Field(..., min_length=2, max_length=100)
    client_phone: str = Field(..., min_length=7, max_length=20)
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    action: BookingAction
    new_start_time: Optional[datetime] = None
    reason: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: int
    barber_id: int
    service_id: int
    client_id: Optional[int]
    scheduled_start: datetime
    scheduled_end: datetime
    status: str
    service_price: Optional[float]
    notes: Optional[str]


def _to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        barber_id=appointment.barber_id,
        service_id=appointment.service_id,
        client_id=appointment.client_id,
        scheduled_start=ensure_aware(appointment.scheduled_start),
        scheduled_end=ensure_aware(appointment.scheduled_end),
        status=appointment.status,
        service_price=float(appointment.service_price) if appointment.service_price is not None else None,
        notes=appointment.notes,
    )


def _normalize_phone(phone: str) -> str:
    return "".join(ch for ch in phone if ch.isdigit() or ch == "+")


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing else note


def _has_conflict(db: Session, appointment: Appointment) -> bool:
    """Another blocking appointment of the same barber overlaps this one"""
    return db.query(Appointment.id).filter(
        Appointment.barber_id == appointment.barber_id,
        Appointment.id != appointment.id,
        Appointment.scheduled_start < appointment.scheduled_end,
        Appointment.scheduled_end > appointment.scheduled_start,
        Appointment.status.notin_(NON_BLOCKING_STATUSES)
    ).first() is not None


def _get_or_create_client(db: Session, name: str, phone: str) -> Client:
    client = db.query(Client).filter(Client.phone == phone).first()
    if client:
        return client

    parts = name.strip().split(" ", 1)
    client = Client(first_name=parts[0], last_name=parts[1] if len(parts) > 1 else parts[0], phone=phone)
    db.add(client)
    db.flush()
    return client


async def _require_rules(
    rules: BookingRulesService,
    start: datetime,
    action: BookingAction,
    barber_id: int,
    now: datetime,
):
    error = await rules.validate_booking_rules(start, action, barber_id, now=now)
    if error:
        raise HTTPException(status_code=400, detail=error.as_dict())


# ==================== API Endpoints ====================

@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    rules: BookingRulesService = Depends(get_booking_rules_service),
    availability: AvailabilityService = Depends(get_availability_service),
    now: datetime = Depends(get_now),
):
    """Book an appointment at a specific time"""
    # Held until commit so concurrent bookings for one barber run one at a time
    barber = db.query(Barber).filter(
        Barber.id == data.barber_id, Barber.active == True  # noqa: E712
    ).with_for_update().first()
    if not barber:
        raise HTTPException(status_code=404, detail="Barber not found")

    service = db.query(Service).filter(Service.id == data.service_id, Service.active == True).first()  # noqa: E712
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    await _require_rules(rules, data.start_time, BookingAction.CREATE, barber.id, now)

    slot = await availability.find_slot(barber.id, data.start_time, service.duration_minutes, now=now)
    if slot is None:
        raise HTTPException(status_code=409, detail="Selected time is no longer available")

    client = _get_or_create_client(db, data.client_name, _normalize_phone(data.client_phone))
    appointment = Appointment(
        barber_id=barber.id,
        client_id=client.id,
        service_id=service.id,
        scheduled_start=to_utc(slot.start),
        scheduled_end=to_utc(slot.end),
        status=AppointmentStatus.BOOKED.value,
        service_price=service.price,
        source="client_web",
        notes=data.notes,
    )
    db.add(appointment)
    db.flush()

    if _has_conflict(db, appointment):
        db.rollback()
        raise HTTPException(status_code=409, detail="Selected time is no longer available")

    db.commit()
    db.refresh(appointment)

    logger.info("Appointment %s booked with barber %s at %s", appointment.id, barber.id, slot.start.isoformat())
    return _to_response(appointment)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    db: Session = Depends(get_db),
    rules: BookingRulesService = Depends(get_booking_rules_service),
    availability: AvailabilityService = Depends(get_availability_service),
    now: datetime = Depends(get_now),
):
    """Cancel or reschedule an appointment"""
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")

    if appointment.status != AppointmentStatus.BOOKED.value:
        raise HTTPException(status_code=400, detail="This appointment can no longer be changed")

    current_start = ensure_aware(appointment.scheduled_start)

    if data.action == BookingAction.CANCEL:
        await _require_rules(rules, current_start, BookingAction.CANCEL, appointment.barber_id, now)

        appointment.status = AppointmentStatus.CANCELLED.value
        note = f"Cancelled by client: {data.reason}" if data.reason else "Cancelled by client self-service"
        appointment.notes = _append_note(appointment.notes, note)
        db.commit()
        db.refresh(appointment)

        logger.info("Appointment %s cancelled", appointment.id)
        return _to_response(appointment)

    if data.action == BookingAction.RESCHEDULE:
        if data.new_start_time is None:
            raise HTTPException(status_code=422, detail="new_start_time is required to reschedule")

        db.query(Barber).filter(Barber.id == appointment.barber_id).with_for_update().first()

        # The existing booking must still be inside the online-change window
        await _require_rules(rules, current_start, BookingAction.CANCEL, appointment.barber_id, now)
        await _require_rules(rules, data.new_start_time, BookingAction.RESCHEDULE, appointment.barber_id, now)

        duration = ensure_aware(appointment.scheduled_end) - current_start
        duration_minutes = int(duration.total_seconds() // 60)
        slot = await availability.find_slot(
            appointment.barber_id,
            data.new_start_time,
            duration_minutes,
            now=now,
            exclude_appointment_id=appointment.id,
        )
        if slot is None:
            raise HTTPException(status_code=409, detail="New time is not available")

        appointment.scheduled_start = to_utc(slot.start)
        appointment.scheduled_end = to_utc(slot.start + duration)
        appointment.notes = _append_note(appointment.notes, "Rescheduled by client self-service")
        db.flush()

        if _has_conflict(db, appointment):
            db.rollback()
            raise HTTPException(status_code=409, detail="New time is not available")

        db.commit()
        db.refresh(appointment)

        logger.info("Appointment %s rescheduled to %s", appointment.id, slot.start.isoformat())
        return _to_response(appointment)

    raise HTTPException(status_code=400, detail='Invalid action. Must be "cancel" or "reschedule"')
