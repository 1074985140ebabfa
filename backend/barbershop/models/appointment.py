"""
Appointment model
"""
from enum import Enum

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String, Numeric, Text, Boolean, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states"""
    BOOKED = "booked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that no longer hold the barber's time
NON_BLOCKING_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value)


class Appointment(Base):
    """A client appointment with a barber"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    scheduled_start = Column(DateTime(timezone=True), nullable=False, index=True)
    scheduled_end = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), default=AppointmentStatus.BOOKED.value, nullable=False)
    service_price = Column(Numeric(10, 2), nullable=True)
    tip_amount = Column(Numeric(10, 2), nullable=True)
    commission_paid = Column(Boolean, default=False, nullable=False)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True)
    source = Column(String(20), nullable=True)  # client_web, owner, barber
    notes = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Appointment {self.scheduled_start} barber={self.barber_id} (Status: {self.status})>"
