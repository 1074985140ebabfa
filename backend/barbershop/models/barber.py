"""
Barber model
"""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class Barber(Base):
    """
    A barber working at the shop.
    The *_override columns replace the shop-wide booking rules for this
    barber when they are set; NULL means "use the shop value".
    """

    __tablename__ = "barbers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    min_hours_before_booking_override = Column(Numeric(6, 2), nullable=True)
    min_hours_before_cancellation_override = Column(Numeric(6, 2), nullable=True)
    booking_interval_minutes_override = Column(Integer, nullable=True)

    service_commission_rate = Column(Numeric(5, 4), nullable=False, default=0.5)
    product_commission_rate = Column(Numeric(5, 4), nullable=False, default=0.1)
    tip_commission_rate = Column(Numeric(5, 4), nullable=False, default=1.0)

    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<Barber {self.name} (active: {self.active})>"
