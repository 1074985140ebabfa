"""
Barber time off model
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, ForeignKey, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class BarberTimeOff(Base):
    """
    Time a barber is unavailable.
    start_at/end_at are absolute (UTC) timestamps; when either is NULL the
    whole `date` is blocked.
    """

    __tablename__ = "barber_time_off"

    id = Column(Integer, primary_key=True, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    reason = Column(String(100), nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        span = f"{self.start_at}-{self.end_at}" if self.start_at and self.end_at else "all day"
        return f"<BarberTimeOff {self.barber_id} {self.date} {span}>"
