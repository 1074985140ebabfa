"""
Barber weekly schedule model
"""
from sqlalchemy import Column, Integer, Time, Boolean, ForeignKey, UniqueConstraint
from ..database import Base


class BarberSchedule(Base):
    """Working hours of one barber for one day of the week"""

    __tablename__ = "barber_schedules"

    id = Column(Integer, primary_key=True, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sun, 6=Sat
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="unique_barber_day"),
    )

    def __repr__(self):
        days = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        status = "on" if self.active else "off"
        return f"<BarberSchedule {self.barber_id} {days[self.day_of_week]} {self.start_time}-{self.end_time} {status}>"
