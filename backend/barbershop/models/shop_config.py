"""
Shop configuration model
"""
from sqlalchemy import Column, Integer, String, Numeric, JSON, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class ShopConfig(Base):
    """Shop-wide settings: opening hours, timezone and booking rules (single row)"""

    __tablename__ = "shop_config"

    id = Column(Integer, primary_key=True, index=True)
    shop_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    timezone = Column(String(64), nullable=False, default="America/Chicago")
    # {"0": {"open": "09:00", "close": "18:00"} | null, ...}, 0=Sun, 6=Sat
    shop_hours = Column(JSON, nullable=False)
    days_bookable_in_advance = Column(Integer, nullable=False, default=30)
    min_book_ahead_hours = Column(Numeric(6, 2), nullable=False, default=2)
    min_cancel_ahead_hours = Column(Numeric(6, 2), nullable=False, default=2)
    client_booking_interval_minutes = Column(Integer, nullable=False, default=15)
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ShopConfig {self.shop_name} ({self.timezone})>"


# Default opening hours for initialization: Mon-Sat 09:00-18:00, closed Sunday
DEFAULT_SHOP_HOURS = {
    "0": None,                                  # Sun
    "1": {"open": "09:00", "close": "18:00"},   # Mon
    "2": {"open": "09:00", "close": "18:00"},   # Tue
    "3": {"open": "09:00", "close": "18:00"},   # Wed
    "4": {"open": "09:00", "close": "18:00"},   # Thu
    "5": {"open": "09:00", "close": "18:00"},   # Fri
    "6": {"open": "09:00", "close": "18:00"},   # Sat
}
