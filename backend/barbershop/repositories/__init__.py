"""
Data access for the booking engine
"""
from .booking_store import BookingStore, SqlAlchemyBookingStore

__all__ = ["BookingStore", "SqlAlchemyBookingStore"]
