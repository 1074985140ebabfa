"""
SQLAlchemy models
"""
from .shop_config import ShopConfig
from .barber import Barber
from .barber_schedule import BarberSchedule
from .barber_time_off import BarberTimeOff
from .service import Service
from .client import Client
from .payout import Payout
from .appointment import Appointment, AppointmentStatus
from .product import Product
from .inventory_transaction import InventoryTransaction
from .payout_item import PayoutItem

__all__ = [
    "ShopConfig",
    "Barber",
    "BarberSchedule",
    "BarberTimeOff",
    "Service",
    "Client",
    "Payout",
    "Appointment",
    "AppointmentStatus",
    "Product",
    "InventoryTransaction",
    "PayoutItem",
]
