"""
Application configuration
"""
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./barbershop.db"

    # Shop timezone (IANA name); every "today" and day-of-week is computed here
    SHOP_TIMEZONE: str = "America/Chicago"
    SHOP_NAME: str = "Barbershop"
    SHOP_PHONE: str | None = None

    # Booking rules used to seed a fresh shop_config row
    DAYS_BOOKABLE_IN_ADVANCE: int = 30
    MIN_BOOK_AHEAD_HOURS: float = 2
    MIN_CANCEL_AHEAD_HOURS: float = 2
    BOOKING_INTERVAL_MINUTES: int = 15

    # Commission rates for newly created barbers
    DEFAULT_SERVICE_COMMISSION_RATE: Decimal = Decimal("0.5")
    DEFAULT_PRODUCT_COMMISSION_RATE: Decimal = Decimal("0.1")
    DEFAULT_TIP_COMMISSION_RATE: Decimal = Decimal("1.0")

    # Application
    SITE_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    # Development
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    class Config:
        # .env at the repository root
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings"""
    return Settings()
