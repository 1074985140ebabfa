"""
FastAPI application
Barbershop availability, booking rules and commission payouts
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import get_settings
from .database import SessionLocal, init_db
from .logging_config import setup_logging
from .models.shop_config import DEFAULT_SHOP_HOURS, ShopConfig
from .routes.appointments import router as appointments_router
from .routes.availability import router as availability_router
from .routes.payouts import router as payouts_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def init_default_shop_config():
    """Create the shop_config row from settings if there is none"""
    db = SessionLocal()
    try:
        if db.query(ShopConfig).count() > 0:
            return

        db.add(ShopConfig(
            shop_name=settings.SHOP_NAME,
            phone=settings.SHOP_PHONE,
            timezone=settings.SHOP_TIMEZONE,
            shop_hours=DEFAULT_SHOP_HOURS,
            days_bookable_in_advance=settings.DAYS_BOOKABLE_IN_ADVANCE,
            min_book_ahead_hours=settings.MIN_BOOK_AHEAD_HOURS,
            min_cancel_ahead_hours=settings.MIN_CANCEL_AHEAD_HOURS,
            client_booking_interval_minutes=settings.BOOKING_INTERVAL_MINUTES,
        ))
        db.commit()
        logger.info("Default shop configuration created (%s)", settings.SHOP_TIMEZONE)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    init_default_shop_config()
    logger.info("Barbershop API started (%s)", settings.ENVIRONMENT)
    yield


# FastAPI application
app = FastAPI(
    title="Barbershop Booking API",
    description="Availability, booking rules and commission payouts",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else [settings.SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(availability_router)
app.include_router(appointments_router)
app.include_router(payouts_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("barbershop.main:app", host="127.0.0.1", port=8000, reload=settings.DEBUG)
