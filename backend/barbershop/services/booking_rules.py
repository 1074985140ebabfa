"""
Booking rule validation for create / cancel / reschedule
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfoNotFoundError

from ..repositories.booking_store import BookingStore
from .policy import EffectivePolicy, ShopPolicy, resolve_policy
from .time_utils import get_zone, localize, minute_of_day, to_utc, utc_now

logger = logging.getLogger(__name__)


class BookingAction(str, Enum):
    CREATE = "create"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class BookingValidationError:
    """Bilingual reason an action is not allowed"""
    field: str
    message: str
    message_es: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "message_es": self.message_es}


CONFIG_UNAVAILABLE = BookingValidationError(
    field="config",
    message="Unable to load booking rules",
    message_es="No se pudieron cargar las reglas de reserva",
)


def _number(value) -> str:
    """2.0 -> "2", 1.5 -> "1.5" """
    return f"{float(value):g}"


def check_booking_rules(
    proposed_start: datetime,
    action: BookingAction,
    shop_policy: ShopPolicy,
    policy: EffectivePolicy,
    now: datetime,
) -> Optional[BookingValidationError]:
    """
    First violated rule, or None.

    create/reschedule: advance window, minimum lead time, interval alignment.
    cancel/reschedule: minimum cancellation lead time.
    """
    action = BookingAction(action)
    tz = get_zone(policy.timezone)
    proposed_start = localize(proposed_start, tz)
    hours_until = (to_utc(proposed_start) - to_utc(now)).total_seconds() / 3600

    if action in (BookingAction.CREATE, BookingAction.RESCHEDULE):
        days = shop_policy.days_bookable_in_advance
        if hours_until / 24 > days:
            return BookingValidationError(
                field="start_time",
                message=f"Appointments can only be booked up to {days} days in advance",
                message_es=f"Las citas solo se pueden reservar con hasta {days} días de anticipación",
            )

        min_hours = _number(policy.min_book_ahead_hours)
        if hours_until < policy.min_book_ahead_hours:
            return BookingValidationError(
                field="start_time",
                message=f"Appointments must be booked at least {min_hours} hour(s) in advance",
                message_es=f"Las citas deben reservarse con al menos {min_hours} hora(s) de anticipación",
            )

        interval = policy.booking_interval_minutes
        if minute_of_day(proposed_start, tz) % interval != 0:
            examples = f":00, :{interval:02d}, :{interval * 2:02d}"
            return BookingValidationError(
                field="start_time",
                message=f"Appointment times must be at {interval}-minute intervals (e.g., {examples}, etc.)",
                message_es=f"Los horarios de las citas deben estar en intervalos de {interval} minutos (ej., {examples}, etc.)",
            )

    if action in (BookingAction.CANCEL, BookingAction.RESCHEDULE):
        min_hours = _number(policy.min_cancel_ahead_hours)
        if hours_until < policy.min_cancel_ahead_hours:
            return BookingValidationError(
                field="start_time",
                message=(
                    "This appointment can no longer be cancelled online. "
                    f"It must be cancelled at least {min_hours} hour(s) in advance. Please call the shop."
                ),
                message_es=(
                    "Esta cita ya no se puede cancelar en línea. "
                    f"Debe cancelarse con al menos {min_hours} hora(s) de anticipación. Por favor llame a la tienda."
                ),
            )

    return None


def format_booking_rule_error(error: Optional[BookingValidationError], language: str) -> str:
    """Message in the client's language ("en" or "es")"""
    if not error:
        return ""
    return error.message if language == "en" else error.message_es


class BookingRulesService:
    """Validates a proposed appointment time against the stored shop and barber rules"""

    def __init__(self, store: BookingStore):
        self.store = store

    async def validate_booking_rules(
        self,
        proposed_start: datetime,
        action: BookingAction,
        barber_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[BookingValidationError]:
        """
        Never raises for store failures: an unavailable configuration is
        returned as a validation error so the action is refused.
        """
        now = now or utc_now()

        try:
            if barber_id is not None:
                shop_policy, override = await asyncio.gather(
                    self.store.get_shop_policy(),
                    self.store.get_barber_policy_override(barber_id),
                )
            else:
                shop_policy, override = await self.store.get_shop_policy(), None
        except Exception:
            logger.exception("Error loading booking rules (barber %s)", barber_id)
            return CONFIG_UNAVAILABLE

        if shop_policy is None:
            logger.error("Booking rules unavailable: shop policy missing")
            return CONFIG_UNAVAILABLE

        try:
            policy = resolve_policy(shop_policy, override)
            get_zone(policy.timezone)
        except (ValueError, ZoneInfoNotFoundError):
            logger.exception("Invalid booking rules configured (barber %s)", barber_id)
            return CONFIG_UNAVAILABLE

        return check_booking_rules(proposed_start, action, shop_policy, policy, now)
