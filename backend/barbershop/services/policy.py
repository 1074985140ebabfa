"""
Booking policy types and the shop/barber override merge
"""
from dataclasses import dataclass
from typing import Optional

DEFAULT_TIMEZONE = "America/Chicago"


@dataclass(frozen=True)
class ShopPolicy:
    """Shop-wide booking rules"""
    days_bookable_in_advance: int
    min_book_ahead_hours: float
    min_cancel_ahead_hours: float
    booking_interval_minutes: int
    timezone: str = DEFAULT_TIMEZONE


@dataclass(frozen=True)
class BarberPolicyOverride:
    """Per-barber replacements; None keeps the shop value"""
    min_book_ahead_hours: Optional[float] = None
    min_cancel_ahead_hours: Optional[float] = None
    booking_interval_minutes: Optional[int] = None


@dataclass(frozen=True)
class EffectivePolicy:
    days_bookable_in_advance: int
    min_book_ahead_hours: float
    min_cancel_ahead_hours: float
    booking_interval_minutes: int
    timezone: str = DEFAULT_TIMEZONE

    def __post_init__(self):
        if self.booking_interval_minutes <= 0:
            raise ValueError(f"booking_interval_minutes must be positive, got {self.booking_interval_minutes}")
        for name in ("days_bookable_in_advance", "min_book_ahead_hours", "min_cancel_ahead_hours"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")


def _pick(override_value, shop_value):
    return shop_value if override_value is None else override_value


def resolve_policy(shop: ShopPolicy, override: Optional[BarberPolicyOverride] = None) -> EffectivePolicy:
    """
    Overlay the non-null barber overrides on the shop policy.
    days_bookable_in_advance and timezone always come from the shop.
    """
    override = override or BarberPolicyOverride()
    return EffectivePolicy(
        days_bookable_in_advance=shop.days_bookable_in_advance,
        min_book_ahead_hours=_pick(override.min_book_ahead_hours, shop.min_book_ahead_hours),
        min_cancel_ahead_hours=_pick(override.min_cancel_ahead_hours, shop.min_cancel_ahead_hours),
        booking_interval_minutes=_pick(override.booking_interval_minutes, shop.booking_interval_minutes),
        timezone=shop.timezone,
    )
