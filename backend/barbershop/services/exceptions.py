"""
Exceptions raised by the commission service and mapped to HTTP errors by the payouts router.
"""


class PayoutError(Exception):
    """Base exception for payout errors."""
    pass


class BarberNotFoundError(PayoutError):
    """Raised when the barber does not exist, so no commission rates can be loaded."""
    pass


class PayoutOverlapError(PayoutError):
    """Raised when the requested range overlaps a payout already recorded for the barber."""
    pass


class OverrideNoteRequiredError(PayoutError):
    """Raised when the amount paid differs from the calculated amount and no note explains it."""
    pass


class PayoutItemsChangedError(PayoutError):
    """Raised when contributing items were paid by a concurrent payout while this one was being recorded."""
    pass


class ShopConfigUnavailableError(PayoutError):
    """Raised when the shop_config row is missing, so the shop timezone for the period is unknown."""
    pass
