"""
Commission calculation and payout recording
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.appointment import Appointment, AppointmentStatus
from ..models.barber import Barber
from ..models.inventory_transaction import InventoryTransaction
from ..models.payout import Payout
from ..models.payout_item import PayoutItem
from ..models.product import Product
from ..models.service import Service
from ..models.shop_config import ShopConfig
from .exceptions import (
    BarberNotFoundError,
    OverrideNoteRequiredError,
    PayoutItemsChangedError,
    PayoutOverlapError,
    ShopConfigUnavailableError,
)
from .time_utils import day_bounds, ensure_aware, get_zone, to_utc, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


class ItemType(str, Enum):
    SERVICE = "service"
    PRODUCT = "product"
    TIP = "tip"


@dataclass(frozen=True)
class CommissionRates:
    service_commission_rate: Decimal
    product_commission_rate: Decimal
    tip_commission_rate: Decimal


@dataclass(frozen=True)
class CommissionItem:
    id: str
    type: ItemType
    date: datetime
    description: str
    revenue_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    appointment_id: Optional[int] = None
    inventory_transaction_id: Optional[int] = None


@dataclass
class CommissionBucket:
    count: int
    total_revenue: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    items: List[CommissionItem] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "count": self.count,
            "total_revenue": float(self.total_revenue),
            "commission_rate": float(self.commission_rate),
            "commission_amount": float(self.commission_amount),
            "items": [
                {
                    "id": item.id,
                    "type": item.type.value,
                    "date": item.date.isoformat(),
                    "description": item.description,
                    "revenue_amount": float(item.revenue_amount),
                    "commission_rate": float(item.commission_rate),
                    "commission_amount": float(item.commission_amount),
                    "appointment_id": item.appointment_id,
                    "inventory_transaction_id": item.inventory_transaction_id,
                }
                for item in self.items
            ],
        }


@dataclass
class CommissionBreakdown:
    services: CommissionBucket
    products: CommissionBucket
    tips: CommissionBucket

    @property
    def total_commission(self) -> Decimal:
        return self.services.commission_amount + self.products.commission_amount + self.tips.commission_amount

    def as_dict(self) -> dict:
        return {
            "services": self.services.as_dict(),
            "products": self.products.as_dict(),
            "tips": self.tips.as_dict(),
            "total_commission": float(self.total_commission),
        }


@dataclass
class PayoutCalculation:
    barber_id: int
    barber_name: str
    period_start: date
    period_end: date
    breakdown: CommissionBreakdown

    @property
    def calculated_amount(self) -> Decimal:
        return self.breakdown.total_commission


@dataclass(frozen=True)
class BarberSummary:
    barber_id: int
    barber_name: str
    commission_rates: CommissionRates
    service_revenue: Decimal
    product_revenue: Decimal
    tip_revenue: Decimal
    total_commission_due: Decimal
    total_paid: Decimal


def round_money(amount) -> Decimal:
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def build_bucket(items: Iterable[CommissionItem], rate: Decimal) -> CommissionBucket:
    """Aggregate items; the bucket commission is total revenue times the rate"""
    items = list(items)
    total = sum((item.revenue_amount for item in items), ZERO)
    return CommissionBucket(
        count=len(items),
        total_revenue=total,
        commission_rate=rate,
        commission_amount=total * rate,
        items=items,
    )


def format_currency(amount) -> str:
    """1234.5 -> "$1,234.50" """
    return f"${round_money(amount):,.2f}"


def format_rate(rate) -> str:
    """0.5 -> "50.0%" """
    return f"{float(rate) * 100:.1f}%"


def _decimal(value, default: Decimal) -> Decimal:
    return default if value is None else Decimal(str(value))


class CommissionService:
    """Commission owed to barbers and the payouts that settle it"""

    def __init__(self, db: Session):
        self.db = db

    def _shop_timezone(self) -> str:
        config = self.db.query(ShopConfig).order_by(ShopConfig.id).first()
        if not config:
            raise ShopConfigUnavailableError("Shop configuration is missing")
        return config.timezone

    def _period_bounds(self, start_date: date, end_date: date) -> tuple:
        """UTC [start of start_date, start of day after end_date) in shop time"""
        tz = get_zone(self._shop_timezone())
        start, _ = day_bounds(start_date, tz)
        _, end = day_bounds(end_date, tz)
        return to_utc(start), to_utc(end)

    @staticmethod
    def _rates_for(barber: Barber) -> CommissionRates:
        return CommissionRates(
            service_commission_rate=_decimal(barber.service_commission_rate, settings.DEFAULT_SERVICE_COMMISSION_RATE),
            product_commission_rate=_decimal(barber.product_commission_rate, settings.DEFAULT_PRODUCT_COMMISSION_RATE),
            tip_commission_rate=_decimal(barber.tip_commission_rate, settings.DEFAULT_TIP_COMMISSION_RATE),
        )

    def get_barber_commission_rates(self, barber_id: int) -> Optional[CommissionRates]:
        barber = self.db.query(Barber).filter(Barber.id == barber_id).first()
        if not barber:
            return None
        return self._rates_for(barber)

    # ==================== Calculation ====================

    def _unpaid_appointments(self, barber_id: int, start: datetime, end: datetime):
        return self.db.query(Appointment, Service.name_en).outerjoin(
            Service, Service.id == Appointment.service_id
        ).filter(
            Appointment.barber_id == barber_id,
            Appointment.status == AppointmentStatus.COMPLETED.value,
            Appointment.commission_paid == False,  # noqa: E712
            Appointment.scheduled_start >= start,
            Appointment.scheduled_start < end
        ).order_by(Appointment.scheduled_start).all()

    def _unpaid_product_sales(self, barber_id: int, start: datetime, end: datetime):
        # Sales are attributed to the barber of the appointment they were rung up on
        return self.db.query(InventoryTransaction, Product).join(
            Product, Product.id == InventoryTransaction.product_id
        ).join(
            Appointment, Appointment.id == InventoryTransaction.appointment_id
        ).filter(
            Appointment.barber_id == barber_id,
            InventoryTransaction.type == "sale",
            InventoryTransaction.commission_paid == False,  # noqa: E712
            InventoryTransaction.created_at >= start,
            InventoryTransaction.created_at < end
        ).order_by(InventoryTransaction.created_at).all()

    def calculate_commission_for_period(self, barber_id: int, start_date: date, end_date: date) -> PayoutCalculation:
        """
        Commission on unpaid completed services, their tips, and unpaid
        product sales between start_date and end_date (inclusive, shop time).

        Raises:
            BarberNotFoundError: unknown barber
            ShopConfigUnavailableError: no shop_config row to take the timezone from
        """
        barber = self.db.query(Barber).filter(Barber.id == barber_id).first()
        if not barber:
            raise BarberNotFoundError(f"Barber {barber_id} not found")

        rates = self._rates_for(barber)
        start, end = self._period_bounds(start_date, end_date)

        service_items, tip_items, product_items = [], [], []

        for appointment, service_name in self._unpaid_appointments(barber_id, start, end):
            when = ensure_aware(appointment.scheduled_start)

            if appointment.service_price:
                revenue = _decimal(appointment.service_price, ZERO)
                service_items.append(CommissionItem(
                    id=str(appointment.id),
                    type=ItemType.SERVICE,
                    date=when,
                    description=service_name or "Service",
                    revenue_amount=revenue,
                    commission_rate=rates.service_commission_rate,
                    commission_amount=revenue * rates.service_commission_rate,
                    appointment_id=appointment.id,
                ))

            if appointment.tip_amount:
                tip = _decimal(appointment.tip_amount, ZERO)
                tip_items.append(CommissionItem(
                    id=f"{appointment.id}-tip",
                    type=ItemType.TIP,
                    date=when,
                    description=f"Tip for {service_name or 'service'}",
                    revenue_amount=tip,
                    commission_rate=rates.tip_commission_rate,
                    commission_amount=tip * rates.tip_commission_rate,
                    appointment_id=appointment.id,
                ))

        for sale, product in self._unpaid_product_sales(barber_id, start, end):
            revenue = abs(sale.quantity_change) * _decimal(product.retail_price, ZERO)
            product_items.append(CommissionItem(
                id=str(sale.id),
                type=ItemType.PRODUCT,
                date=ensure_aware(sale.created_at),
                description=product.name or "Product",
                revenue_amount=revenue,
                commission_rate=rates.product_commission_rate,
                commission_amount=revenue * rates.product_commission_rate,
                inventory_transaction_id=sale.id,
            ))

        breakdown = CommissionBreakdown(
            services=build_bucket(service_items, rates.service_commission_rate),
            products=build_bucket(product_items, rates.product_commission_rate),
            tips=build_bucket(tip_items, rates.tip_commission_rate),
        )
        return PayoutCalculation(
            barber_id=barber_id,
            barber_name=barber.name,
            period_start=start_date,
            period_end=end_date,
            breakdown=breakdown,
        )

    # ==================== Payouts ====================

    def check_payout_overlap(
        self,
        barber_id: int,
        start_date: date,
        end_date: date,
        exclude_payout_id: Optional[int] = None,
    ) -> bool:
        """True if an existing payout for the barber shares at least one day with the range"""
        query = self.db.query(Payout.id).filter(
            Payout.barber_id == barber_id,
            Payout.start_date <= end_date,
            Payout.end_date >= start_date
        )
        if exclude_payout_id is not None:
            query = query.filter(Payout.id != exclude_payout_id)
        return query.first() is not None

    def create_payout(
        self,
        barber_id: int,
        start_date: date,
        end_date: date,
        actual_amount_paid,
        payment_method: str,
        override_note: Optional[str] = None,
        force_override: bool = False,
        paid_on: Optional[date] = None,
    ) -> Payout:
        """
        Record a payout and mark every contributing appointment and product
        sale as paid, in one transaction.

        Raises:
            BarberNotFoundError, PayoutOverlapError, OverrideNoteRequiredError,
            PayoutItemsChangedError, ShopConfigUnavailableError
        """
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")

        try:
            # Serializes concurrent payouts for the same barber on backends with row locks
            barber = self.db.query(Barber).filter(Barber.id == barber_id).with_for_update().first()
            if not barber:
                raise BarberNotFoundError(f"Barber {barber_id} not found")

            if not force_override and self.check_payout_overlap(barber_id, start_date, end_date):
                raise PayoutOverlapError("Selected dates overlap an already-paid payout period.")

            calculation = self.calculate_commission_for_period(barber_id, start_date, end_date)

            calculated_amount = round_money(calculation.calculated_amount)
            actual_amount = round_money(actual_amount_paid)
            difference = actual_amount - calculated_amount
            is_override = abs(difference) > CENT

            if is_override and not (override_note and override_note.strip()):
                raise OverrideNoteRequiredError(
                    "Override note is required when actual amount differs from calculated amount"
                )

            payout = Payout(
                barber_id=barber_id,
                start_date=start_date,
                end_date=end_date,
                calculated_amount=calculated_amount,
                actual_amount_paid=actual_amount,
                difference=difference,
                payment_method=payment_method,
                override_flag=is_override,
                override_note=override_note.strip() if is_override else None,
                date_paid=paid_on or utc_now().date(),
                calculation_breakdown=calculation.breakdown.as_dict(),
            )
            self.db.add(payout)
            self.db.flush()

            breakdown = calculation.breakdown
            for item in breakdown.services.items + breakdown.tips.items + breakdown.products.items:
                self.db.add(PayoutItem(
                    payout_id=payout.id,
                    appointment_id=item.appointment_id,
                    inventory_transaction_id=item.inventory_transaction_id,
                    item_type=item.type.value,
                    revenue_amount=item.revenue_amount,
                    commission_rate=item.commission_rate,
                    commission_amount=item.commission_amount,
                ))

            appointment_ids = {
                item.appointment_id for item in breakdown.services.items + breakdown.tips.items
            }
            transaction_ids = {item.inventory_transaction_id for item in breakdown.products.items}

            self._mark_paid(Appointment, appointment_ids, payout.id)
            self._mark_paid(InventoryTransaction, transaction_ids, payout.id)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(payout)
        logger.info(
            "Payout %s recorded for barber %s (%s..%s): calculated %s, paid %s",
            payout.id, barber_id, start_date, end_date, calculated_amount, actual_amount
        )
        return payout

    def _mark_paid(self, model, ids: set, payout_id: int):
        if not ids:
            return
        updated = self.db.query(model).filter(
            model.id.in_(ids),
            model.commission_paid == False  # noqa: E712
        ).update({"commission_paid": True, "payout_id": payout_id}, synchronize_session=False)

        if updated != len(ids):
            raise PayoutItemsChangedError(
                f"{len(ids) - updated} {model.__tablename__} row(s) were paid by another payout"
            )

    # ==================== Summary ====================

    def get_barbers_summary(self) -> List[BarberSummary]:
        """Unpaid revenue and commission due for every active barber"""
        barbers = self.db.query(Barber).filter(Barber.active == True).order_by(Barber.name).all()  # noqa: E712

        summaries = []
        for barber in barbers:
            rates = self._rates_for(barber)

            service_revenue, tip_revenue = self.db.query(
                func.coalesce(func.sum(Appointment.service_price), 0),
                func.coalesce(func.sum(Appointment.tip_amount), 0)
            ).filter(
                Appointment.barber_id == barber.id,
                Appointment.status == AppointmentStatus.COMPLETED.value,
                Appointment.commission_paid == False  # noqa: E712
            ).one()

            sales = self.db.query(InventoryTransaction.quantity_change, Product.retail_price).join(
                Product, Product.id == InventoryTransaction.product_id
            ).join(
                Appointment, Appointment.id == InventoryTransaction.appointment_id
            ).filter(
                Appointment.barber_id == barber.id,
                InventoryTransaction.type == "sale",
                InventoryTransaction.commission_paid == False  # noqa: E712
            ).all()
            product_revenue = sum(
                (abs(quantity) * _decimal(price, ZERO) for quantity, price in sales), ZERO
            )

            total_paid = self.db.query(
                func.coalesce(func.sum(Payout.actual_amount_paid), 0)
            ).filter(Payout.barber_id == barber.id).scalar()

            service_revenue = Decimal(str(service_revenue))
            tip_revenue = Decimal(str(tip_revenue))

            summaries.append(BarberSummary(
                barber_id=barber.id,
                barber_name=barber.name,
                commission_rates=rates,
                service_revenue=service_revenue,
                product_revenue=product_revenue,
                tip_revenue=tip_revenue,
                total_commission_due=(
                    service_revenue * rates.service_commission_rate
                    + product_revenue * rates.product_commission_rate
                    + tip_revenue * rates.tip_commission_rate
                ),
                total_paid=Decimal(str(total_paid)),
            ))

        return summaries
