"""
API router for commission calculation and barber payouts
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..dependencies import get_commission_service
from ..services.commissions import BarberSummary, CommissionService
from ..services.exceptions import (
    BarberNotFoundError,
    PayoutError,
    PayoutItemsChangedError,
    PayoutOverlapError,
    ShopConfigUnavailableError,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payouts", tags=["payouts"])


# ==================== Pydantic Schemas ====================

class PayoutCreate(BaseModel):
    barber_id: int
    start_date: date
    end_date: date
    actual_amount_paid: float = Field(..., ge=0)
    payment_method: str = Field(..., min_length=1, max_length=20)
    override_note: Optional[str] = None
    force_override: bool = False


class PayoutResponse(BaseModel):
    id: int
    barber_id: int
    start_date: date
    end_date: date
    calculated_amount: float
    actual_amount_paid: float
    difference: float
    payment_method: str
    override_flag: bool
    override_note: Optional[str]
    date_paid: date


class PayoutCalculationResponse(BaseModel):
    barber_id: int
    barber_name: str
    period_start: date
    period_end: date
    calculated_amount: float
    breakdown: dict


class CommissionRatesResponse(BaseModel):
    service_commission_rate: float
    product_commission_rate: float
    tip_commission_rate: float


class BarberSummaryResponse(BaseModel):
    barber_id: int
    barber_name: str
    commission_rates: CommissionRatesResponse
    service_revenue: float
    product_revenue: float
    tip_revenue: float
    total_commission_due: float
    total_paid: float


def _payout_error_status(error: PayoutError) -> int:
    if isinstance(error, BarberNotFoundError):
        return 404
    if isinstance(error, (PayoutOverlapError, PayoutItemsChangedError)):
        return 409
    if isinstance(error, ShopConfigUnavailableError):
        return 503
    # OverrideNoteRequiredError and anything else is a bad request
    return 400


def _summary_response(summary: BarberSummary) -> BarberSummaryResponse:
    rates = summary.commission_rates
    return BarberSummaryResponse(
        barber_id=summary.barber_id,
        barber_name=summary.barber_name,
        commission_rates=CommissionRatesResponse(
            service_commission_rate=float(rates.service_commission_rate),
            product_commission_rate=float(rates.product_commission_rate),
            tip_commission_rate=float(rates.tip_commission_rate),
        ),
        service_revenue=float(summary.service_revenue),
        product_revenue=float(summary.product_revenue),
        tip_revenue=float(summary.tip_revenue),
        total_commission_due=float(summary.total_commission_due),
        total_paid=float(summary.total_paid),
    )


# ==================== API Endpoints ====================

@router.get("/calculate", response_model=PayoutCalculationResponse)
def calculate_payout(
    barber_id: int = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    commissions: CommissionService = Depends(get_commission_service),
):
    """Preview the commission owed to a barber for a date range"""
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    try:
        calculation = commissions.calculate_commission_for_period(barber_id, start_date, end_date)
    except PayoutError as e:
        raise HTTPException(status_code=_payout_error_status(e), detail=str(e))

    return PayoutCalculationResponse(
        barber_id=calculation.barber_id,
        barber_name=calculation.barber_name,
        period_start=calculation.period_start,
        period_end=calculation.period_end,
        calculated_amount=float(calculation.calculated_amount),
        breakdown=calculation.breakdown.as_dict(),
    )


@router.post("", response_model=PayoutResponse, status_code=201)
def create_payout(
    data: PayoutCreate,
    commissions: CommissionService = Depends(get_commission_service),
):
    """Record a payout and mark its items as paid"""
    try:
        payout = commissions.create_payout(
            barber_id=data.barber_id,
            start_date=data.start_date,
            end_date=data.end_date,
            actual_amount_paid=data.actual_amount_paid,
            payment_method=data.payment_method,
            override_note=data.override_note,
            force_override=data.force_override,
        )
    except PayoutError as e:
        logger.warning("Payout rejected for barber %s: %s", data.barber_id, e)
        raise HTTPException(status_code=_payout_error_status(e), detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PayoutResponse(
        id=payout.id,
        barber_id=payout.barber_id,
        start_date=payout.start_date,
        end_date=payout.end_date,
        calculated_amount=float(payout.calculated_amount),
        actual_amount_paid=float(payout.actual_amount_paid),
        difference=float(payout.difference),
        payment_method=payout.payment_method,
        override_flag=payout.override_flag,
        override_note=payout.override_note,
        date_paid=payout.date_paid,
    )


@router.get("/summary", response_model=List[BarberSummaryResponse])
def get_payout_summary(commissions: CommissionService = Depends(get_commission_service)):
    """Unpaid commission and total paid for every active barber"""
    return [_summary_response(summary) for summary in commissions.get_barbers_summary()]
