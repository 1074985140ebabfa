"""
Payout model
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, Numeric, Text, JSON, ForeignKey, TIMESTAMP
from sqlalchemy.sql import func
from ..database import Base


class Payout(Base):
    """Commission paid to a barber for a closed date range"""

    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    calculated_amount = Column(Numeric(10, 2), nullable=False)
    actual_amount_paid = Column(Numeric(10, 2), nullable=False)
    difference = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(String(20), nullable=False)  # cash, check, transfer
    override_flag = Column(Boolean, default=False, nullable=False)
    override_note = Column(Text, nullable=True)
    date_paid = Column(Date, nullable=False)
    calculation_breakdown = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    def __repr__(self):
        return f"<Payout barber={self.barber_id} {self.start_date}..{self.end_date} ${self.actual_amount_paid}>"
