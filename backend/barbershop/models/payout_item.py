"""
Payout item model
"""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from ..database import Base


class PayoutItem(Base):
    """One revenue line (service, tip or product sale) included in a payout"""

    __tablename__ = "payout_items"

    id = Column(Integer, primary_key=True, index=True)
    payout_id = Column(Integer, ForeignKey("payouts.id", ondelete="CASCADE"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    inventory_transaction_id = Column(Integer, ForeignKey("inventory_transactions.id"), nullable=True)
    item_type = Column(String(20), nullable=False)  # service, tip, product
    revenue_amount = Column(Numeric(10, 2), nullable=False)
    commission_rate = Column(Numeric(5, 4), nullable=False)
    commission_amount = Column(Numeric(12, 4), nullable=False)

    def __repr__(self):
        return f"<PayoutItem {self.item_type} payout={self.payout_id} ${self.commission_amount}>"
