"""
Inventory transaction model
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime
from sqlalchemy.sql import func
from ..database import Base


class InventoryTransaction(Base):
    """
    A stock movement. Sales carry a negative quantity_change and are
    attributed to the barber of the linked appointment.
    """

    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    type = Column(String(20), nullable=False)  # sale, restock, adjustment
    quantity_change = Column(Integer, nullable=False)
    commission_paid = Column(Boolean, default=False, nullable=False)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<InventoryTransaction {self.type} product={self.product_id} qty={self.quantity_change}>"
