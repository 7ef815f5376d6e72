"""
Purchase order models.

This module contains:
- PurchaseOrder: an order placed with one supplier
- PurchaseOrderItem: an ordered supplier item with quantities and price
"""

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class PurchaseOrder(BaseModel):
    """
    Purchase order model.

    Attributes:
        order_number: Human readable order number
        supplier_id: Supplier the order is placed with
        status: submitted, confirmed or delivered
        order_date: Date the order was placed
        expected_delivery_date: Optional promised delivery date
        delivered_date: Date the order became fully delivered
    """

    __tablename__ = "purchase_orders"

    order_number = Column(String(50), nullable=False, unique=True)
    supplier_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="submitted", index=True)
    order_date = Column(Date, nullable=False)
    expected_delivery_date = Column(Date, nullable=True)
    delivered_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "PurchaseOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.position",
        lazy="selectin",
    )


class PurchaseOrderItem(BaseModel):
    __tablename__ = "purchase_order_items"

    order_id = Column(
        String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_type = Column(String(20), nullable=False)
    item_id = Column(String(36), nullable=False)
    item_name = Column(String(200), nullable=False, default="")
    quantity = Column(Float, nullable=False)
    quantity_received = Column(Float, nullable=False, default=0.0)
    unit = Column(String(10), nullable=False, default="kg")
    unit_price = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)
    position = Column(Integer, nullable=False, default=0)

    order = relationship("PurchaseOrder", back_populates="items")
