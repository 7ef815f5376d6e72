"""
Label models.

This module contains:
- Label: a label design (front, back, sticker...)
- SupplierLabel: a supplier's per-piece offer of a label
"""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Label(BaseModel):
    """Label model."""

    __tablename__ = "labels"

    name = Column(String(200), nullable=False, index=True)
    type = Column(String(50), nullable=False, default="label")
    size = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    supplier_labels = relationship("SupplierLabel", back_populates="label")


class SupplierLabel(BaseModel):
    """A label offered by a supplier, priced per piece."""

    __tablename__ = "supplier_labels"

    supplier_id = Column(String(36), nullable=False, index=True)
    label_id = Column(String(36), ForeignKey("labels.id"), nullable=True, index=True)
    unit = Column(String(10), nullable=False, default="pcs")
    unit_price = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0.0)
    moq = Column(Float, nullable=False, default=0.0)
    lead_time = Column(Integer, nullable=False, default=0)
    availability = Column(String(20), nullable=False, default="in-stock")
    transportation_cost = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    label = relationship("Label", back_populates="supplier_labels")

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_supplier_label_price_non_negative"),
        CheckConstraint("tax >= 0", name="ck_supplier_label_tax_non_negative"),
    )
