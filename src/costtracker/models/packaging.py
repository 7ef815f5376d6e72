"""
Packaging models.

This module contains:
- Packaging: a container type (bottle, jar, can...) with a capacity
- SupplierPackaging: a supplier's per-piece offer of a packaging item
"""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Packaging(BaseModel):
    """Packaging model: name, type, capacity and capacity unit."""

    __tablename__ = "packaging"

    name = Column(String(200), nullable=False, index=True)
    type = Column(String(50), nullable=False, default="bottle")
    capacity = Column(Float, nullable=False, default=0.0)
    unit = Column(String(10), nullable=False, default="mL")
    build_material = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    supplier_packaging = relationship("SupplierPackaging", back_populates="packaging")


class SupplierPackaging(BaseModel):
    """A packaging item offered by a supplier, priced per piece."""

    __tablename__ = "supplier_packaging"

    supplier_id = Column(String(36), nullable=False, index=True)
    packaging_id = Column(String(36), ForeignKey("packaging.id"), nullable=False, index=True)
    unit_price = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0.0)
    moq = Column(Float, nullable=False, default=0.0)
    lead_time = Column(Integer, nullable=False, default=0)
    availability = Column(String(20), nullable=False, default="in-stock")
    transportation_cost = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    packaging = relationship("Packaging", back_populates="supplier_packaging")

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_supplier_packaging_price_non_negative"),
        CheckConstraint("tax >= 0", name="ck_supplier_packaging_tax_non_negative"),
    )
