"""
Material models.

This module contains:
- Material: a raw material in the catalog
- SupplierMaterial: a supplier's offer of a material, the price source
  used in recipe costing
"""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Material(BaseModel):
    """
    Material model.

    Attributes:
        name: Material name (e.g., "Sodium Lauryl Sulfate")
        category: Category name (e.g., "Acids", "Thickeners")
        unit_price: Reference price per kg before tax
        tax: Tax percentage
        notes: Optional notes
    """

    __tablename__ = "materials"

    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, default="")
    unit_price = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)

    supplier_materials = relationship("SupplierMaterial", back_populates="material")


class SupplierMaterial(BaseModel):
    """
    A material offered by a specific supplier.

    Attributes:
        supplier_id: Supplier id (not enforced; orphans are tolerated)
        material_id: Material this offer is for
        unit: Unit the price is quoted in
        unit_price: Price per unit before tax
        tax: Tax percentage
        moq: Minimum order quantity
        lead_time: Lead time in days
        availability: in-stock, limited or out-of-stock
        transportation_cost: Optional transport cost per unit
        bulk_price: Optional price for quantity_for_bulk_price units
        quantity_for_bulk_price: Quantity the bulk price applies to
    """

    __tablename__ = "supplier_materials"

    supplier_id = Column(String(36), nullable=False, index=True)
    material_id = Column(String(36), ForeignKey("materials.id"), nullable=False, index=True)
    unit = Column(String(10), nullable=False, default="kg")
    unit_price = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0.0)
    moq = Column(Float, nullable=False, default=0.0)
    lead_time = Column(Integer, nullable=False, default=0)
    availability = Column(String(20), nullable=False, default="in-stock")
    transportation_cost = Column(Float, nullable=True)
    bulk_price = Column(Float, nullable=True)
    quantity_for_bulk_price = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    material = relationship("Material", back_populates="supplier_materials")

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_supplier_material_price_non_negative"),
        CheckConstraint("tax >= 0", name="ck_supplier_material_tax_non_negative"),
        Index("idx_supplier_material_pair", "supplier_id", "material_id"),
    )
