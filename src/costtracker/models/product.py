"""
Product models.

This module contains:
- Product: a sellable product made from one recipe
- ProductVariant: a fill size of a product with its packaging and labels
"""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Product(BaseModel):
    """Product model: name, recipe and status."""

    __tablename__ = "products"

    name = Column(String(200), nullable=False, index=True)
    recipe_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="draft")
    description = Column(Text, nullable=True)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ProductVariant(BaseModel):
    """
    Product variant model.

    Attributes:
        product_id: Owning product
        name: Variant name (e.g., "500 mL Bottle")
        sku: Stock keeping unit
        fill_quantity: Fill of one unit
        fill_unit: Unit of the fill
        packaging_selection_id: SupplierPackaging used for each unit
        front_label_selection_id: Optional SupplierLabel for the front
        back_label_selection_id: Optional SupplierLabel for the back
        selling_price_per_unit: Selling price of one unit
        minimum_profit_margin: Optional minimum acceptable margin percentage
        is_active: Whether the variant is still sold
    """

    __tablename__ = "product_variants"

    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    sku = Column(String(100), nullable=False, default="")
    fill_quantity = Column(Float, nullable=False)
    fill_unit = Column(String(10), nullable=False)
    packaging_selection_id = Column(String(36), nullable=True)
    front_label_selection_id = Column(String(36), nullable=True)
    back_label_selection_id = Column(String(36), nullable=True)
    selling_price_per_unit = Column(Float, nullable=False, default=0.0)
    minimum_profit_margin = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (Index("idx_variant_sku", "sku"),)
