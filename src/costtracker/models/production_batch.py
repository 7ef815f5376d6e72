"""
Production batch models.

This module contains:
- ProductionBatch: a planned or running production run
- BatchProductItem: a product included in a batch
- BatchVariantItem: total fill quantity of one variant in a batch
"""

from typing import Any, Dict

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class ProductionBatch(BaseModel):
    """Production batch model: name, dates, status and product items."""

    __tablename__ = "production_batches"

    batch_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)

    items = relationship(
        "BatchProductItem",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="BatchProductItem.position",
        lazy="selectin",
    )

    def to_dict(self, include_relationships: bool = False) -> Dict[str, Any]:
        result = super().to_dict(include_relationships=include_relationships)
        if include_relationships:
            result["items"] = [
                {
                    "product_id": item.product_id,
                    "variants": [variant.to_dict() for variant in item.variants],
                }
                for item in self.items
            ]
        return result


class BatchProductItem(BaseModel):
    __tablename__ = "batch_product_items"

    batch_id = Column(
        String(36),
        ForeignKey("production_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(String(36), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    batch = relationship("ProductionBatch", back_populates="items")
    variants = relationship(
        "BatchVariantItem",
        back_populates="product_item",
        cascade="all, delete-orphan",
        order_by="BatchVariantItem.position",
        lazy="selectin",
    )


class BatchVariantItem(BaseModel):
    __tablename__ = "batch_variant_items"

    product_item_id = Column(
        String(36),
        ForeignKey("batch_product_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = Column(String(36), nullable=False)
    total_fill_quantity = Column(Float, nullable=False)
    fill_unit = Column(String(10), nullable=False, default="kg")
    position = Column(Integer, nullable=False, default=0)

    product_item = relationship("BatchProductItem", back_populates="variants")
