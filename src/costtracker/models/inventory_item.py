"""
Inventory item model.

One row tracks the on-hand stock of one supplier item. The status (ok,
low, critical) is computed by inventory_service, never stored.
"""

from sqlalchemy import Column, Float, Index, String, Text, UniqueConstraint

from .base import BaseModel


class InventoryItem(BaseModel):
    """
    Inventory item model.

    Attributes:
        item_type: supplierMaterial, supplierPackaging or supplierLabel
        item_id: Supplier item id
        item_name: Display name captured when the record was created
        current_stock: Quantity on hand in ``unit``
        unit: Unit of current_stock
        min_stock_level: Level below which stock is reported as low
    """

    __tablename__ = "inventory_items"

    item_type = Column(String(30), nullable=False)
    item_id = Column(String(36), nullable=False)
    item_name = Column(String(200), nullable=False, default="")
    current_stock = Column(Float, nullable=False, default=0.0)
    unit = Column(String(10), nullable=False, default="kg")
    min_stock_level = Column(Float, nullable=False, default=0.0)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("item_type", "item_id", name="uq_inventory_item"),
        Index("idx_inventory_item_type", "item_type"),
    )
