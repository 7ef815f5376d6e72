"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .supplier import Supplier
from .material import Material, SupplierMaterial
from .packaging import Packaging, SupplierPackaging
from .label import Label, SupplierLabel
from .recipe import Recipe, RecipeIngredient
from .product import Product, ProductVariant
from .production_batch import ProductionBatch, BatchProductItem, BatchVariantItem
from .inventory_item import InventoryItem
from .purchase_order import PurchaseOrder, PurchaseOrderItem

__all__ = [
    "Base",
    "BaseModel",
    "Supplier",
    "Material",
    "SupplierMaterial",
    "Packaging",
    "SupplierPackaging",
    "Label",
    "SupplierLabel",
    "Recipe",
    "RecipeIngredient",
    "Product",
    "ProductVariant",
    "ProductionBatch",
    "BatchProductItem",
    "BatchVariantItem",
    "InventoryItem",
    "PurchaseOrder",
    "PurchaseOrderItem",
]
