"""Services package - Business logic layer for the Formulation Cost Tracker.

Architecture:
- Engine: pure derivations over dto records and snapshots (unit_converter,
  pricing_service, recipe_cost_service, product_cost_service,
  batch_requirements_service). They never touch the database.
- Store: session-aware CRUD services over the SQLAlchemy models
  (supplier_service, catalog_service, recipe_service, product_service,
  batch_service, inventory_service, purchase_order_service).
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- snapshot_service: Builds engine snapshots from the store
- import_export_service: JSON backup and restore
"""

from .exceptions import (
    BatchNotFound,
    DatabaseError,
    InvalidInputError,
    InvalidStatusTransition,
    InventoryItemNotFound,
    MaterialNotFound,
    ProductNotFound,
    PurchaseOrderNotFound,
    RecipeNotFound,
    ServiceError,
    SupplierNotFound,
    UnknownUnitError,
    UnresolvedReferenceError,
    ValidationError,
    VariantNotFound,
)

__all__ = [
    "BatchNotFound",
    "DatabaseError",
    "InvalidInputError",
    "InvalidStatusTransition",
    "InventoryItemNotFound",
    "MaterialNotFound",
    "ProductNotFound",
    "PurchaseOrderNotFound",
    "RecipeNotFound",
    "ServiceError",
    "SupplierNotFound",
    "UnknownUnitError",
    "UnresolvedReferenceError",
    "ValidationError",
    "VariantNotFound",
]
