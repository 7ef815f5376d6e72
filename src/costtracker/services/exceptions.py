"""Service layer exception classes for the Formulation Cost Tracker.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── UnknownUnitError
    ├── UnresolvedReferenceError
    ├── ValidationError
    │   └── InvalidInputError
    ├── InvalidStatusTransition
    ├── SupplierNotFound
    ├── MaterialNotFound
    ├── RecipeNotFound
    ├── ProductNotFound
    ├── VariantNotFound
    ├── BatchNotFound
    ├── InventoryItemNotFound
    ├── PurchaseOrderNotFound
    └── DatabaseError
"""


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class UnknownUnitError(ServiceError):
    """Raised when a quantity uses a unit with no kilogram factor.

    Args:
        unit: The unrecognised unit string

    Example:
        >>> raise UnknownUnitError("lbs")
        UnknownUnitError: Unknown unit: 'lbs'
    """

    def __init__(self, unit):
        self.unit = unit
        super().__init__(f"Unknown unit: '{unit}'")


class UnresolvedReferenceError(ServiceError):
    """Raised when a referenced entity is missing from the supplied snapshot.

    Args:
        entity_type: Kind of entity referenced (e.g. "supplier_material")
        entity_id: The id that failed to resolve

    Example:
        >>> raise UnresolvedReferenceError("recipe", "rec-9")
        UnresolvedReferenceError: Unresolved recipe reference: 'rec-9'
    """

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Unresolved {entity_type} reference: '{entity_id}'")


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class InvalidInputError(ValidationError):
    """Raised when a computation receives negative or missing inputs.

    Example:
        >>> raise InvalidInputError(["Tax: Must be zero or greater"])
        InvalidInputError: Validation failed: Tax: Must be zero or greater
    """

    pass


class InvalidStatusTransition(ServiceError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, entity_type: str, current: str, requested: str):
        self.entity_type = entity_type
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move {entity_type} from '{current}' to '{requested}'"
        )


class _EntityNotFound(ServiceError):
    entity_label = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_label} with ID {entity_id} not found")


class SupplierNotFound(_EntityNotFound):
    """Raised when a supplier cannot be found by ID."""

    entity_label = "Supplier"


class MaterialNotFound(_EntityNotFound):
    """Raised when a material, packaging or label cannot be found by ID."""

    entity_label = "Catalog item"


class RecipeNotFound(_EntityNotFound):
    """Raised when a recipe cannot be found by ID."""

    entity_label = "Recipe"


class ProductNotFound(_EntityNotFound):
    """Raised when a product cannot be found by ID."""

    entity_label = "Product"


class VariantNotFound(_EntityNotFound):
    """Raised when a product variant cannot be found by ID."""

    entity_label = "Product variant"


class BatchNotFound(_EntityNotFound):
    """Raised when a production batch cannot be found by ID."""

    entity_label = "Production batch"


class InventoryItemNotFound(_EntityNotFound):
    """Raised when an inventory item cannot be found by ID."""

    entity_label = "Inventory item"


class PurchaseOrderNotFound(_EntityNotFound):
    """Raised when a purchase order cannot be found by ID."""

    entity_label = "Purchase order"


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
