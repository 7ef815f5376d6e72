"""Snapshot records passed into the cost engine.

The derivation services never read the database. Callers hand them plain,
immutable records describing the current state of each entity; the local
store builds these from ORM rows (see snapshot_service) and tests or
scripts can build them directly.

Every record has a ``from_dict`` constructor that accepts the camelCase
keys used in exported JSON as well as snake_case keys, and ignores keys it
doesn't know.
"""

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from costtracker.services.pricing_service import price_with_tax

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {_snake_case(key): value for key, value in data.items()}


def _build(cls: Type[T], data: Mapping[str, Any], **overrides: Any) -> T:
    """Construct a record from a mapping, keeping only declared fields."""
    normalized = _normalize_keys(data)
    normalized.update(overrides)
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in normalized.items() if k in names})


# ============================================================================
# Suppliers and catalog items
# ============================================================================


@dataclass(frozen=True)
class SupplierRecord:
    id: str
    name: str
    is_active: bool = True
    lead_time: int = 0
    rating: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplierRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class MaterialRecord:
    id: str
    name: str
    category: str = ""
    unit_price: float = 0.0
    tax: float = 0.0

    @property
    def price_with_tax(self) -> float:
        return price_with_tax(self.unit_price, self.tax)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MaterialRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class PackagingRecord:
    id: str
    name: str
    type: str = "bottle"
    capacity: float = 0.0
    unit: str = "mL"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PackagingRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class LabelRecord:
    id: str
    name: str
    type: str = "label"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LabelRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class SupplierMaterialRecord:
    """A material offered by a specific supplier; the price source for costing."""

    id: str
    supplier_id: str
    material_id: str
    unit_price: float
    tax: float = 0.0
    unit: str = "kg"
    moq: float = 0.0
    lead_time: int = 0
    availability: str = "in-stock"
    transportation_cost: Optional[float] = None
    bulk_price: Optional[float] = None
    quantity_for_bulk_price: Optional[float] = None

    @property
    def price_with_tax(self) -> float:
        return price_with_tax(self.unit_price, self.tax)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplierMaterialRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class SupplierPackagingRecord:
    """A packaging item offered by a supplier, priced per piece."""

    id: str
    supplier_id: str
    packaging_id: str
    unit_price: float
    tax: float = 0.0
    moq: float = 0.0
    lead_time: int = 0
    availability: str = "in-stock"
    transportation_cost: Optional[float] = None

    @property
    def unit(self) -> str:
        return "pcs"

    @property
    def price_with_tax(self) -> float:
        return price_with_tax(self.unit_price, self.tax)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplierPackagingRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class SupplierLabelRecord:
    """A label offered by a supplier, priced per piece."""

    id: str
    supplier_id: str
    label_id: Optional[str]
    unit_price: float
    tax: float = 0.0
    unit: str = "pcs"
    moq: float = 0.0
    lead_time: int = 0
    availability: str = "in-stock"
    transportation_cost: Optional[float] = None

    @property
    def price_with_tax(self) -> float:
        return price_with_tax(self.unit_price, self.tax)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplierLabelRecord":
        return _build(cls, data)


# ============================================================================
# Recipes and products
# ============================================================================


@dataclass(frozen=True)
class RecipeIngredientRecord:
    """Quantity of a supplier material per kg of recipe output."""

    id: str
    recipe_id: str
    supplier_material_id: str
    quantity: float
    unit: str = "kg"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecipeIngredientRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class RecipeRecord:
    id: str
    name: str
    ingredients: Tuple[RecipeIngredientRecord, ...] = ()
    status: str = "draft"
    total_cost_per_kg: Optional[float] = None
    selling_price_per_kg: Optional[float] = None
    profit_margin: Optional[float] = None
    batch_size_kg: Optional[float] = None
    target_cost_per_kg: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecipeRecord":
        ingredients = tuple(
            RecipeIngredientRecord.from_dict({"recipe_id": data.get("id"), **item})
            for item in data.get("ingredients", ())
        )
        return _build(cls, data, ingredients=ingredients)


@dataclass(frozen=True)
class ProductRecord:
    id: str
    name: str
    recipe_id: str
    status: str = "draft"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class ProductVariantRecord:
    """A sellable fill size of a product with its packaging and labels."""

    id: str
    product_id: str
    name: str
    fill_quantity: float
    fill_unit: str
    packaging_selection_id: Optional[str] = None
    front_label_selection_id: Optional[str] = None
    back_label_selection_id: Optional[str] = None
    selling_price_per_unit: float = 0.0
    sku: str = ""
    minimum_profit_margin: Optional[float] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductVariantRecord":
        return _build(cls, data)


# ============================================================================
# Production batches
# ============================================================================


@dataclass(frozen=True)
class BatchVariantItemRecord:
    variant_id: str
    total_fill_quantity: float
    fill_unit: str = "kg"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatchVariantItemRecord":
        return _build(cls, data)


@dataclass(frozen=True)
class BatchProductItemRecord:
    product_id: str
    variants: Tuple[BatchVariantItemRecord, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatchProductItemRecord":
        variants = tuple(
            BatchVariantItemRecord.from_dict(item) for item in data.get("variants", ())
        )
        return _build(cls, data, variants=variants)


@dataclass(frozen=True)
class ProductionBatchRecord:
    id: str
    batch_name: str
    items: Tuple[BatchProductItemRecord, ...] = ()
    status: str = "draft"
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductionBatchRecord":
        items = tuple(BatchProductItemRecord.from_dict(item) for item in data.get("items", ()))
        return _build(cls, data, items=items)


# ============================================================================
# Inventory
# ============================================================================


@dataclass(frozen=True)
class InventoryItemRecord:
    id: str
    item_type: str
    item_id: str
    current_stock: float
    unit: str = "kg"
    min_stock_level: float = 0.0
    item_name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InventoryItemRecord":
        return _build(cls, data)


# ============================================================================
# Partial-failure markers
# ============================================================================


@dataclass(frozen=True)
class UnresolvedReference:
    """A reference that did not resolve while deriving a result.

    Recorded instead of raising so one bad line never aborts a whole
    derivation; ``context`` names the line that held the reference.
    """

    entity_type: str
    entity_id: str
    context: str = ""


def distinct_references(references: Iterable[UnresolvedReference]) -> List[UnresolvedReference]:
    """First reference to each missing entity, in the order they were met."""
    seen = set()
    distinct = []
    for reference in references:
        key = (reference.entity_type, reference.entity_id)
        if key not in seen:
            seen.add(key)
            distinct.append(reference)
    return distinct
