"""
Batch Requirements Aggregation Service.

Expands a production batch into the materials, packaging and labels it
needs, aggregates them per supplier item across the whole batch and checks
the totals against on-hand inventory.

Expansion rules for each batch variant line:
- fill_kg = total fill quantity converted to kg
- units = calculate_units(variant fill, batch fill)
- each recipe ingredient needs ingredient_kg * fill_kg of its supplier material
- the variant's supplier packaging is needed ``units`` times
- front and back supplier labels are each needed ``units`` times

Requirements are keyed by (item type, supplier id, supplier item id);
quantities and costs for the same key are summed. A reference that
doesn't resolve is recorded as an UnresolvedReference and the rest of the
batch is still processed.

Grouping by supplier or by product re-indexes an already computed analysis;
nothing is re-priced.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from costtracker.services.dto import (
    ProductionBatchRecord,
    ProductRecord,
    ProductVariantRecord,
    UnresolvedReference,
    distinct_references,
)
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.snapshots import CatalogSnapshot, InventorySnapshot
from costtracker.services.unit_converter import calculate_units, to_base_unit
from costtracker.utils.constants import REQUIREMENT_TO_INVENTORY_TYPE

logger = get_service_logger(__name__)

MATERIAL = "material"
PACKAGING = "packaging"
LABEL = "label"


# ============================================================================
# Result records
# ============================================================================


@dataclass
class RequirementLine:
    """Quantity of one supplier item needed by one batch variant line."""

    item_type: str
    item_id: str
    item_name: str
    supplier_id: str
    supplier_name: str
    unit: str
    required_quantity: float
    unit_price_with_tax: float
    estimated_cost: float
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str


@dataclass
class RequirementItem:
    """Aggregated requirement for one supplier item across a batch."""

    item_type: str
    item_id: str
    item_name: str
    supplier_id: str
    supplier_name: str
    unit: str
    required_quantity: float
    unit_price_with_tax: float
    estimated_cost: float
    on_hand: Optional[float] = None
    shortage: float = 0.0

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.item_type, self.supplier_id, self.item_id)

    @property
    def is_tracked(self) -> bool:
        return self.on_hand is not None

    @property
    def has_shortfall(self) -> bool:
        return self.shortage > 0


@dataclass
class Shortfall:
    item_type: str
    item_id: str
    item_name: str
    supplier_name: str
    required: float
    on_hand: float
    shortfall: float


@dataclass
class ItemWithoutInventory:
    """A required item with no inventory record at all (untracked)."""

    item_type: str
    item_id: str
    item_name: str
    supplier_name: str
    required: float


@dataclass
class SupplierRequirement:
    supplier_id: str
    supplier_name: str
    materials: List[RequirementItem] = field(default_factory=list)
    packaging: List[RequirementItem] = field(default_factory=list)
    labels: List[RequirementItem] = field(default_factory=list)
    total_cost: float = 0.0
    item_count: int = 0
    shortage_count: int = 0


@dataclass
class VariantRequirements:
    variant_id: str
    variant_name: str
    materials: List[RequirementLine] = field(default_factory=list)
    packaging: List[RequirementLine] = field(default_factory=list)
    labels: List[RequirementLine] = field(default_factory=list)
    total_cost: float = 0.0


@dataclass
class ProductRequirements:
    """Requirements of one product, per variant and aggregated."""

    product_id: str
    product_name: str
    variants: List[VariantRequirements] = field(default_factory=list)
    total_materials: List[RequirementItem] = field(default_factory=list)
    total_packaging: List[RequirementItem] = field(default_factory=list)
    total_labels: List[RequirementItem] = field(default_factory=list)
    total_cost: float = 0.0


@dataclass
class BatchRequirementsOverview:
    total_items: int
    total_cost: float
    supplier_count: int
    shortfall_count: int
    untracked_count: int
    materials_count: int
    materials_cost: float
    packaging_count: int
    packaging_cost: float
    labels_count: int
    labels_cost: float


@dataclass
class BatchRequirementsAnalysis:
    """Everything derived from one batch against one catalog and inventory."""

    batch_id: str
    batch_name: str
    lines: List[RequirementLine]
    materials: List[RequirementItem]
    packaging: List[RequirementItem]
    labels: List[RequirementItem]
    shortfalls: List[Shortfall]
    items_without_inventory: List[ItemWithoutInventory]
    unresolved_references: List[UnresolvedReference] = field(default_factory=list)

    @property
    def all_items(self) -> List[RequirementItem]:
        return self.materials + self.packaging + self.labels

    @property
    def total_cost(self) -> float:
        return sum(item.estimated_cost for item in self.all_items)


# ============================================================================
# Expansion
# ============================================================================


def _material_lines(
    product: ProductRecord,
    variant: ProductVariantRecord,
    fill_kg: float,
    catalog: CatalogSnapshot,
    unresolved: List[UnresolvedReference],
) -> List[RequirementLine]:
    recipe = catalog.get_recipe(product.recipe_id)
    if recipe is None:
        unresolved.append(UnresolvedReference("recipe", product.recipe_id, f"product:{product.id}"))
        return []

    lines = []
    for ingredient in recipe.ingredients:
        sm = catalog.resolve_supplier_material(ingredient.supplier_material_id)
        if sm is None:
            unresolved.append(
                UnresolvedReference(
                    "supplier_material", ingredient.supplier_material_id, f"recipe:{recipe.id}"
                )
            )
            continue

        required = to_base_unit(ingredient.quantity, ingredient.unit) * fill_kg
        unit_price = sm.price_with_tax
        lines.append(
            RequirementLine(
                item_type=MATERIAL,
                item_id=sm.id,
                item_name=catalog.item_name(MATERIAL, sm.id),
                supplier_id=sm.supplier_id,
                supplier_name=catalog.supplier_name(sm.supplier_id),
                unit="kg",
                required_quantity=required,
                unit_price_with_tax=unit_price,
                estimated_cost=required * unit_price,
                product_id=product.id,
                product_name=product.name,
                variant_id=variant.id,
                variant_name=variant.name,
            )
        )
    return lines


def _piece_line(
    item_type: str,
    selection_id: Optional[str],
    units: int,
    product: ProductRecord,
    variant: ProductVariantRecord,
    catalog: CatalogSnapshot,
    unresolved: List[UnresolvedReference],
) -> Optional[RequirementLine]:
    if not selection_id or units <= 0:
        return None

    if item_type == PACKAGING:
        item = catalog.get_supplier_packaging(selection_id)
        entity_type = "supplier_packaging"
    else:
        item = catalog.get_supplier_label(selection_id)
        entity_type = "supplier_label"

    if item is None:
        unresolved.append(UnresolvedReference(entity_type, selection_id, f"variant:{variant.id}"))
        return None

    unit_price = item.price_with_tax
    return RequirementLine(
        item_type=item_type,
        item_id=item.id,
        item_name=catalog.item_name(item_type, item.id),
        supplier_id=item.supplier_id,
        supplier_name=catalog.supplier_name(item.supplier_id),
        unit="pcs",
        required_quantity=float(units),
        unit_price_with_tax=unit_price,
        estimated_cost=units * unit_price,
        product_id=product.id,
        product_name=product.name,
        variant_id=variant.id,
        variant_name=variant.name,
    )


def expand_batch_lines(
    batch: ProductionBatchRecord, catalog: CatalogSnapshot
) -> Tuple[List[RequirementLine], List[UnresolvedReference]]:
    """
    Expand every batch variant line into per-item requirement lines.

    Returns:
        Tuple of (requirement lines in batch order, unresolved references
        with each missing entity listed once)

    Raises:
        UnknownUnitError: If a fill or ingredient unit is not recognised
    """
    lines: List[RequirementLine] = []
    unresolved: List[UnresolvedReference] = []
    batch_context = f"batch:{batch.id}"

    for product_item in batch.items:
        product = catalog.get_product(product_item.product_id)
        if product is None:
            unresolved.append(UnresolvedReference("product", product_item.product_id, batch_context))
            continue

        for variant_item in product_item.variants:
            variant = catalog.get_variant(variant_item.variant_id)
            if variant is None:
                unresolved.append(
                    UnresolvedReference("variant", variant_item.variant_id, batch_context)
                )
                continue

            fill_kg = to_base_unit(variant_item.total_fill_quantity, variant_item.fill_unit)
            units = calculate_units(
                variant.fill_quantity,
                variant.fill_unit,
                variant_item.total_fill_quantity,
                variant_item.fill_unit,
            )

            lines.extend(_material_lines(product, variant, fill_kg, catalog, unresolved))
            for item_type, selection_id in (
                (PACKAGING, variant.packaging_selection_id),
                (LABEL, variant.front_label_selection_id),
                (LABEL, variant.back_label_selection_id),
            ):
                line = _piece_line(item_type, selection_id, units, product, variant, catalog, unresolved)
                if line is not None:
                    lines.append(line)

    return lines, distinct_references(unresolved)


# ============================================================================
# Aggregation and inventory cross-check
# ============================================================================


def aggregate(
    lines: Iterable[RequirementLine], inventory: Optional[InventorySnapshot] = None
) -> List[RequirementItem]:
    """
    Sum requirement lines per (item type, supplier id, item id).

    When an inventory snapshot is given, each aggregated item gets its
    on-hand quantity and shortage (required - on_hand when on_hand is
    below required, else 0). Items without an inventory record keep
    ``on_hand=None``.

    Returns:
        Aggregated items in first-seen order
    """
    items: Dict[Tuple[str, str, str], RequirementItem] = {}

    for line in lines:
        key = (line.item_type, line.supplier_id, line.item_id)
        existing = items.get(key)
        if existing is None:
            items[key] = RequirementItem(
                item_type=line.item_type,
                item_id=line.item_id,
                item_name=line.item_name,
                supplier_id=line.supplier_id,
                supplier_name=line.supplier_name,
                unit=line.unit,
                required_quantity=line.required_quantity,
                unit_price_with_tax=line.unit_price_with_tax,
                estimated_cost=line.estimated_cost,
            )
        else:
            existing.required_quantity += line.required_quantity
            existing.estimated_cost += line.estimated_cost

    if inventory is not None:
        for item in items.values():
            on_hand = inventory.on_hand(REQUIREMENT_TO_INVENTORY_TYPE[item.item_type], item.item_id)
            item.on_hand = on_hand
            if on_hand is not None and on_hand < item.required_quantity:
                item.shortage = item.required_quantity - on_hand

    return list(items.values())


def find_shortfalls(items: Iterable[RequirementItem]) -> List[Shortfall]:
    """Tracked items whose on-hand quantity is below the requirement."""
    return [
        Shortfall(
            item_type=item.item_type,
            item_id=item.item_id,
            item_name=item.item_name,
            supplier_name=item.supplier_name,
            required=item.required_quantity,
            on_hand=item.on_hand,
            shortfall=item.required_quantity - item.on_hand,
        )
        for item in items
        if item.is_tracked and item.on_hand < item.required_quantity
    ]


def find_items_without_inventory(items: Iterable[RequirementItem]) -> List[ItemWithoutInventory]:
    """Required items that have no inventory record."""
    return [
        ItemWithoutInventory(
            item_type=item.item_type,
            item_id=item.item_id,
            item_name=item.item_name,
            supplier_name=item.supplier_name,
            required=item.required_quantity,
        )
        for item in items
        if not item.is_tracked
    ]


def compute_batch_requirements(
    batch: ProductionBatchRecord,
    catalog: CatalogSnapshot,
    inventory: Optional[InventorySnapshot] = None,
) -> BatchRequirementsAnalysis:
    """
    Compute the aggregated requirements of a production batch.

    Args:
        batch: Production batch record with its product and variant items
        catalog: Catalog snapshot used to resolve products, recipes and prices
        inventory: On-hand snapshot; an empty snapshot is used when omitted,
            so every item is reported as untracked

    Returns:
        BatchRequirementsAnalysis

    Raises:
        UnknownUnitError: If a fill or ingredient unit is not recognised

    Example:
        >>> analysis = compute_batch_requirements(batch, catalog, inventory)
        >>> [(s.item_name, s.shortfall) for s in analysis.shortfalls]
        [('Material X', 15.0)]
    """
    if inventory is None:
        inventory = InventorySnapshot()

    lines, unresolved = expand_batch_lines(batch, catalog)
    items = aggregate(lines, inventory)

    analysis = BatchRequirementsAnalysis(
        batch_id=batch.id,
        batch_name=batch.batch_name,
        lines=lines,
        materials=[i for i in items if i.item_type == MATERIAL],
        packaging=[i for i in items if i.item_type == PACKAGING],
        labels=[i for i in items if i.item_type == LABEL],
        shortfalls=find_shortfalls(items),
        items_without_inventory=find_items_without_inventory(items),
        unresolved_references=unresolved,
    )

    if unresolved:
        log_operation(
            logger,
            operation="compute_batch_requirements",
            outcome="unresolved_references",
            level=logging.WARNING,
            batch_id=batch.id,
            unresolved=[f"{ref.entity_type}:{ref.entity_id}" for ref in unresolved],
        )
    log_operation(
        logger,
        operation="compute_batch_requirements",
        outcome="success",
        level=logging.DEBUG,
        batch_id=batch.id,
        item_count=len(items),
        shortfall_count=len(analysis.shortfalls),
    )

    return analysis


# ============================================================================
# Grouping and overview
# ============================================================================


def group_by_supplier(analysis: BatchRequirementsAnalysis) -> List[SupplierRequirement]:
    """Re-index aggregated requirements by supplier, in first-seen order."""
    suppliers: Dict[str, SupplierRequirement] = {}

    for item in analysis.all_items:
        supplier = suppliers.get(item.supplier_id)
        if supplier is None:
            supplier = SupplierRequirement(item.supplier_id, item.supplier_name)
            suppliers[item.supplier_id] = supplier

        if item.item_type == MATERIAL:
            supplier.materials.append(item)
        elif item.item_type == PACKAGING:
            supplier.packaging.append(item)
        else:
            supplier.labels.append(item)

        supplier.total_cost += item.estimated_cost
        supplier.item_count += 1
        if item.has_shortfall:
            supplier.shortage_count += 1

    return list(suppliers.values())


def group_by_product(analysis: BatchRequirementsAnalysis) -> List[ProductRequirements]:
    """
    Re-index requirement lines by product and variant.

    Variant entries keep the individual lines; product totals are the lines
    aggregated per supplier item (without inventory figures).
    """
    products: Dict[str, ProductRequirements] = {}
    product_lines: Dict[str, List[RequirementLine]] = {}

    for line in analysis.lines:
        product = products.get(line.product_id)
        if product is None:
            product = ProductRequirements(line.product_id, line.product_name)
            products[line.product_id] = product
            product_lines[line.product_id] = []

        variant = next((v for v in product.variants if v.variant_id == line.variant_id), None)
        if variant is None:
            variant = VariantRequirements(line.variant_id, line.variant_name)
            product.variants.append(variant)

        if line.item_type == MATERIAL:
            variant.materials.append(line)
        elif line.item_type == PACKAGING:
            variant.packaging.append(line)
        else:
            variant.labels.append(line)

        variant.total_cost += line.estimated_cost
        product.total_cost += line.estimated_cost
        product_lines[line.product_id].append(line)

    for product_id, product in products.items():
        totals = aggregate(product_lines[product_id])
        product.total_materials = [i for i in totals if i.item_type == MATERIAL]
        product.total_packaging = [i for i in totals if i.item_type == PACKAGING]
        product.total_labels = [i for i in totals if i.item_type == LABEL]

    return list(products.values())


def overview(analysis: BatchRequirementsAnalysis) -> BatchRequirementsOverview:
    """Summary counts and costs for a batch requirements analysis."""
    return BatchRequirementsOverview(
        total_items=len(analysis.all_items),
        total_cost=analysis.total_cost,
        supplier_count=len({item.supplier_id for item in analysis.all_items}),
        shortfall_count=len(analysis.shortfalls),
        untracked_count=len(analysis.items_without_inventory),
        materials_count=len(analysis.materials),
        materials_cost=sum(i.estimated_cost for i in analysis.materials),
        packaging_count=len(analysis.packaging),
        packaging_cost=sum(i.estimated_cost for i in analysis.packaging),
        labels_count=len(analysis.labels),
        labels_cost=sum(i.estimated_cost for i in analysis.labels),
    )
