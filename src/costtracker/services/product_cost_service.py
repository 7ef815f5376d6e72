"""
Product/Variant Cost & Margin Service.

Extends recipe cost to packaged product variants (fill of the recipe plus
packaging and labels, all tax-inclusive) and computes margins against the
selling price.

Margin convention:
    margin % = (selling price - cost) / selling price * 100
A selling price of zero or less yields a margin of 0.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from costtracker.services.dto import (
    ProductionBatchRecord,
    ProductVariantRecord,
    SupplierLabelRecord,
    UnresolvedReference,
    distinct_references,
)
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.pricing_service import cost_for_quantity, tax_amount
from costtracker.services.recipe_cost_service import compute_recipe_cost
from costtracker.services.snapshots import CatalogSnapshot
from costtracker.services.unit_converter import calculate_units, to_base_unit
from costtracker.utils.constants import MARGIN_CRITICAL_THRESHOLD, MARGIN_WARNING_THRESHOLD

logger = get_service_logger(__name__)


# ============================================================================
# Result records
# ============================================================================


@dataclass
class CostComponent:
    """One slice of a variant's unit cost."""

    component: str  # recipe, packaging, front_label, back_label
    name: str
    cost: float
    percentage: float


@dataclass
class VariantCostAnalysis:
    """Full per-unit cost breakdown for a product variant."""

    variant_id: str
    variant_name: str
    sku: str
    fill_quantity: float
    fill_unit: str
    fill_quantity_kg: float
    recipe_cost_per_kg: float
    recipe_cost_for_fill: float
    recipe_tax_for_fill: float
    packaging_cost: float
    packaging_tax_amount: float
    front_label_cost: float
    back_label_cost: float
    labels_tax_amount: float
    total_tax_amount: float
    total_cost_per_unit: float
    cost_per_kg: float
    selling_price_per_unit: float
    gross_profit: float
    gross_profit_margin: float
    margin_status: str
    meets_minimum_margin: bool
    cost_breakdown: List[CostComponent] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unresolved_references: List[UnresolvedReference] = field(default_factory=list)

    @property
    def total_labels_cost(self) -> float:
        return self.front_label_cost + self.back_label_cost

    @property
    def total_cost_without_tax(self) -> float:
        return self.total_cost_per_unit - self.total_tax_amount


@dataclass
class VariantCostLine:
    """Cost and revenue for one variant line of a production batch."""

    variant_id: str
    variant_name: str
    product_name: str
    fill_quantity: float
    fill_unit: str
    units: int
    cost_per_unit: float
    revenue_per_unit: float
    materials_cost: float
    packaging_cost: float
    labels_cost: float
    total_cost: float
    total_revenue: float
    profit: float
    margin: float


@dataclass
class BatchCostAnalysis:
    """Cost, revenue and profit totals for a production batch."""

    batch_id: str
    total_units: int
    total_cost: float
    total_revenue: float
    total_profit: float
    profit_margin: float
    materials_cost: float
    packaging_cost: float
    labels_cost: float
    materials_percentage: float
    packaging_percentage: float
    labels_percentage: float
    variant_costs: List[VariantCostLine] = field(default_factory=list)
    unresolved_references: List[UnresolvedReference] = field(default_factory=list)


# ============================================================================
# Core calculations
# ============================================================================


def compute_variant_cost(
    variant: ProductVariantRecord,
    recipe_cost_per_kg: float,
    packaging_cost: float,
    label_cost: float,
) -> float:
    """
    Calculate the cost of one filled, packaged, labelled unit.

    Args:
        variant: Variant whose fill quantity/unit is used
        recipe_cost_per_kg: Tax-inclusive recipe cost per kg
        packaging_cost: Tax-inclusive cost of one packaging piece
        label_cost: Tax-inclusive cost of all labels on one unit

    Returns:
        fill_kg * recipe_cost_per_kg + packaging_cost + label_cost

    Raises:
        UnknownUnitError: If the variant's fill unit is not recognised
    """
    fill_kg = to_base_unit(variant.fill_quantity, variant.fill_unit)
    return fill_kg * recipe_cost_per_kg + packaging_cost + label_cost


def compute_margin(cost_per_unit: float, selling_price: float) -> float:
    """
    Calculate the profit margin as a percentage of the selling price.

    Example:
        >>> compute_margin(60.0, 100.0)
        40.0
        >>> compute_margin(60.0, 0.0)
        0.0
    """
    if not selling_price or selling_price <= 0:
        return 0.0
    return (selling_price - cost_per_unit) / selling_price * 100


def get_margin_status(margin: float, minimum_margin: Optional[float] = None) -> str:
    """
    Classify a margin.

    Returns:
        "critical" below 20% or below the variant's minimum, "warning" below
        30%, otherwise "healthy"
    """
    if margin < MARGIN_CRITICAL_THRESHOLD:
        return "critical"
    if minimum_margin is not None and margin < minimum_margin:
        return "critical"
    if margin < MARGIN_WARNING_THRESHOLD:
        return "warning"
    return "healthy"


def _label_cost(label: Optional[SupplierLabelRecord]) -> float:
    return cost_for_quantity(1, label.unit_price, label.tax) if label else 0.0


def _label_tax(label: Optional[SupplierLabelRecord]) -> float:
    return tax_amount(label.unit_price, label.tax) if label else 0.0


class _VariantInputs:
    """Resolved recipe, packaging and label prices for one variant."""

    def __init__(self, variant: ProductVariantRecord, catalog: CatalogSnapshot):
        self.unresolved: List[UnresolvedReference] = []
        context = f"variant:{variant.id}"

        product = catalog.get_product(variant.product_id)
        self.product_name = product.name if product else ""
        self.recipe = None
        if product is None:
            self.unresolved.append(UnresolvedReference("product", variant.product_id, context))
        else:
            self.recipe = catalog.get_recipe(product.recipe_id)
            if self.recipe is None:
                self.unresolved.append(UnresolvedReference("recipe", product.recipe_id, context))

        self.recipe_cost_per_kg = 0.0
        self.recipe_tax_per_kg = 0.0
        if self.recipe is not None:
            result = compute_recipe_cost(
                self.recipe.ingredients, catalog.resolve_supplier_material, self.recipe.id
            )
            self.recipe_cost_per_kg = result.total_cost_per_kg
            for line in result.per_ingredient:
                if line.resolved:
                    sm = catalog.resolve_supplier_material(line.supplier_material_id)
                    self.recipe_tax_per_kg += line.quantity_kg * tax_amount(sm.unit_price, sm.tax)
                else:
                    self.unresolved.append(
                        UnresolvedReference(
                            "supplier_material",
                            line.supplier_material_id,
                            f"recipe:{self.recipe.id}",
                        )
                    )

        self.packaging = catalog.get_supplier_packaging(variant.packaging_selection_id)
        if variant.packaging_selection_id and self.packaging is None:
            self.unresolved.append(
                UnresolvedReference("supplier_packaging", variant.packaging_selection_id, context)
            )

        self.front_label = catalog.get_supplier_label(variant.front_label_selection_id)
        if variant.front_label_selection_id and self.front_label is None:
            self.unresolved.append(
                UnresolvedReference("supplier_label", variant.front_label_selection_id, context)
            )

        self.back_label = catalog.get_supplier_label(variant.back_label_selection_id)
        if variant.back_label_selection_id and self.back_label is None:
            self.unresolved.append(
                UnresolvedReference("supplier_label", variant.back_label_selection_id, context)
            )

    @property
    def packaging_cost(self) -> float:
        if self.packaging is None:
            return 0.0
        return cost_for_quantity(1, self.packaging.unit_price, self.packaging.tax)

    @property
    def label_cost(self) -> float:
        return _label_cost(self.front_label) + _label_cost(self.back_label)


def _percentage(part: float, total: float) -> float:
    return part / total * 100 if total > 0 else 0.0


# ============================================================================
# Variant analysis
# ============================================================================


def analyze_variant_cost(
    variant: Union[str, ProductVariantRecord],
    catalog: CatalogSnapshot,
) -> VariantCostAnalysis:
    """
    Produce a full cost and margin breakdown for a variant.

    Missing product, recipe, packaging or label references don't abort the
    analysis; they contribute zero cost, are listed in
    ``unresolved_references`` and produce a warning.

    Args:
        variant: Variant record, or the id of a variant in the catalog
        catalog: Catalog snapshot used for every lookup

    Returns:
        VariantCostAnalysis

    Raises:
        UnresolvedReferenceError: If a variant id is given that is not in the catalog
        UnknownUnitError: If the fill unit or an ingredient unit is not recognised
    """
    if isinstance(variant, str):
        variant = catalog.require_variant(variant)

    inputs = _VariantInputs(variant, catalog)
    fill_kg = to_base_unit(variant.fill_quantity, variant.fill_unit)

    recipe_cost_for_fill = inputs.recipe_cost_per_kg * fill_kg
    recipe_tax_for_fill = inputs.recipe_tax_per_kg * fill_kg
    packaging_cost = inputs.packaging_cost
    packaging_tax = (
        tax_amount(inputs.packaging.unit_price, inputs.packaging.tax) if inputs.packaging else 0.0
    )
    front_label_cost = _label_cost(inputs.front_label)
    back_label_cost = _label_cost(inputs.back_label)
    labels_tax = _label_tax(inputs.front_label) + _label_tax(inputs.back_label)

    total_cost = compute_variant_cost(
        variant, inputs.recipe_cost_per_kg, packaging_cost, front_label_cost + back_label_cost
    )
    total_tax = recipe_tax_for_fill + packaging_tax + labels_tax
    selling_price = variant.selling_price_per_unit or 0.0
    margin = compute_margin(total_cost, selling_price)

    breakdown = [
        CostComponent("recipe", "Recipe/Formula", recipe_cost_for_fill, _percentage(recipe_cost_for_fill, total_cost)),
        CostComponent("packaging", "Packaging", packaging_cost, _percentage(packaging_cost, total_cost)),
    ]
    if front_label_cost > 0:
        breakdown.append(
            CostComponent("front_label", "Front Label", front_label_cost, _percentage(front_label_cost, total_cost))
        )
    if back_label_cost > 0:
        breakdown.append(
            CostComponent("back_label", "Back Label", back_label_cost, _percentage(back_label_cost, total_cost))
        )

    warnings = []
    if inputs.packaging is None:
        warnings.append("Packaging not found - cost analysis may be incomplete")
    if inputs.recipe is None:
        warnings.append("Recipe not found - recipe cost counted as zero")
    elif any(ref.entity_type == "supplier_material" for ref in inputs.unresolved):
        warnings.append("Some recipe ingredients could not be priced")
    if variant.minimum_profit_margin is not None and margin < variant.minimum_profit_margin:
        warnings.append(f"Margin below minimum threshold ({variant.minimum_profit_margin:g}%)")
    if margin < 0:
        warnings.append("Selling price is below cost")

    if inputs.unresolved:
        log_operation(
            logger,
            operation="analyze_variant_cost",
            outcome="unresolved_references",
            level=logging.WARNING,
            variant_id=variant.id,
            unresolved_count=len(inputs.unresolved),
        )

    return VariantCostAnalysis(
        variant_id=variant.id,
        variant_name=variant.name,
        sku=variant.sku,
        fill_quantity=variant.fill_quantity,
        fill_unit=variant.fill_unit,
        fill_quantity_kg=fill_kg,
        recipe_cost_per_kg=inputs.recipe_cost_per_kg,
        recipe_cost_for_fill=recipe_cost_for_fill,
        recipe_tax_for_fill=recipe_tax_for_fill,
        packaging_cost=packaging_cost,
        packaging_tax_amount=packaging_tax,
        front_label_cost=front_label_cost,
        back_label_cost=back_label_cost,
        labels_tax_amount=labels_tax,
        total_tax_amount=total_tax,
        total_cost_per_unit=total_cost,
        cost_per_kg=total_cost / fill_kg if fill_kg > 0 else 0.0,
        selling_price_per_unit=selling_price,
        gross_profit=selling_price - total_cost,
        gross_profit_margin=margin,
        margin_status=get_margin_status(margin, variant.minimum_profit_margin),
        meets_minimum_margin=(
            variant.minimum_profit_margin is None or margin >= variant.minimum_profit_margin
        ),
        cost_breakdown=breakdown,
        warnings=warnings,
        unresolved_references=list(inputs.unresolved),
    )


# ============================================================================
# Batch cost analysis
# ============================================================================


def compute_batch_cost_analysis(
    batch: ProductionBatchRecord, catalog: CatalogSnapshot
) -> BatchCostAnalysis:
    """
    Cost, revenue and profit for every variant line of a batch.

    Each line produces ``calculate_units(variant fill, batch fill)`` units;
    lines that produce no units are skipped. Materials cost is the recipe
    cost for one unit's fill times the unit count.

    Args:
        batch: Production batch record
        catalog: Catalog snapshot

    Returns:
        BatchCostAnalysis with per-line VariantCostLine entries in batch order
    """
    lines: List[VariantCostLine] = []
    unresolved: List[UnresolvedReference] = []

    for product_item in batch.items:
        for variant_item in product_item.variants:
            variant = catalog.get_variant(variant_item.variant_id)
            if variant is None:
                unresolved.append(
                    UnresolvedReference("variant", variant_item.variant_id, f"batch:{batch.id}")
                )
                continue

            units = calculate_units(
                variant.fill_quantity,
                variant.fill_unit,
                variant_item.total_fill_quantity,
                variant_item.fill_unit,
            )
            if units <= 0:
                continue

            inputs = _VariantInputs(variant, catalog)
            unresolved.extend(inputs.unresolved)

            fill_kg = to_base_unit(variant.fill_quantity, variant.fill_unit)
            materials_cost = inputs.recipe_cost_per_kg * fill_kg * units
            packaging_cost = inputs.packaging_cost * units
            labels_cost = inputs.label_cost * units
            total_cost = materials_cost + packaging_cost + labels_cost
            selling_price = variant.selling_price_per_unit or 0.0
            total_revenue = selling_price * units
            profit = total_revenue - total_cost

            lines.append(
                VariantCostLine(
                    variant_id=variant.id,
                    variant_name=variant.name,
                    product_name=inputs.product_name,
                    fill_quantity=variant.fill_quantity,
                    fill_unit=variant.fill_unit,
                    units=units,
                    cost_per_unit=total_cost / units,
                    revenue_per_unit=selling_price,
                    materials_cost=materials_cost,
                    packaging_cost=packaging_cost,
                    labels_cost=labels_cost,
                    total_cost=total_cost,
                    total_revenue=total_revenue,
                    profit=profit,
                    margin=_percentage(profit, total_revenue),
                )
            )

    total_cost = sum(line.total_cost for line in lines)
    total_revenue = sum(line.total_revenue for line in lines)
    materials_cost = sum(line.materials_cost for line in lines)
    packaging_cost = sum(line.packaging_cost for line in lines)
    labels_cost = sum(line.labels_cost for line in lines)
    total_profit = total_revenue - total_cost

    log_operation(
        logger,
        operation="compute_batch_cost_analysis",
        outcome="success",
        level=logging.DEBUG,
        batch_id=batch.id,
        line_count=len(lines),
    )

    return BatchCostAnalysis(
        batch_id=batch.id,
        total_units=sum(line.units for line in lines),
        total_cost=total_cost,
        total_revenue=total_revenue,
        total_profit=total_profit,
        profit_margin=_percentage(total_profit, total_revenue),
        materials_cost=materials_cost,
        packaging_cost=packaging_cost,
        labels_cost=labels_cost,
        materials_percentage=_percentage(materials_cost, total_cost),
        packaging_percentage=_percentage(packaging_cost, total_cost),
        labels_percentage=_percentage(labels_cost, total_cost),
        variant_costs=lines,
        unresolved_references=distinct_references(unresolved),
    )
