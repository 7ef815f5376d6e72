"""
Recipe Cost Roll-up Service.

Computes a recipe's cost per kilogram of output from its ingredient list.
Ingredient quantities are expressed per kg of finished product, and each
ingredient is priced from its supplier material at call time through a
price resolver callback, so the service never reads storage itself.

An ingredient whose supplier material doesn't resolve contributes zero
cost, is flagged ``resolved=False`` and is reported as unresolved; the
rest of the recipe is still costed.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from costtracker.services.dto import RecipeIngredientRecord, RecipeRecord, SupplierMaterialRecord
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.pricing_service import cost_for_quantity
from costtracker.services.snapshots import CatalogSnapshot
from costtracker.services.unit_converter import to_base_unit

logger = get_service_logger(__name__)

PriceResolver = Callable[[str], Optional[SupplierMaterialRecord]]


@dataclass
class IngredientCost:
    """Cost line for a single recipe ingredient."""

    ingredient_id: str
    supplier_material_id: str
    quantity_kg: float
    unit_price_with_tax: float
    cost_for_quantity: float
    percentage_share: float
    resolved: bool


@dataclass
class RecipeCostResult:
    """Cost roll-up for a recipe on a 1 kg output basis."""

    total_cost_per_kg: float
    per_ingredient: List[IngredientCost]
    unresolved_ingredient_ids: List[str] = field(default_factory=list)
    recipe_id: Optional[str] = None

    @property
    def total_quantity_kg(self) -> float:
        return sum(line.quantity_kg for line in self.per_ingredient)

    @property
    def has_unresolved(self) -> bool:
        return bool(self.unresolved_ingredient_ids)


@dataclass
class RecipeComparison:
    cheaper: str
    expensive: str
    difference: float
    difference_percentage: float


@dataclass
class SwitchingSavings:
    current_cost: float
    new_cost: float
    savings: float
    savings_percentage: float


@dataclass
class RecipePortfolioSummary:
    """Aggregate figures across a set of recipes."""

    recipe_count: int
    active_count: int
    avg_cost_per_kg: float
    avg_profit_margin: float
    total_portfolio_value: float


def compute_recipe_cost(
    ingredients: Sequence[RecipeIngredientRecord],
    price_resolver: PriceResolver,
    recipe_id: Optional[str] = None,
) -> RecipeCostResult:
    """
    Roll up ingredient costs into a cost per kg of recipe output.

    Args:
        ingredients: Ordered ingredient records (quantities per kg of output)
        price_resolver: Callback returning the SupplierMaterialRecord for an
            id, or None when it no longer exists
        recipe_id: Optional recipe id, carried into the result and log context

    Returns:
        RecipeCostResult with one IngredientCost per ingredient, in input order

    Raises:
        UnknownUnitError: If an ingredient uses an unrecognised unit
        InvalidInputError: If a quantity, price or tax is negative

    Example:
        >>> result = compute_recipe_cost(recipe.ingredients, catalog.resolve_supplier_material)
        >>> result.total_cost_per_kg
        49.56
    """
    lines: List[IngredientCost] = []
    unresolved: List[str] = []

    for ingredient in ingredients:
        quantity_kg = to_base_unit(ingredient.quantity, ingredient.unit)
        supplier_material = price_resolver(ingredient.supplier_material_id)

        if supplier_material is None:
            unresolved.append(ingredient.id)
            lines.append(
                IngredientCost(
                    ingredient_id=ingredient.id,
                    supplier_material_id=ingredient.supplier_material_id,
                    quantity_kg=quantity_kg,
                    unit_price_with_tax=0.0,
                    cost_for_quantity=0.0,
                    percentage_share=0.0,
                    resolved=False,
                )
            )
            continue

        cost = cost_for_quantity(quantity_kg, supplier_material.unit_price, supplier_material.tax)
        lines.append(
            IngredientCost(
                ingredient_id=ingredient.id,
                supplier_material_id=ingredient.supplier_material_id,
                quantity_kg=quantity_kg,
                unit_price_with_tax=supplier_material.price_with_tax,
                cost_for_quantity=cost,
                percentage_share=0.0,
                resolved=True,
            )
        )

    total = sum(line.cost_for_quantity for line in lines)
    if total > 0:
        for line in lines:
            line.percentage_share = line.cost_for_quantity / total * 100

    if unresolved:
        log_operation(
            logger,
            operation="compute_recipe_cost",
            outcome="unresolved_ingredients",
            level=logging.WARNING,
            recipe_id=recipe_id,
            unresolved_ingredient_ids=list(unresolved),
        )
    else:
        log_operation(
            logger,
            operation="compute_recipe_cost",
            outcome="success",
            level=logging.DEBUG,
            recipe_id=recipe_id,
            ingredient_count=len(lines),
        )

    return RecipeCostResult(
        total_cost_per_kg=total,
        per_ingredient=lines,
        unresolved_ingredient_ids=unresolved,
        recipe_id=recipe_id,
    )


def compute_recipe_cost_for(recipe_id: str, catalog: CatalogSnapshot) -> RecipeCostResult:
    """
    Cost a recipe held in a catalog snapshot.

    Raises:
        UnresolvedReferenceError: If the recipe is not in the snapshot
    """
    recipe = catalog.require_recipe(recipe_id)
    return compute_recipe_cost(recipe.ingredients, catalog.resolve_supplier_material, recipe.id)


def top_cost_drivers(result: RecipeCostResult, limit: int = 3) -> List[IngredientCost]:
    """Resolved ingredient lines ordered by cost, most expensive first."""
    resolved = [line for line in result.per_ingredient if line.resolved]
    return sorted(resolved, key=lambda line: line.cost_for_quantity, reverse=True)[:limit]


def compare_recipes(
    name1: str, cost_per_kg1: float, name2: str, cost_per_kg2: float
) -> RecipeComparison:
    """
    Compare the cost per kg of two recipes.

    The difference percentage is relative to the more expensive recipe.
    Ties report the second recipe as cheaper and the first as expensive.
    """
    difference = abs(cost_per_kg1 - cost_per_kg2)
    cheaper = name1 if cost_per_kg1 < cost_per_kg2 else name2
    expensive = name1 if cost_per_kg1 >= cost_per_kg2 else name2
    base = max(cost_per_kg1, cost_per_kg2)

    return RecipeComparison(
        cheaper=cheaper,
        expensive=expensive,
        difference=difference,
        difference_percentage=difference / base * 100 if base > 0 else 0.0,
    )


def find_cheaper_alternatives(
    supplier_material_id: str,
    supplier_materials: Iterable[SupplierMaterialRecord],
    max_results: int = 3,
) -> List[SupplierMaterialRecord]:
    """
    Find offers of the same material from other suppliers at a lower unit price.

    Returns:
        Up to ``max_results`` supplier materials, cheapest first. Empty when
        the current supplier material is unknown.
    """
    candidates = list(supplier_materials)
    current = next((sm for sm in candidates if sm.id == supplier_material_id), None)
    if current is None or not current.material_id:
        return []

    cheaper = [
        sm
        for sm in candidates
        if sm.material_id == current.material_id
        and sm.id != supplier_material_id
        and sm.unit_price < current.unit_price
    ]
    cheaper.sort(key=lambda sm: sm.unit_price)
    return cheaper[:max_results]


def calculate_switching_savings(
    ingredient: RecipeIngredientRecord,
    current: SupplierMaterialRecord,
    alternative: SupplierMaterialRecord,
) -> SwitchingSavings:
    """Tax-inclusive savings for one ingredient if it moved to another supplier offer."""
    quantity_kg = to_base_unit(ingredient.quantity, ingredient.unit)
    current_cost = cost_for_quantity(quantity_kg, current.unit_price, current.tax)
    new_cost = cost_for_quantity(quantity_kg, alternative.unit_price, alternative.tax)
    savings = current_cost - new_cost

    return SwitchingSavings(
        current_cost=current_cost,
        new_cost=new_cost,
        savings=savings,
        savings_percentage=savings / current_cost * 100 if current_cost > 0 else 0.0,
    )


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_recipe_portfolio(recipes: Iterable[RecipeRecord]) -> RecipePortfolioSummary:
    """
    Summarise stored recipe figures.

    Averages are unweighted means over recipes that have the figure set.
    Portfolio value sums selling_price_per_kg * batch_size_kg over recipes
    that have both. An empty input yields zeros.
    """
    recipes = list(recipes)
    costs = [r.total_cost_per_kg for r in recipes if r.total_cost_per_kg is not None]
    margins = [r.profit_margin for r in recipes if r.profit_margin is not None]
    value = sum(
        r.selling_price_per_kg * r.batch_size_kg
        for r in recipes
        if r.selling_price_per_kg is not None and r.batch_size_kg is not None
    )

    return RecipePortfolioSummary(
        recipe_count=len(recipes),
        active_count=sum(1 for r in recipes if r.status == "active"),
        avg_cost_per_kg=_mean(costs),
        avg_profit_margin=_mean(margins),
        total_portfolio_value=value,
    )
