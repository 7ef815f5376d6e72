"""Tests for recipe cost roll-up."""

import logging

import pytest

from costtracker.services.dto import RecipeIngredientRecord, RecipeRecord, SupplierMaterialRecord
from costtracker.services.exceptions import UnknownUnitError, UnresolvedReferenceError
from costtracker.services.recipe_cost_service import (
    calculate_switching_savings,
    compare_recipes,
    compute_recipe_cost,
    compute_recipe_cost_for,
    find_cheaper_alternatives,
    summarize_recipe_portfolio,
    top_cost_drivers,
)

RECIPE_LOGGER = "costtracker.services.recipe_cost_service"


def _ingredient(ingredient_id, supplier_material_id, quantity, unit="kg"):
    return RecipeIngredientRecord(
        id=ingredient_id,
        recipe_id="rec-1",
        supplier_material_id=supplier_material_id,
        quantity=quantity,
        unit=unit,
    )


class TestComputeRecipeCost:
    def test_floor_cleaner(self, floor_cleaner_catalog):
        result = compute_recipe_cost_for("rec-floor", floor_cleaner_catalog)

        assert result.total_cost_per_kg == pytest.approx(49.56)
        line_a, line_b = result.per_ingredient
        assert line_a.cost_for_quantity == pytest.approx(35.40)
        assert line_b.cost_for_quantity == pytest.approx(14.16)
        assert line_a.unit_price_with_tax == pytest.approx(59.0)
        assert line_a.percentage_share == pytest.approx(71.43, abs=0.01)
        assert line_b.percentage_share == pytest.approx(28.57, abs=0.01)
        assert result.total_quantity_kg == pytest.approx(1.0)
        assert not result.has_unresolved
        assert result.recipe_id == "rec-floor"

    def test_shares_sum_to_100(self, floor_cleaner_catalog):
        result = compute_recipe_cost_for("rec-floor", floor_cleaner_catalog)
        assert sum(line.percentage_share for line in result.per_ingredient) == pytest.approx(100.0)

    def test_grams_are_normalised(self, floor_cleaner_catalog):
        ingredients = [_ingredient("i1", "sm-a", 600, "g"), _ingredient("i2", "sm-b", 400, "gm")]
        result = compute_recipe_cost(ingredients, floor_cleaner_catalog.resolve_supplier_material)
        assert result.total_cost_per_kg == pytest.approx(49.56)

    def test_unresolved_ingredient_contributes_zero(self, floor_cleaner_catalog, caplog):
        ingredients = [_ingredient("i1", "sm-a", 0.6), _ingredient("i2", "sm-gone", 0.4)]

        with caplog.at_level(logging.WARNING, logger=RECIPE_LOGGER):
            result = compute_recipe_cost(
                ingredients, floor_cleaner_catalog.resolve_supplier_material, recipe_id="rec-1"
            )

        assert result.total_cost_per_kg == pytest.approx(35.40)
        assert result.unresolved_ingredient_ids == ["i2"]
        missing = result.per_ingredient[1]
        assert not missing.resolved
        assert missing.cost_for_quantity == 0.0
        assert missing.percentage_share == 0.0
        assert result.per_ingredient[0].percentage_share == pytest.approx(100.0)

        record = next(r for r in caplog.records if r.name == RECIPE_LOGGER)
        assert record.levelno == logging.WARNING
        assert record.outcome == "unresolved_ingredients"
        assert record.unresolved_ingredient_ids == ["i2"]

    def test_empty_recipe_costs_nothing(self, floor_cleaner_catalog):
        result = compute_recipe_cost([], floor_cleaner_catalog.resolve_supplier_material)
        assert result.total_cost_per_kg == 0.0
        assert result.per_ingredient == []

    def test_order_is_preserved(self, floor_cleaner_catalog):
        ingredients = [_ingredient("i2", "sm-b", 0.4), _ingredient("i1", "sm-a", 0.6)]
        result = compute_recipe_cost(ingredients, floor_cleaner_catalog.resolve_supplier_material)
        assert [line.ingredient_id for line in result.per_ingredient] == ["i2", "i1"]

    def test_unknown_unit_raises(self, floor_cleaner_catalog):
        with pytest.raises(UnknownUnitError):
            compute_recipe_cost([_ingredient("i1", "sm-a", 1, "cup")], floor_cleaner_catalog.resolve_supplier_material)

    def test_missing_recipe_raises(self, floor_cleaner_catalog):
        with pytest.raises(UnresolvedReferenceError):
            compute_recipe_cost_for("rec-gone", floor_cleaner_catalog)

    def test_same_inputs_same_result(self, floor_cleaner_catalog):
        first = compute_recipe_cost_for("rec-floor", floor_cleaner_catalog)
        second = compute_recipe_cost_for("rec-floor", floor_cleaner_catalog)
        assert first == second

    def test_top_cost_drivers(self, floor_cleaner_catalog):
        result = compute_recipe_cost_for("rec-floor", floor_cleaner_catalog)
        drivers = top_cost_drivers(result, limit=1)
        assert [d.ingredient_id for d in drivers] == ["ing-a"]


class TestRecipeComparison:
    def test_compare(self):
        comparison = compare_recipes("Floor Cleaner", 49.56, "Glass Cleaner", 40.0)
        assert comparison.cheaper == "Glass Cleaner"
        assert comparison.expensive == "Floor Cleaner"
        assert comparison.difference == pytest.approx(9.56)
        assert comparison.difference_percentage == pytest.approx(9.56 / 49.56 * 100)

    def test_compare_zero_costs(self):
        assert compare_recipes("A", 0.0, "B", 0.0).difference_percentage == 0.0


class TestSupplierAlternatives:
    def test_cheaper_offer_of_same_material(self, floor_cleaner_catalog):
        alternatives = find_cheaper_alternatives(
            "sm-a", floor_cleaner_catalog.supplier_materials.values()
        )
        assert [sm.id for sm in alternatives] == ["sm-a-alt"]

    def test_no_alternatives_for_cheapest(self, floor_cleaner_catalog):
        assert find_cheaper_alternatives("sm-a-alt", floor_cleaner_catalog.supplier_materials.values()) == []

    def test_unknown_supplier_material(self, floor_cleaner_catalog):
        assert find_cheaper_alternatives("sm-gone", floor_cleaner_catalog.supplier_materials.values()) == []

    def test_switching_savings(self, floor_cleaner_catalog):
        current = floor_cleaner_catalog.supplier_materials["sm-a"]
        alternative = floor_cleaner_catalog.supplier_materials["sm-a-alt"]
        savings = calculate_switching_savings(_ingredient("i1", "sm-a", 0.6), current, alternative)

        assert savings.current_cost == pytest.approx(35.40)
        assert savings.new_cost == pytest.approx(0.6 * 45 * 1.18)
        assert savings.savings == pytest.approx(0.6 * 5 * 1.18)
        assert savings.savings_percentage == pytest.approx(10.0)

    def test_switching_from_free_offer(self):
        free = SupplierMaterialRecord(id="x", supplier_id="s", material_id="m", unit_price=0.0)
        savings = calculate_switching_savings(_ingredient("i1", "x", 1.0), free, free)
        assert savings.savings_percentage == 0.0


class TestRecipePortfolio:
    def test_summary(self):
        recipes = [
            RecipeRecord(
                id="r1", name="A", status="active", total_cost_per_kg=40.0,
                profit_margin=30.0, selling_price_per_kg=60.0, batch_size_kg=100.0,
            ),
            RecipeRecord(id="r2", name="B", status="draft", total_cost_per_kg=60.0),
        ]
        summary = summarize_recipe_portfolio(recipes)

        assert summary.recipe_count == 2
        assert summary.active_count == 1
        assert summary.avg_cost_per_kg == pytest.approx(50.0)
        assert summary.avg_profit_margin == pytest.approx(30.0)
        assert summary.total_portfolio_value == pytest.approx(6000.0)

    def test_empty(self):
        summary = summarize_recipe_portfolio([])
        assert summary.recipe_count == 0
        assert summary.avg_cost_per_kg == 0.0
